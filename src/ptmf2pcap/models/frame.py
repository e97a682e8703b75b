"""
PTMF frame models.

A PTMF frame is one delimiter-bounded record of a PTMF file:
- Frame header: frame number, arrival time and a description of the
  underlying network layers (addresses, ports) at fixed offsets that
  depend on the frame type
- Frame body: the captured content. Depending on the frame type it is a
  whole Ethernet frame or only the application layer (SIP, Diameter...)

THESE MODELS ARE IMMUTABLE. The only mutable state involved in turning a
frame into a packet is the FlowSequenceTracker passed in by the caller,
which is why frames of one file must be converted in on-disk order.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from calendar import timegm
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from ipaddress import IPv4Address
from typing import ClassVar, Dict, Optional, Tuple

from ..exceptions import FieldParseError, OutOfBoundsError, StructuralDecodeError
from ..pcap_writer import packet_builder as pb
from ..pcap_writer.flow_sequence import FlowSequenceTracker
from ..utils.bytecodec import bytes_to_int, hex_encode, subrange

logger = logging.getLogger(__name__)

# Offsets shared by every frame type
FRAME_NUMBER_OFFSET = 14
FRAME_NUMBER_LENGTH = 4
YEAR_OFFSET = 24
YEAR_LENGTH = 2
MONTH_OFFSET = 26
DAY_OFFSET = 27
HOUR_OFFSET = 28
MINUTE_OFFSET = 29
SECOND_OFFSET = 30
MILLISECOND_OFFSET = 34
MILLISECOND_LENGTH = 2
IPV4_LENGTH = 4
PORT_LENGTH = 2

# PCAP record timestamps are unsigned 32-bit
MAX_EPOCH_SECONDS = 0xFFFFFFFF

UNSPECIFIED_IPV4 = IPv4Address("0.0.0.0")


@dataclass(frozen=True)
class FrameLayout:
    """Per-type header geometry. Offsets are relative to the frame start."""
    header_length: int
    src_ip_offset: int = 0
    dst_ip_offset: int = 0
    src_port_offset: int = 0
    dst_port_offset: int = 0


class Transport(Enum):
    UDP = "UDP"
    TCP = "TCP"
    SCTP = "SCTP"


_LINE_BREAK = re.compile(r"\r?\n")


def guess_sip_transport(body: bytes) -> Transport:
    """
    Guess the transport a SIP message travelled over from its topmost Via.

    PTMF headers do not record the transport, but the first Via header does:
    ``Via: SIP/2.0/TCP host`` etc. Without a Via line UDP is assumed.
    """
    for line in _LINE_BREAK.split(body.decode("latin-1")):
        header = line.upper()
        if not header.startswith("VIA"):
            continue
        if "SIP/2.0/TCP" in header or "SIP/2.0/TLS" in header:
            return Transport.TCP
        if "SIP/2.0/SCTP" in header or "SIP/2.0/TLS-SCTP" in header:
            return Transport.SCTP
        break
    return Transport.UDP


@dataclass(frozen=True)
class PtmfFrame(ABC):
    """
    One PTMF frame. Concrete types only differ in LAYOUT and in how the
    body is turned into an IPv4 packet.
    """
    data: bytes
    order: int = 0
    """0-based position of the frame in its file (traceability only)"""

    LAYOUT: ClassVar[FrameLayout]
    TYPE_NAME: ClassVar[str]

    # RAW ACCESS
    @property
    def header_length(self) -> int:
        return self.LAYOUT.header_length

    @property
    def body(self) -> bytes:
        return self.data[self.header_length:]

    @property
    def is_too_short(self) -> bool:
        """
        True if the frame cannot even hold its own header.

        Some firmware appends a partial record at the end of the file,
        which shows up as a too-short last frame.
        """
        return len(self.data) < self.header_length

    def to_hex(self) -> str:
        return hex_encode(self.data)

    def _uint(self, offset: int, length: int, little_endian: bool = False) -> int:
        return bytes_to_int(subrange(self.data, offset, length), little_endian)

    # HEADER FIELDS
    @property
    def frame_number(self) -> int:
        return self._uint(FRAME_NUMBER_OFFSET, FRAME_NUMBER_LENGTH)

    @property
    def milliseconds(self) -> int:
        return self._uint(MILLISECOND_OFFSET, MILLISECOND_LENGTH)

    def _decode_arrival_time(self) -> datetime:
        fields = (
            self._uint(YEAR_OFFSET, YEAR_LENGTH),
            self._uint(MONTH_OFFSET, 1),
            self._uint(DAY_OFFSET, 1),
            self._uint(HOUR_OFFSET, 1),
            self._uint(MINUTE_OFFSET, 1),
            self._uint(SECOND_OFFSET, 1),
        )
        try:
            return datetime(*fields)
        except ValueError as e:
            raise FieldParseError(
                "invalid arrival date {:04d}-{:02d}-{:02d} {:02d}:{:02d}:{:02d}: {}".format(*fields, e)
            )

    @property
    def arrival_time(self) -> Optional[datetime]:
        """Arrival time (UTC, naive), or None if the date fields are corrupt."""
        try:
            return self._decode_arrival_time()
        except FieldParseError as e:
            logger.warning("Frame %d: %s", self.order, e)
            return None

    @property
    def epoch_seconds(self) -> int:
        """Arrival time as unsigned 32-bit epoch seconds, 0 if it has none."""
        arrival = self.arrival_time
        if arrival is None:
            return 0
        seconds = timegm(arrival.timetuple())
        if not 0 <= seconds <= MAX_EPOCH_SECONDS:
            error = FieldParseError(f"arrival time {arrival} does not fit a PCAP timestamp")
            logger.warning("Frame %d: %s", self.order, error)
            return 0
        return seconds

    def _address(self, offset: int, which: str) -> IPv4Address:
        try:
            return IPv4Address(subrange(self.data, offset, IPV4_LENGTH))
        except (OutOfBoundsError, ValueError) as e:
            error = FieldParseError(f"cannot decode {which} address at offset {offset}: {e}")
            logger.warning("Frame %d: %s, using %s", self.order, error, UNSPECIFIED_IPV4)
            return UNSPECIFIED_IPV4

    @property
    def src_ip(self) -> IPv4Address:
        return self._address(self.LAYOUT.src_ip_offset, "source")

    @property
    def dst_ip(self) -> IPv4Address:
        return self._address(self.LAYOUT.dst_ip_offset, "destination")

    # Ports are stored little-endian in PTMF headers
    @property
    def src_port(self) -> int:
        return self._uint(self.LAYOUT.src_port_offset, PORT_LENGTH, little_endian=True)

    @property
    def dst_port(self) -> int:
        return self._uint(self.LAYOUT.dst_port_offset, PORT_LENGTH, little_endian=True)

    # PACKET RECONSTRUCTION
    def _wrap(self, transport: Transport, tracker: FlowSequenceTracker,
              body: Optional[bytes] = None) -> bytes:
        """Wrap ``body`` (default: the frame body) in transport + IPv4 headers."""
        payload = self.body if body is None else body
        src_ip, dst_ip = self.src_ip, self.dst_ip
        src_port, dst_port = self.src_port, self.dst_port
        if transport is Transport.TCP:
            segment = pb.build_tcp(src_port, dst_port, payload, src_ip, dst_ip, tracker)
            protocol = pb.IP_PROTO_TCP
        elif transport is Transport.SCTP:
            segment = pb.build_sctp(src_port, dst_port, payload, src_ip, dst_ip, tracker)
            protocol = pb.IP_PROTO_SCTP
        else:
            segment = pb.build_udp(src_port, dst_port, payload)
            protocol = pb.IP_PROTO_UDP
        return pb.build_ipv4(src_ip, dst_ip, protocol, segment)

    @abstractmethod
    def to_ipv4_packet(self, tracker: FlowSequenceTracker) -> bytes:
        """
        Rebuild an IPv4 packet from the frame.

        Layer 5 content, addresses and ports are real; every other IP and
        transport header field is a default value.
        """

    def to_ethernet_packet(self, tracker: FlowSequenceTracker) -> bytes:
        return pb.build_ethernet(pb.ZERO_MAC, pb.ZERO_MAC, pb.ETH_TYPE_IPV4,
                                 self.to_ipv4_packet(tracker))

    def to_pcap_record(self, tracker: FlowSequenceTracker) -> bytes:
        """Return the PCAP record (record header + Ethernet frame) for this frame."""
        if self.is_too_short:
            raise StructuralDecodeError(
                f"{self.TYPE_NAME} frame {self.order} has {len(self.data)} bytes, "
                f"header needs {self.header_length}"
            )
        packet = self.to_ethernet_packet(tracker)
        return pb.build_pcap_record(
            self.epoch_seconds,
            1000 * self.milliseconds,
            len(packet),
            len(packet),
            packet,
        )


class SipFrame(PtmfFrame):
    """
    SIP frame: the body is a bare SIP message. The transport is guessed
    from the message itself.
    """
    LAYOUT = FrameLayout(header_length=145, src_ip_offset=60, dst_ip_offset=82,
                         src_port_offset=76, dst_port_offset=98)
    TYPE_NAME = "SIP"

    def to_ipv4_packet(self, tracker: FlowSequenceTracker) -> bytes:
        return self._wrap(guess_sip_transport(self.body), tracker)


class DiameterFrame(PtmfFrame):
    """
    Diameter frame: the body is a bare Diameter message. Nothing in the
    frame names the transport; SCTP is what these deployments use.
    """
    LAYOUT = FrameLayout(header_length=108, src_ip_offset=64, dst_ip_offset=86,
                         src_port_offset=80, dst_port_offset=102)
    TYPE_NAME = "Diameter"

    def to_ipv4_packet(self, tracker: FlowSequenceTracker) -> bytes:
        return self._wrap(Transport.SCTP, tracker)


class IpFrame(PtmfFrame):
    """IP frame: the body already is a complete Ethernet frame."""
    LAYOUT = FrameLayout(header_length=87)
    TYPE_NAME = "IP"

    def to_ethernet_packet(self, tracker: FlowSequenceTracker) -> bytes:
        return self.body

    def to_ipv4_packet(self, tracker: FlowSequenceTracker) -> bytes:
        """Not used when converting (see to_ethernet_packet); kept for the frame interface."""
        # Ethernet payload; only an IP packet when the frame is untagged
        return self.body[14:]


class MessageCategory(Enum):
    NETWORK_SIGNALING = "network-signaling"
    NETWORK_MEDIA = "network-media"
    TEXT_LOG = "text-log"
    BINARY_LOG = "binary-log"
    UNKNOWN = "unknown"


NETWORK_SIGNALING_TYPES: Dict[str, str] = {
    "2C01": "TRACE_SIPC_UP",
    "2D01": "TRACE_SIPC_DOWN",
    "FC01": "TRACE_DNSENUM",
    "F901": "TRACE_DIAM_GQ",
}

NETWORK_MEDIA_TYPES: Dict[str, str] = {
    "1827": "TRACE_MEDIA_UP",
    "1927": "TRACE_MEDIA_DOWN",
}

BINARY_LOG_TYPES: Dict[str, str] = {
    "2727": "TRACE_SIG_ACCESS_UP",
    "2527": "TRACE_SIG_ACCESS_DOWN",
    "A523": "TRACE_MI_CALL_HLLM",
    "5624": "TRACE_MSG_TPTD_SIPC_SUCC",
    "1F00": "TRACE_BC_DIAMRM",
    "2200": "TRACE_DIAMRM_BC",
    "5424": "TRACE_MSG_TPTD_SEND_SIPC",
    "3723": "TRACE_REG_IPB",
    "8D23": "TRACE_CALL_SDB",
    "2103": "TRACE_SDB_CALL",
    "2000": "TRACE_BC_DBMS",
    "1527": "TRACE_TOPO_TM",
    "1427": "TRACE_TM_TOPO",
    "1327": "TRACE_TM_DIST",
    "4101": "TRACE_SIPC_ENUM",
    "3001": "TRACE_SIPC_ABCF",
    "5524": "TRACE_MSG_SIPC_SEND_TPTD",
    "0100": "TRACE_LOG",
    "1727": "TRACE_HRU_MCU",
    "6902": "TRACE_H248_CRO",
    "6001": "TRACE_ENUM_DNS",
    "5E01": "TRACE_ENUM_3263",
    "1227": "TRACE_DIST_TM",
    "6302": "TRACE_CRO_SM",
    "6602": "TRACE_CRO_H248",
    "6802": "TRACE_CRO_CRO",
    "1627": "TRACE_CMU_HRU",
    "1127": "TRACE_CMU_BSU",
    "5203": "TRACE_CDB_CALL",
    "8C23": "TRACE_CALL_SIPC",
    "A123": "TRACE_CALL_PCDR",
    "8E23": "TRACE_CALL_DBMS",
    "8F23": "TRACE_CALL_BC",
    "1027": "TRACE_BSU_CMU",
    "2100": "TRACE_BC_RO",
    "A223": "TRACE_ABCF_SIPC",
    "1E00": "TRACE_BC_CALL",
    "2823": "TRACE_REG_SIPC",
    "8025": "TRACE_MSG_REG_SEND_AKA",
    "8325": "TRACE_MSG_HLLM_SEND_REG",
    "2923": "TRACE_REG_SDB",
    "2E23": "TRACE_REG_DBMS",
    "5A03": "TRACE_CDB_ASDB",
    "8125": "TRACE_MSG_AKA_SEND_REG",
    "4303": "TRACE_DBMS_SIPC",
    "2503": "TRACE_SDB_DBMS",
    "B824": "TRACE_MSG_SDB_IPB",
    "2003": "TRACE_SDB_REG",
    "8225": "TRACE_MSG_REG_SEND_HLLM",
    "5403": "TRACE_MSG_PDISP_QUERY_HLLM_DBMS",
    "3E01": "TRACE_SIPC_CDB",
}

TEXT_LOG_TYPES: Dict[str, str] = {
    "0100": "TRACE_LOG",
    "5301": "TRACE_SIPC_TXNUP",
    "5401": "TRACE_SIPC_TUDOWN",
    "5201": "TRACE_SIPC_APP",
    "9E23": "TRACE_BCF_SIPC",
    "2227": "TRACE_QOS_UP",
    "2327": "TRACE_QOS_DOWN",
    "1C25": "TRACE_SDG_DIAG_INFO",
    "1C27": "TRACE_HRU_CONFIGINFO_DIAG_INFO",
    "1D25": "TRACE_CALL_DIAG_INFO",
    "2025": "TRACE_BC_DIAG_INFO",
    "2125": "TRACE_CRO_DIAG_INFO",
    "1A27": "TRACE_CMU_DIAG_INFO",
    "1B27": "TRACE_HRU_TERMINFO_DIAG_INFO",
}

# Lookup order matters: 0100 (TRACE_LOG) is listed as both text and binary log
_CATEGORY_TABLES: Tuple[Tuple[MessageCategory, Dict[str, str]], ...] = (
    (MessageCategory.NETWORK_SIGNALING, NETWORK_SIGNALING_TYPES),
    (MessageCategory.NETWORK_MEDIA, NETWORK_MEDIA_TYPES),
    (MessageCategory.TEXT_LOG, TEXT_LOG_TYPES),
    (MessageCategory.BINARY_LOG, BINARY_LOG_TYPES),
)


def classify_message_interface(type_hex: str) -> Tuple[MessageCategory, str]:
    """Map a message interface type (uppercase hex) to its category and label."""
    for category, table in _CATEGORY_TABLES:
        label = table.get(type_hex)
        if label is not None:
            return category, label
    return MessageCategory.UNKNOWN, f"UNKNOWN(0x{type_hex})"


class UserInterfaceFrame(PtmfFrame):
    """
    UserInterface frame. The Message Interface Type header field decides
    what the body holds:
    - network signaling: bare SIP/DNS/Diameter message, rebuilt like a SIP frame
    - network media: a media-info sub-header followed by a full IPv4 packet
    - text/binary logs and unknown types: not network traffic at all. They
      are still exported, wrapped in a syslog message, so that frame N of
      the PTMF file stays frame N of the PCAP file.
    """
    LAYOUT = FrameLayout(header_length=98, src_ip_offset=54, dst_ip_offset=73,
                         src_port_offset=70, dst_port_offset=89)
    TYPE_NAME = "UserInterface"

    MESSAGE_INTERFACE_TYPE_OFFSET: ClassVar[int] = 91
    MESSAGE_INTERFACE_TYPE_LENGTH: ClassVar[int] = 2
    MEDIA_INFO_HEADER_LENGTH: ClassVar[int] = 48

    @property
    def message_interface_type_hex(self) -> str:
        return hex_encode(subrange(self.data, self.MESSAGE_INTERFACE_TYPE_OFFSET,
                                   self.MESSAGE_INTERFACE_TYPE_LENGTH))

    @property
    def message_category(self) -> MessageCategory:
        return classify_message_interface(self.message_interface_type_hex)[0]

    @property
    def message_interface_type(self) -> str:
        """Label such as ``TRACE_SIPC_UP``, or ``UNKNOWN(0xHHHH)``."""
        return classify_message_interface(self.message_interface_type_hex)[1]

    def _syslog_packet(self, content: bytes) -> bytes:
        message = f"{self.message_interface_type}: ".encode("utf-8") + content
        datagram = pb.build_udp(pb.UDP_PORT_SYSLOG, pb.UDP_PORT_SYSLOG, message)
        return pb.build_ipv4(UNSPECIFIED_IPV4, UNSPECIFIED_IPV4, pb.IP_PROTO_UDP, datagram)

    def to_ipv4_packet(self, tracker: FlowSequenceTracker) -> bytes:
        category, label = classify_message_interface(self.message_interface_type_hex)
        body = self.body

        if category is MessageCategory.NETWORK_SIGNALING:
            transport = guess_sip_transport(body)
            if transport is Transport.UDP and label == "TRACE_DIAM_GQ":
                transport = Transport.SCTP
            return self._wrap(transport, tracker)

        if category is MessageCategory.NETWORK_MEDIA:
            if len(body) < self.MEDIA_INFO_HEADER_LENGTH:
                raise StructuralDecodeError(
                    f"{label} frame {self.order} body has {len(body)} bytes, "
                    f"media info header needs {self.MEDIA_INFO_HEADER_LENGTH}"
                )
            return body[self.MEDIA_INFO_HEADER_LENGTH:]

        if category is MessageCategory.TEXT_LOG:
            return self._syslog_packet(body)

        # binary logs and unknown content
        return self._syslog_packet(("0x" + hex_encode(body)).encode("utf-8"))
