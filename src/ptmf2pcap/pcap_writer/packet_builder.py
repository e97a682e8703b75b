"""
Builds synthetic network packets and the libpcap container around them.

Reference: https://wiki.wireshark.org/Development/LibpcapFileFormat

PTMF frames only carry the application payload plus addresses and ports,
so the rest of the Ethernet/IP/transport headers is filled with fixed
defaults. Checksums are always left at zero.

File structure written by build_pcap_file():
- 24-byte global header (little-endian)
- Repeated packet records:
  - 16-byte record header (little-endian)
  - Ethernet frame
"""
import struct
from ipaddress import IPv4Address
from typing import Iterable

from .flow_sequence import FlowSequenceTracker
from ..utils.bytecodec import concat, int_to_bytes

# Global header constants
PCAP_MAGIC_LITTLE_ENDIAN = b"\xd4\xc3\xb2\xa1"
PCAP_VERSION_MAJOR = 2
PCAP_VERSION_MINOR = 4
PCAP_THISZONE = 0
PCAP_SIGFIGS = 0
PCAP_SNAPLEN = 0xFFFF

# Link type constants (libpcap LINKTYPE_*)
LINKTYPE_ETHERNET = 1

# EtherType constants
ETH_TYPE_IPV4 = b"\x08\x00"
ZERO_MAC = b"\x00" * 6

# IP protocol numbers
IP_PROTO_TCP = 6
IP_PROTO_UDP = 17
IP_PROTO_SCTP = 132

UDP_PORT_SYSLOG = 514

IPV4_HEADER_LENGTH = 20
UDP_HEADER_LENGTH = 8
SCTP_DATA_CHUNK_HEADER_LENGTH = 16

TCP_FLAG_PSH = 0x08
TCP_FLAG_PSH_ACK = 0x18
# 0x80 -> data offset of 8 words; the 12 bytes past the fixed header are zeroed options
_TCP_DATA_OFFSET = 0x80
_TCP_WINDOW = 0xFFFF
_TCP_OPTIONS = b"\x00" * 12

# DATA chunk type, flags 0x03 (beginning + ending fragment)
_SCTP_CHUNK_TYPE_FLAGS = b"\x00\x03"
_SCTP_PADDING_BYTE = b"\xff"

# identification, flags (DF), fragment offset, TTL
_IPV4_FIXED_FIELDS = b"\x00\x00\x40\x00\x40"


def build_pcap_file(records: Iterable[bytes], link_type: int = LINKTYPE_ETHERNET) -> bytes:
    """Return a complete PCAP file: global header followed by ``records``."""
    global_header = concat([
        PCAP_MAGIC_LITTLE_ENDIAN,
        struct.pack("<HHiII", PCAP_VERSION_MAJOR, PCAP_VERSION_MINOR,
                    PCAP_THISZONE, PCAP_SIGFIGS, PCAP_SNAPLEN),
        int_to_bytes(link_type, 4, little_endian=True),
    ])
    return concat([global_header, *records])


def build_pcap_record(epoch_seconds: int, microseconds: int, captured_length: int,
                      original_length: int, payload: bytes) -> bytes:
    """Return one PCAP record (16-byte header + payload)."""
    header = struct.pack("<IIII", epoch_seconds, microseconds, captured_length, original_length)
    return header + payload


def build_ethernet(src_mac: bytes, dst_mac: bytes, ether_type: bytes, body: bytes) -> bytes:
    # Wire order is destination first
    return concat([dst_mac, src_mac, ether_type, body])


def build_ipv4(src_ip: IPv4Address, dst_ip: IPv4Address, protocol: int, body: bytes) -> bytes:
    """Return an IPv4 packet with a 20-byte header and a zero checksum."""
    return concat([
        b"\x45\x00",                                     # version, IHL, type of service
        int_to_bytes(IPV4_HEADER_LENGTH + len(body), 2),  # total length
        _IPV4_FIXED_FIELDS,
        int_to_bytes(protocol, 1),
        b"\x00\x00",                                     # checksum
        src_ip.packed,
        dst_ip.packed,
        body,
    ])


def build_udp(src_port: int, dst_port: int, body: bytes) -> bytes:
    header = struct.pack("!HHHH", src_port, dst_port, UDP_HEADER_LENGTH + len(body), 0)
    return header + body


def build_tcp(src_port: int, dst_port: int, body: bytes,
              src_ip: IPv4Address, dst_ip: IPv4Address,
              tracker: FlowSequenceTracker) -> bytes:
    """
    Return a TCP segment carrying ``body``.

    Sequence and acknowledgment numbers come from ``tracker``. A zero ack
    means the peer has not sent anything yet, so only PSH is set;
    otherwise the segment is flagged PSH+ACK.
    """
    seq = tracker.next_tcp_seq(src_ip, src_port, dst_ip, dst_port, len(body))
    ack = tracker.tcp_ack_for(src_ip, src_port, dst_ip, dst_port)
    flags = TCP_FLAG_PSH if ack == 0 else TCP_FLAG_PSH_ACK
    header = struct.pack(
        "!HHIIBBHHH",
        src_port,
        dst_port,
        seq,
        ack,
        _TCP_DATA_OFFSET,
        flags,
        _TCP_WINDOW,
        0,  # checksum
        0,  # urgent pointer
    )
    return concat([header, _TCP_OPTIONS, body])


def build_sctp(src_port: int, dst_port: int, body: bytes,
               src_ip: IPv4Address, dst_ip: IPv4Address,
               tracker: FlowSequenceTracker) -> bytes:
    """
    Return an SCTP packet with a single unordered DATA chunk.

    Only one stream is modelled, so the same counter value fills both the
    TSN and the stream sequence number. The chunk is padded with 0xFF up
    to a 4-byte boundary.
    """
    chunk_length = SCTP_DATA_CHUNK_HEADER_LENGTH + len(body)
    padding = _SCTP_PADDING_BYTE * ((4 - chunk_length % 4) % 4)
    tsn = tracker.next_sctp_seq(src_ip, src_port, dst_ip, dst_port)
    return concat([
        struct.pack("!HHII", src_port, dst_port, 0, 0),  # ports, verification tag, checksum
        _SCTP_CHUNK_TYPE_FLAGS,
        int_to_bytes(chunk_length, 2),
        int_to_bytes(tsn, 4),
        b"\x00\x00",                                     # stream id
        int_to_bytes(tsn % 0x10000, 2),                   # stream sequence number
        int_to_bytes(0, 4),                               # payload protocol id
        body,
        padding,
    ])
