"""
Tests for frame decoding and packet reconstruction.
"""
import calendar
import struct
import unittest
from ipaddress import IPv4Address

from ptmf_samples import (
    ARRIVAL,
    DIAMETER_CER,
    SIP_INVITE_SCTP,
    SIP_INVITE_TCP,
    SIP_INVITE_UDP,
    diameter_frame,
    ip_frame,
    sip_frame,
    udp_ethernet_frame,
    user_interface_frame,
)

from ptmf2pcap.exceptions import StructuralDecodeError
from ptmf2pcap.models.frame import (
    DiameterFrame,
    IpFrame,
    MessageCategory,
    SipFrame,
    Transport,
    UserInterfaceFrame,
    classify_message_interface,
    guess_sip_transport,
)
from ptmf2pcap.pcap_writer.flow_sequence import FlowSequenceTracker

ARRIVAL_EPOCH = calendar.timegm(ARRIVAL + (0, 0, 0))

ETH = 14
IP_PROTO_AT = ETH + 9
TRANSPORT_AT = ETH + 20


def _ethernet(record: bytes) -> bytes:
    return record[16:]


def _udp_payload(record: bytes) -> bytes:
    return _ethernet(record)[TRANSPORT_AT + 8:]


class SipTransportGuessTests(unittest.TestCase):
    def test_no_via_means_udp(self):
        self.assertIs(guess_sip_transport(b"INVITE sip:a@b SIP/2.0\r\n\r\n"), Transport.UDP)

    def test_via_transports(self):
        self.assertIs(guess_sip_transport(SIP_INVITE_UDP), Transport.UDP)
        self.assertIs(guess_sip_transport(SIP_INVITE_TCP), Transport.TCP)
        self.assertIs(guess_sip_transport(SIP_INVITE_SCTP), Transport.SCTP)

    def test_tls_is_tcp(self):
        self.assertIs(guess_sip_transport(b"Via: SIP/2.0/TLS host\r\n"), Transport.TCP)

    def test_tls_sctp_matches_tls_first(self):
        self.assertIs(guess_sip_transport(b"Via: SIP/2.0/TLS-SCTP host\r\n"), Transport.TCP)

    def test_case_insensitive_and_bare_lf(self):
        self.assertIs(guess_sip_transport(b"ACK sip:a@b SIP/2.0\nvia: sip/2.0/tcp host\n"), Transport.TCP)

    def test_only_first_via_counts(self):
        body = b"Via: SIP/2.0/UDP a\r\nVia: SIP/2.0/TCP b\r\n"
        self.assertIs(guess_sip_transport(body), Transport.UDP)


class SipFrameTests(unittest.TestCase):
    def setUp(self):
        self.tracker = FlowSequenceTracker()

    def test_header_fields(self):
        frame = SipFrame(sip_frame())
        self.assertEqual(frame.frame_number, 7)
        self.assertEqual(frame.milliseconds, 250)
        self.assertEqual(frame.src_ip, IPv4Address("10.0.0.1"))
        self.assertEqual(frame.dst_ip, IPv4Address("10.0.0.2"))
        self.assertEqual(frame.src_port, 8080)
        self.assertEqual(frame.dst_port, 5060)
        self.assertEqual(frame.epoch_seconds, ARRIVAL_EPOCH)
        self.assertEqual(frame.body, SIP_INVITE_UDP)

    def test_udp_record_is_byte_exact(self):
        # Literal offsets: srcIP@60, dstIP@82, srcPort@76, dstPort@98 (LE), header 145
        data = bytearray(145)
        data[14:18] = b"\x00\x00\x00\x07"
        data[24:31] = b"\x07\xe0\x08\x1b\x0a\x14\x1e"
        data[34:36] = b"\x00\xfa"
        data[60:64] = b"\x0a\x00\x00\x01"
        data[82:86] = b"\x0a\x00\x00\x02"
        data[76:78] = b"\x90\x1f"
        data[98:100] = b"\xc4\x13"
        record = SipFrame(bytes(data) + SIP_INVITE_UDP).to_pcap_record(self.tracker)

        udp = struct.pack("!HHHH", 8080, 5060, 8 + len(SIP_INVITE_UDP), 0) + SIP_INVITE_UDP
        ipv4 = (bytes.fromhex("4500") + struct.pack("!H", 20 + len(udp)) +
                bytes.fromhex("0000400040" "11" "0000" "0A000001" "0A000002") + udp)
        ethernet = b"\x00" * 12 + b"\x08\x00" + ipv4
        expected = struct.pack("<IIII", ARRIVAL_EPOCH, 250000, len(ethernet), len(ethernet)) + ethernet
        self.assertEqual(record, expected)

    def test_tcp_via(self):
        record = SipFrame(sip_frame(SIP_INVITE_TCP)).to_pcap_record(self.tracker)
        ethernet = _ethernet(record)
        self.assertEqual(ethernet[IP_PROTO_AT], 6)
        self.assertEqual(ethernet[TRANSPORT_AT + 13], 0x08)
        self.assertEqual(ethernet[TRANSPORT_AT + 32:], SIP_INVITE_TCP)

    def test_sctp_via(self):
        record = SipFrame(sip_frame(SIP_INVITE_SCTP)).to_pcap_record(self.tracker)
        ethernet = _ethernet(record)
        self.assertEqual(ethernet[IP_PROTO_AT], 132)
        self.assertEqual(ethernet[TRANSPORT_AT + 28:TRANSPORT_AT + 28 + len(SIP_INVITE_SCTP)],
                         SIP_INVITE_SCTP)

    def test_invalid_date_gives_epoch_zero(self):
        frame = SipFrame(sip_frame(arrival=(2016, 13, 27, 10, 20, 30)), order=3)
        with self.assertLogs("ptmf2pcap.models.frame", level="WARNING") as logs:
            record = frame.to_pcap_record(self.tracker)
        self.assertEqual(record[:4], b"\x00\x00\x00\x00")
        self.assertEqual(record[4:8], struct.pack("<I", 250000))
        self.assertIn("Frame 3", logs.output[0])

    def test_dates_outside_pcap_timestamp_range_give_epoch_zero(self):
        for arrival in ((1969, 12, 31, 23, 59, 59), (2200, 1, 1, 0, 0, 0)):
            frame = SipFrame(sip_frame(arrival=arrival), order=1)
            with self.assertLogs("ptmf2pcap.models.frame", level="WARNING") as logs:
                record = frame.to_pcap_record(self.tracker)
            self.assertEqual(record[:4], b"\x00\x00\x00\x00")
            self.assertIn("does not fit a PCAP timestamp", logs.output[0])

    def test_last_representable_second(self):
        frame = SipFrame(sip_frame(arrival=(2106, 2, 7, 6, 28, 15)))
        self.assertEqual(frame.epoch_seconds, 0xFFFFFFFF)

    def test_too_short_frame_is_rejected(self):
        with self.assertRaises(StructuralDecodeError):
            SipFrame(b"\x00" * 10).to_pcap_record(self.tracker)

    def test_hex(self):
        self.assertEqual(SipFrame(b"\x2c\x01").to_hex(), "2C01")


class DiameterFrameTests(unittest.TestCase):
    def test_always_sctp(self):
        record = DiameterFrame(diameter_frame(src_port=3868, dst_port=3869)).to_pcap_record(
            FlowSequenceTracker())
        ethernet = _ethernet(record)
        self.assertEqual(ethernet[IP_PROTO_AT], 132)
        self.assertEqual(struct.unpack("!HH", ethernet[TRANSPORT_AT:TRANSPORT_AT + 4]), (3868, 3869))
        self.assertEqual(ethernet[TRANSPORT_AT + 28:TRANSPORT_AT + 28 + len(DIAMETER_CER)], DIAMETER_CER)

    def test_addresses_use_diameter_offsets(self):
        frame = DiameterFrame(diameter_frame(src_ip="192.168.0.1", dst_ip="192.168.0.2"))
        self.assertEqual(str(frame.src_ip), "192.168.0.1")
        self.assertEqual(str(frame.dst_ip), "192.168.0.2")


class IpFrameTests(unittest.TestCase):
    def test_body_is_passed_through(self):
        ethernet = udp_ethernet_frame(b"payload")
        frame = IpFrame(ip_frame(ethernet))
        record = frame.to_pcap_record(FlowSequenceTracker())
        self.assertEqual(_ethernet(record), ethernet)
        self.assertEqual(record[8:12], struct.pack("<I", len(ethernet)))
        self.assertEqual(frame.to_ipv4_packet(FlowSequenceTracker()), ethernet[14:])


class MessageInterfaceTests(unittest.TestCase):
    def test_classification(self):
        self.assertEqual(classify_message_interface("2C01"),
                         (MessageCategory.NETWORK_SIGNALING, "TRACE_SIPC_UP"))
        self.assertEqual(classify_message_interface("1927"),
                         (MessageCategory.NETWORK_MEDIA, "TRACE_MEDIA_DOWN"))
        self.assertEqual(classify_message_interface("2727"),
                         (MessageCategory.BINARY_LOG, "TRACE_SIG_ACCESS_UP"))
        self.assertEqual(classify_message_interface("ABCD"),
                         (MessageCategory.UNKNOWN, "UNKNOWN(0xABCD)"))

    def test_trace_log_is_text(self):
        self.assertEqual(classify_message_interface("0100"),
                         (MessageCategory.TEXT_LOG, "TRACE_LOG"))


class UserInterfaceFrameTests(unittest.TestCase):
    def setUp(self):
        self.tracker = FlowSequenceTracker()

    def _record(self, type_hex, body, **kwargs):
        return UserInterfaceFrame(user_interface_frame(type_hex, body, **kwargs)).to_pcap_record(
            self.tracker)

    def test_type_fields(self):
        frame = UserInterfaceFrame(user_interface_frame("2D01", SIP_INVITE_UDP))
        self.assertEqual(frame.message_interface_type_hex, "2D01")
        self.assertEqual(frame.message_interface_type, "TRACE_SIPC_DOWN")
        self.assertIs(frame.message_category, MessageCategory.NETWORK_SIGNALING)

    def test_signaling_follows_via(self):
        record = self._record("2C01", SIP_INVITE_TCP, src_ip="172.16.0.1", dst_ip="172.16.0.2")
        ethernet = _ethernet(record)
        self.assertEqual(ethernet[IP_PROTO_AT], 6)
        self.assertEqual(ethernet[ETH + 12:ETH + 20], bytes([172, 16, 0, 1, 172, 16, 0, 2]))

    def test_diam_gq_defaults_to_sctp(self):
        ethernet = _ethernet(self._record("F901", DIAMETER_CER))
        self.assertEqual(ethernet[IP_PROTO_AT], 132)

    def test_diam_gq_keeps_tcp_via(self):
        ethernet = _ethernet(self._record("F901", SIP_INVITE_TCP))
        self.assertEqual(ethernet[IP_PROTO_AT], 6)

    def test_media_strips_info_header(self):
        inner = udp_ethernet_frame(b"rtp")[14:]
        ethernet = _ethernet(self._record("1827", b"\x11" * 48 + inner))
        self.assertEqual(ethernet[:14], b"\x00" * 12 + b"\x08\x00")
        self.assertEqual(ethernet[14:], inner)

    def test_short_media_body_is_rejected(self):
        with self.assertRaises(StructuralDecodeError):
            self._record("1927", b"\x11" * 47)

    def test_text_log_becomes_syslog(self):
        record = self._record("5301", b"transaction created")
        ethernet = _ethernet(record)
        self.assertEqual(ethernet[IP_PROTO_AT], 17)
        self.assertEqual(ethernet[ETH + 12:ETH + 20], b"\x00" * 8)
        self.assertEqual(struct.unpack("!HH", ethernet[TRANSPORT_AT:TRANSPORT_AT + 4]), (514, 514))
        self.assertEqual(_udp_payload(record), b"TRACE_SIPC_TXNUP: transaction created")

    def test_trace_log_is_sent_as_text(self):
        self.assertEqual(_udp_payload(self._record("0100", b"hello")), b"TRACE_LOG: hello")

    def test_binary_log_is_hex(self):
        record = self._record("2727", b"\x01\xab\xff")
        self.assertEqual(_udp_payload(record), b"TRACE_SIG_ACCESS_UP: 0x01ABFF")

    def test_unknown_type_is_hex(self):
        frame = UserInterfaceFrame(user_interface_frame("ABCD", b"\x01\xab"))
        self.assertEqual(frame.message_interface_type, "UNKNOWN(0xABCD)")
        record = frame.to_pcap_record(self.tracker)
        self.assertEqual(_udp_payload(record), b"UNKNOWN(0xABCD): 0x01AB")


if __name__ == "__main__":
    unittest.main()
