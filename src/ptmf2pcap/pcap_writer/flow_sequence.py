"""
Synthetic transport sequence numbers for reconstructed TCP/SCTP packets.

PTMF frames never record transport state, so sequence numbers are derived
from what has been "sent" so far on each directional flow. Keeping them
consistent within one file stops analyzers from flagging the reconstructed
packets as retransmissions or out-of-order segments.

A tracker lives for exactly one file decode. Never share an instance between
decodes running at the same time.
"""
from ipaddress import IPv4Address
from typing import Dict, Tuple

FlowKey = Tuple[IPv4Address, int, IPv4Address, int]

TCP_SEQ_MODULO = 1 << 32
SCTP_SEQ_MODULO = 1 << 16


class FlowSequenceTracker:
    """Per-flow counters for TCP sequence numbers and SCTP TSNs."""

    def __init__(self):
        self._tcp_seq: Dict[FlowKey, int] = {}
        self._sctp_tsn: Dict[FlowKey, int] = {}

    def reset_all(self):
        """Forget every flow. Call before decoding the first frame of a file."""
        self._tcp_seq.clear()
        self._sctp_tsn.clear()

    def next_tcp_seq(self, src_ip: IPv4Address, src_port: int,
                     dst_ip: IPv4Address, dst_port: int, body_length: int) -> int:
        """Return the sequence number for the next segment, then advance by its length."""
        key = (src_ip, src_port, dst_ip, dst_port)
        current = self._tcp_seq.get(key, 0)
        self._tcp_seq[key] = (current + body_length) % TCP_SEQ_MODULO
        return current

    def tcp_ack_for(self, src_ip: IPv4Address, src_port: int,
                    dst_ip: IPv4Address, dst_port: int) -> int:
        """
        Return what the reverse direction (dst -> src) has sent so far.

        This is a guess at an acknowledgment number, it does not advance
        any counter.
        """
        return self._tcp_seq.get((dst_ip, dst_port, src_ip, src_port), 0)

    def next_sctp_seq(self, src_ip: IPv4Address, src_port: int,
                      dst_ip: IPv4Address, dst_port: int) -> int:
        """Return the TSN for the next DATA chunk, then advance by one."""
        key = (src_ip, src_port, dst_ip, dst_port)
        current = self._sctp_tsn.get(key, 0)
        self._sctp_tsn[key] = (current + 1) % SCTP_SEQ_MODULO
        return current

    @property
    def flow_count(self) -> int:
        """Number of distinct directional flows seen so far."""
        return len(self._tcp_seq) + len(self._sctp_tsn)
