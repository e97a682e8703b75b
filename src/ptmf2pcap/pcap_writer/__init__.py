"""
Synthetic packet and PCAP container construction.
"""

from .flow_sequence import FlowSequenceTracker
from .packet_builder import LINKTYPE_ETHERNET, build_pcap_file, build_pcap_record

__all__ = [
    'FlowSequenceTracker',
    'LINKTYPE_ETHERNET',
    'build_pcap_file',
    'build_pcap_record',
]
