"""
Conversion settings shared by the CLI and the conversion driver.
"""
from dataclasses import dataclass

from ..pcap_writer.packet_builder import LINKTYPE_ETHERNET


@dataclass
class ConversionConfig:
    link_type: int = LINKTYPE_ETHERNET
    """libpcap LINKTYPE_* written to the output global header"""

    input_suffix: str = ".ptmf"
    """Extension (case-insensitive) selecting input files in directory mode"""

    output_suffix: str = ".pcap"

    dump_hex: bool = False
    """Also write ``<input>.hex.txt`` with the hex of header and frames"""
