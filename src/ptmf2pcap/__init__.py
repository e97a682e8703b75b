"""
ptmf2pcap - convert PTMF frame traces into PCAP files.
"""

__version__ = "1.0.0"
