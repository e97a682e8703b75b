"""
PTMF trace and conversion data models.
"""

from .config import ConversionConfig
from .frame import (
    DiameterFrame,
    FrameLayout,
    IpFrame,
    MessageCategory,
    PtmfFrame,
    SipFrame,
    Transport,
    UserInterfaceFrame,
)
from .result import ConversionResult, ConversionStatus
from .trace_file import FileType, PtmfFile

__all__ = [
    'ConversionConfig',
    'ConversionResult',
    'ConversionStatus',
    'DiameterFrame',
    'FileType',
    'FrameLayout',
    'IpFrame',
    'MessageCategory',
    'PtmfFile',
    'PtmfFrame',
    'SipFrame',
    'Transport',
    'UserInterfaceFrame',
]
