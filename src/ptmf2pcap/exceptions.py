"""
Exceptions raised while decoding PTMF traces and building PCAP output.

File-level errors (structure, file type) abort the conversion of one file.
FieldParseError is field-level: callers log it and degrade the field.
"""


class Ptmf2PcapError(Exception):
    """Base class for all conversion errors."""


class OutOfBoundsError(Ptmf2PcapError):
    """A byte range does not fit inside the buffer it was taken from."""

    def __init__(self, start: int, length: int, size: int):
        self.start = start
        self.length = length
        self.size = size
        super().__init__(
            f"Range [{start}:{start + length}] out of bounds for buffer of {size} bytes"
        )


class StructuralDecodeError(Ptmf2PcapError):
    """The file layout is broken (non-trailing short frame, missing type byte...)."""


class UnsupportedFileTypeError(Ptmf2PcapError):
    """The file type code is not one of the supported PTMF families."""

    def __init__(self, file_type_hex: str):
        self.file_type_hex = file_type_hex
        super().__init__(f"fileType=0x{file_type_hex} not recognized")


class FieldParseError(Ptmf2PcapError):
    """A header field (date, address) holds a value that cannot be decoded."""
