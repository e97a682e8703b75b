"""
PTMF file model.

File structure:
- File header: everything before the first frame separator. Byte 23
  holds the file type code
- Repeated frames, each preceded by the separator ``6D 73 67 30`` ("msg0")

Only the file types produced by the SE2900 SBC family are supported:
SIP, Diameter, UserInterface and IP.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Type

from .frame import DiameterFrame, IpFrame, PtmfFrame, SipFrame, UserInterfaceFrame
from ..exceptions import OutOfBoundsError, StructuralDecodeError, UnsupportedFileTypeError
from ..pcap_writer.flow_sequence import FlowSequenceTracker
from ..pcap_writer.packet_builder import LINKTYPE_ETHERNET, build_pcap_file
from ..utils.bytecodec import hex_encode, split_on_delimiter, subrange

logger = logging.getLogger(__name__)

FRAME_SEPARATOR = b"\x6d\x73\x67\x30"
FILE_TYPE_OFFSET = 23
FILE_TYPE_LENGTH = 1


class FileType(Enum):
    SIP = "SIP"
    DIAMETER = "Diameter"
    USER_INTERFACE = "UserInterface"
    IP = "IP"
    UNKNOWN = "UNKNOWN"


FILE_TYPE_CODES: Dict[str, FileType] = {
    "01": FileType.SIP,
    "03": FileType.DIAMETER,
    "10": FileType.USER_INTERFACE,
    "53": FileType.IP,
}

FRAME_CLASSES: Dict[FileType, Type[PtmfFrame]] = {
    FileType.SIP: SipFrame,
    FileType.DIAMETER: DiameterFrame,
    FileType.USER_INTERFACE: UserInterfaceFrame,
    FileType.IP: IpFrame,
}


@dataclass(frozen=True)
class PtmfFile:
    """The complete, read-only content of one PTMF file."""
    raw: bytes

    @property
    def file_type_code(self) -> bytes:
        try:
            return subrange(self.raw, FILE_TYPE_OFFSET, FILE_TYPE_LENGTH)
        except OutOfBoundsError as e:
            raise StructuralDecodeError(
                f"file has {len(self.raw)} bytes, too short to hold its type code"
            ) from e

    @property
    def file_type_hex(self) -> str:
        return hex_encode(self.file_type_code)

    @property
    def file_type(self) -> FileType:
        return FILE_TYPE_CODES.get(self.file_type_hex, FileType.UNKNOWN)

    @property
    def is_supported(self) -> bool:
        return self.file_type is not FileType.UNKNOWN

    def _first_separator(self) -> int:
        return self.raw.find(FRAME_SEPARATOR)

    @property
    def header(self) -> bytes:
        """Bytes before the first separator (the whole file if there is none)."""
        index = self._first_separator()
        return self.raw if index == -1 else self.raw[:index]

    @property
    def frame_slices(self) -> List[bytes]:
        """Frame contents, in file order, with separators removed."""
        index = self._first_separator()
        if index == -1:
            return []
        # Starts with a separator, so no leading slice is produced
        return split_on_delimiter(self.raw[index:], FRAME_SEPARATOR)

    def frames(self) -> List[PtmfFrame]:
        """
        Decode every frame slice into its typed frame.

        A too-short last frame is a known firmware artifact and is dropped.
        A too-short frame anywhere else means the file is corrupt.

        Raises:
            UnsupportedFileTypeError: If the file type is not supported
            StructuralDecodeError: If a non-trailing frame is too short
        """
        file_type = self.file_type
        if file_type is FileType.UNKNOWN:
            raise UnsupportedFileTypeError(self.file_type_hex)

        frame_class = FRAME_CLASSES[file_type]
        slices = self.frame_slices
        last_index = len(slices) - 1
        frames = []
        for index, frame_bytes in enumerate(slices):
            frame = frame_class(frame_bytes, index)
            if frame.is_too_short:
                if index == last_index:
                    logger.debug("Dropping truncated trailing frame %d (%d bytes)",
                                 index, len(frame_bytes))
                    continue
                raise StructuralDecodeError(
                    f"{frame_class.TYPE_NAME} frame {index} has {len(frame_bytes)} bytes, "
                    f"header needs {frame.header_length}"
                )
            frames.append(frame)
        return frames

    def to_pcap_records(self, tracker: Optional[FlowSequenceTracker] = None) -> List[bytes]:
        """
        Convert every frame into a PCAP record, strictly in file order.

        Sequence numbers depend on the order frames are converted in, so the
        tracker is reset before the first frame. Without a tracker a fresh
        one is used for this call only.
        """
        if tracker is None:
            tracker = FlowSequenceTracker()
        tracker.reset_all()

        frames = self.frames()
        logger.debug("Decoding %d %s frames", len(frames), self.file_type.value)
        return [frame.to_pcap_record(tracker) for frame in frames]

    def to_pcap(self, link_type: int = LINKTYPE_ETHERNET,
                tracker: Optional[FlowSequenceTracker] = None) -> bytes:
        """Return the whole file converted to PCAP bytes."""
        return build_pcap_file(self.to_pcap_records(tracker), link_type)

    def to_hex_dump(self) -> str:
        """
        Uppercase hex of the header and of each frame, one per CRLF line.

        Useful when reverse engineering a new file or frame type.
        """
        lines = [hex_encode(self.header)]
        lines.extend(hex_encode(frame_bytes) for frame_bytes in self.frame_slices)
        return "\r\n".join(lines)
