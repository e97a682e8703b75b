"""
Per-file conversion outcome reported back to the batch driver.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConversionStatus(Enum):
    OK = "OK"
    INPUT_FILE_TYPE_UNKNOWN = "INPUT_FILE_TYPE_UNKNOWN"
    INPUT_FILE_MALFORMED = "INPUT_FILE_MALFORMED"
    FAILED_TO_READ_FROM_INPUT_FILE = "FAILED_TO_READ_FROM_INPUT_FILE"
    FAILED_TO_WRITE_TO_OUTPUT_FILE = "FAILED_TO_WRITE_TO_OUTPUT_FILE"


@dataclass(frozen=True)
class ConversionResult:
    input_path: str
    output_path: str
    status: ConversionStatus
    frame_count: int = 0
    detail: Optional[str] = None
    """Error message, for logging only"""

    @property
    def ok(self) -> bool:
        return self.status is ConversionStatus.OK

    @property
    def result_text(self) -> str:
        """``OK`` or ``ERROR(<STATUS>)`` as printed by the CLI."""
        if self.ok:
            return "OK"
        return f"ERROR({self.status.value})"
