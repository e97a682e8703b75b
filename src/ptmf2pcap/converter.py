"""
File-level conversion driver shared by the command line tools.

Every failure is caught at the single-file boundary and turned into a
ConversionResult, so one bad file never aborts a batch.
"""
import logging
import os
from typing import Callable, List, Optional, Sequence, Tuple

from .exceptions import OutOfBoundsError, StructuralDecodeError, UnsupportedFileTypeError
from .models.config import ConversionConfig
from .models.result import ConversionResult, ConversionStatus
from .models.trace_file import PtmfFile
from .pcap_writer.packet_builder import build_pcap_file

logger = logging.getLogger(__name__)

InputOutput = Tuple[str, str]


def find_ptmf_files(dir_path: str, suffix: str = ".ptmf") -> List[str]:
    """Return the PTMF files directly inside ``dir_path`` (not recursive), sorted by name."""
    suffix = suffix.upper()
    paths = []
    for name in sorted(os.listdir(dir_path)):
        path = os.path.join(dir_path, name)
        if os.path.isfile(path) and name.upper().endswith(suffix):
            paths.append(path)
    return paths


def output_path_for(input_path: str, output_dir: str,
                    config: Optional[ConversionConfig] = None) -> str:
    """``<output_dir>/<input name without extension><output_suffix>``"""
    config = config or ConversionConfig()
    name = os.path.basename(input_path)
    if name.upper().endswith(config.input_suffix.upper()):
        name = name[:-len(config.input_suffix)]
    return os.path.join(output_dir, name + config.output_suffix)


def plan_directory(input_dir: str, output_dir: str,
                   config: Optional[ConversionConfig] = None) -> List[InputOutput]:
    config = config or ConversionConfig()
    return [
        (input_path, output_path_for(input_path, output_dir, config))
        for input_path in find_ptmf_files(input_dir, config.input_suffix)
    ]


def read_trace(input_path: str) -> bytes:
    with open(input_path, "rb") as f:
        return f.read()


def write_output(output_path: str, data: bytes):
    with open(output_path, "wb") as f:
        f.write(data)


def _write_hex_dump(trace: PtmfFile, input_path: str):
    dump_path = input_path + ".hex.txt"
    try:
        with open(dump_path, "w", encoding="utf-8", newline="") as f:
            f.write(trace.to_hex_dump())
    except OSError as e:
        logger.warning("Failed to write hex dump %s: %s", dump_path, e)
    else:
        logger.debug("Hex dump written to %s", dump_path)


def convert_file(input_path: str, output_path: str,
                 config: Optional[ConversionConfig] = None) -> ConversionResult:
    """Convert one PTMF file into one PCAP file."""
    config = config or ConversionConfig()

    def result(status: ConversionStatus, frame_count: int = 0,
               detail: Optional[str] = None) -> ConversionResult:
        if detail:
            logger.error("%s: %s", input_path, detail)
        return ConversionResult(input_path, output_path, status, frame_count, detail)

    try:
        raw = read_trace(input_path)
    except OSError as e:
        return result(ConversionStatus.FAILED_TO_READ_FROM_INPUT_FILE, detail=str(e))

    trace = PtmfFile(raw)
    if config.dump_hex:
        _write_hex_dump(trace, input_path)

    try:
        records = trace.to_pcap_records()
    except UnsupportedFileTypeError as e:
        return result(ConversionStatus.INPUT_FILE_TYPE_UNKNOWN, detail=str(e))
    except (StructuralDecodeError, OutOfBoundsError) as e:
        return result(ConversionStatus.INPUT_FILE_MALFORMED, detail=str(e))
    except Exception as e:
        # Keeps one undecodable file from stopping the rest of a batch
        logger.exception("%s: unexpected decode failure", input_path)
        return result(ConversionStatus.INPUT_FILE_MALFORMED,
                      detail=f"{type(e).__name__}: {e}")

    try:
        write_output(output_path, build_pcap_file(records, config.link_type))
    except OSError as e:
        return result(ConversionStatus.FAILED_TO_WRITE_TO_OUTPUT_FILE, len(records), str(e))

    logger.debug("%s: %d frames converted", input_path, len(records))
    return result(ConversionStatus.OK, len(records))


def convert_batch(input_output_list: Sequence[InputOutput],
                  config: Optional[ConversionConfig] = None,
                  on_start: Optional[Callable[[int, str, str], None]] = None,
                  on_result: Optional[Callable[[ConversionResult], None]] = None) -> List[ConversionResult]:
    """
    Convert files one after another.

    ``on_start(index, input_path, output_path)`` and ``on_result(result)``
    let a front-end report progress as each file is processed.
    """
    config = config or ConversionConfig()
    results = []
    for index, (input_path, output_path) in enumerate(input_output_list):
        if on_start:
            on_start(index, input_path, output_path)
        converted = convert_file(input_path, output_path, config)
        if on_result:
            on_result(converted)
        results.append(converted)
    return results


def count_errors(results: Sequence[ConversionResult]) -> int:
    return sum(1 for converted in results if not converted.ok)
