"""
Parser for raw CAN frame traces in the mdf2csv CSV layout.

Expected header (semicolon separated):
    TimestampEpoch;BusChannel;ID;IDE;DLC;DataLength;Dir;EDL;BRS;ESI;RTR;DataBytes
"""
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional
from .config import Settings
from .constants import TRACE_REQUIRED_COLUMNS, DEFAULT_TRACE_DELIMITER, HEX_ID_RE, PAYLOAD_HEX_RE, UTF8_BOM, BYTES_PER_MB, OBD_RESPONSE_PGN
from .errors import MalformedTraceHeader, TraceTooLarge
from .models import Direction, Frame
from .pgn import extract_pgn
logger = logging.getLogger(__name__)
@dataclass
class TraceParseResult:
    frames: List[Frame] = field(default_factory=list)
    error: Optional[MalformedTraceHeader] = None
    lines_skipped: int = 0
    @property
    def ok(self) -> bool:
        return self.error is None
def validate_trace_header(header_line: str, delimiter: str = DEFAULT_TRACE_DELIMITER) -> List[str]:
    """Returns the required columns missing from ``header_line`` (empty list when valid)."""
    columns = [col.strip() for col in header_line.split(delimiter)]
    return [req for req in TRACE_REQUIRED_COLUMNS if req not in columns]
def _int_field(values: List[str], index: int, default: int = 0) -> int:
    try:
        return int(values[index].strip() or default)
    except (ValueError, IndexError):
        return default
def _parse_line(values: List[str], column_index: Dict[str, int]) -> Optional[Frame]:
    try:
        timestamp = float(values[column_index['TimestampEpoch']])
        channel = int(values[column_index['BusChannel']].strip())
    except ValueError:
        return None
    if math.isnan(timestamp):
        return None
    id_str = values[column_index['ID']].strip()
    if not id_str or not HEX_ID_RE.match(id_str):
        return None
    payload_hex = values[column_index['DataBytes']].strip()
    if not PAYLOAD_HEX_RE.match(payload_hex):
        return None
    try:
        return Frame(
            timestamp=timestamp,
            channel=channel,
            identifier=int(id_str, 16),
            is_extended=_int_field(values, column_index['IDE']) == 1,
            dlc=_int_field(values, column_index['DLC']),
            data_length=_int_field(values, column_index['DataLength']),
            direction=Direction.TX if _int_field(values, column_index['Dir']) == 1 else Direction.RX,
            edl=_int_field(values, column_index['EDL']) == 1,
            brs=_int_field(values, column_index['BRS']) == 1,
            esi=_int_field(values, column_index['ESI']) == 1,
            remote_request=_int_field(values, column_index['RTR']) == 1,
            payload_hex=payload_hex,
        )
    except ValueError:
        return None
def iter_trace_frames(lines: Iterable[str], delimiter: str = DEFAULT_TRACE_DELIMITER) -> Iterator[Frame]:
    """
    Yields frames from an iterable of trace lines in a single pass.

    The first non-empty line is the header. Malformed data lines are skipped.

    Raises:
        MalformedTraceHeader: If the header lacks a required column
    """
    line_iter = iter(lines)
    header_line = ''
    for line in line_iter:
        if line.strip():
            header_line = line.strip().lstrip(UTF8_BOM)
            break
    if not header_line:
        return
    missing = validate_trace_header(header_line, delimiter)
    if missing:
        raise MalformedTraceHeader(missing)
    header = header_line.split(delimiter)
    column_index = {col.strip(): idx for idx, col in enumerate(header)}
    expected_column_count = len(header)
    for line in line_iter:
        line = line.strip()
        if not line:
            continue
        values = line.split(delimiter)
        if len(values) < expected_column_count:
            continue
        frame = _parse_line(values, column_index)
        if frame is not None:
            yield frame
def parse_trace(text: str, delimiter: str = DEFAULT_TRACE_DELIMITER) -> TraceParseResult:
    """
    Parses trace text into frames, preserving input order.

    Args:
        text (str): Raw CSV content including the header line
        delimiter (str): Field separator

    Returns:
        TraceParseResult: Frames plus ``error`` set to a MalformedTraceHeader
        (and no frames) when the header is invalid
    """
    lines = text.splitlines()
    data_lines = max(0, sum(1 for line in lines if line.strip()) - 1)
    try:
        frames = list(iter_trace_frames(lines, delimiter))
    except MalformedTraceHeader as e:
        logger.debug("Trace header rejected: %s", e)
        return TraceParseResult(frames=[], error=e)
    skipped = max(0, data_lines - len(frames))
    logger.debug("Parsed %d frames from trace (%d lines skipped)", len(frames), skipped)
    return TraceParseResult(frames=frames, lines_skipped=skipped)
def parse_trace_file(path: str, delimiter: Optional[str] = None, max_size_mb: Optional[float] = None,
                     settings: Optional[Settings] = None) -> TraceParseResult:
    """
    Reads and parses a trace file.

    Args:
        path (str): Trace file path
        delimiter (Optional[str]): Field separator, ``settings.trace_delimiter`` when None
        max_size_mb (Optional[float]): Size ceiling, ``settings.max_trace_size_mb`` when None
        settings (Optional[Settings]): Source of the defaults above

    Raises:
        FileNotFoundError: If ``path`` does not exist
        TraceTooLarge: If the file exceeds the size ceiling
    """
    settings = settings or Settings()
    delimiter = settings.trace_delimiter if delimiter is None else delimiter
    max_size_mb = settings.max_trace_size_mb if max_size_mb is None else max_size_mb
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Trace file not found: {path}")
    size_bytes = os.path.getsize(path)
    if size_bytes > max_size_mb * BYTES_PER_MB:
        raise TraceTooLarge(path, size_bytes, max_size_mb)
    with open(path, 'r', encoding='utf-8-sig', errors='ignore') as f:
        return parse_trace(f.read(), delimiter)
def receive_frames(frames: Iterable[Frame]) -> List[Frame]:
    return [frame for frame in frames if frame.direction == Direction.RX]
def is_obd_response_29bit(identifier: int) -> bool:
    return extract_pgn(identifier) == OBD_RESPONSE_PGN
