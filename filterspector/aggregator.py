"""
Size-contribution statistics for a frame sequence.

Frames are grouped by channel and identifier, weighted by a payload-length
dependent estimate of their share in the logged file, annotated with the
dictionary and optionally merged by J1939 PGN.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from .constants import (
    DEFAULT_FRAME_WEIGHT_SCALE, FRAME_WEIGHT_ANCHORS, MF4_RATIO_MIN, MF4_RATIO_MAX, MF4_RATIO_MIN_LENGTH,
    MF4_RATIO_MAX_LENGTH, MFC_TO_MF4_RATIO, DEFAULT_AVG_DATA_LENGTH, STANDARD_ID_MAX, BYTES_PER_MB,
)
from .config import Settings
from .dictionary import DictionaryParseResult, find_dictionary_match
from .models import AggregatedEntry, Frame
from .pgn import extract_pgn
logger = logging.getLogger(__name__)
@dataclass
class ChannelSummary:
    channel: int
    identifiers: int = 0
    extended_identifiers: int = 0
@dataclass(frozen=True)
class SessionMetrics:
    """
    Descriptive numbers for one (raw or filtered) frame set.

    ``mb_per_min`` is the CSV data rate, derived from the source file size
    scaled by ``reduction_percent``. MF4 and MFC rates are estimates derived
    from it with a length-dependent compression ratio.
    """
    total_frames: int = 0
    unique_entries: int = 0
    duration_s: float = 0.0
    frames_per_second: float = 0.0
    avg_data_length: float = DEFAULT_AVG_DATA_LENGTH
    source_size_bytes: Optional[int] = None
    reduction_percent: float = 0.0
    estimated_size_bytes: float = 0.0
    mb_per_min: float = 0.0
    mf4_ratio: float = MF4_RATIO_MIN
    mfc_ratio: float = MF4_RATIO_MIN * MFC_TO_MF4_RATIO
    @property
    def mf4_mb_per_min(self) -> float:
        return self.mb_per_min * self.mf4_ratio
    @property
    def mfc_mb_per_min(self) -> float:
        return self.mb_per_min * self.mfc_ratio
@dataclass
class Aggregation:
    entries: List[AggregatedEntry] = field(default_factory=list)
    total_frames: int = 0
    total_weight: float = 0.0
    channels: Dict[int, ChannelSummary] = field(default_factory=dict)
    metrics: SessionMetrics = field(default_factory=SessionMetrics)
    grouped_by_pgn: bool = False
    @property
    def trace_entries(self) -> List[AggregatedEntry]:
        return [entry for entry in self.entries if not entry.from_dictionary_only]
def frame_weight(data_length: int, scale: float = DEFAULT_FRAME_WEIGHT_SCALE) -> float:
    """
    Relative logged size of one frame with ``data_length`` payload bytes.

    Piecewise linear through the measured anchors (8 B = 1.0 ... 64 B = 4.16),
    flat below 8 B and extended along the last segment above 64 B.
    """
    first_length, first_ratio = FRAME_WEIGHT_ANCHORS[0]
    if data_length <= first_length:
        return scale * first_ratio
    segments = list(zip(FRAME_WEIGHT_ANCHORS, FRAME_WEIGHT_ANCHORS[1:]))
    for index, ((x0, y0), (x1, y1)) in enumerate(segments):
        if data_length <= x1 or index == len(segments) - 1:
            return scale * (y0 + (data_length - x0) * (y1 - y0) / (x1 - x0))
    return scale * first_ratio
def mf4_ratio(avg_data_length: float) -> float:
    if avg_data_length <= MF4_RATIO_MIN_LENGTH:
        return MF4_RATIO_MIN
    if avg_data_length >= MF4_RATIO_MAX_LENGTH:
        return MF4_RATIO_MAX
    return MF4_RATIO_MIN + (avg_data_length - MF4_RATIO_MIN_LENGTH) * (MF4_RATIO_MAX - MF4_RATIO_MIN) / (MF4_RATIO_MAX_LENGTH - MF4_RATIO_MIN_LENGTH)
def session_metrics(frames: Sequence[Frame], unique_entries: int = 0, source_size_bytes: Optional[int] = None,
                    reduction_percent: float = 0.0) -> SessionMetrics:
    """
    Args:
        frames: Active frame set in trace order
        unique_entries: Number of aggregated trace entries
        source_size_bytes: Size of the trace file the frames were read from
        reduction_percent: Share of frames removed by filtering, used to scale the source size

    Returns:
        SessionMetrics
    """
    if not frames:
        return SessionMetrics(source_size_bytes=source_size_bytes, reduction_percent=reduction_percent)
    duration = frames[-1].timestamp - frames[0].timestamp
    avg_length = sum(frame.data_length or 0 for frame in frames) / len(frames)
    size_bytes = (source_size_bytes or 0) * (1 - reduction_percent / 100)
    ratio = mf4_ratio(avg_length)
    return SessionMetrics(
        total_frames=len(frames),
        unique_entries=unique_entries,
        duration_s=duration,
        frames_per_second=len(frames) / duration if duration > 0 else 0.0,
        avg_data_length=avg_length,
        source_size_bytes=source_size_bytes,
        reduction_percent=reduction_percent,
        estimated_size_bytes=size_bytes,
        mb_per_min=(size_bytes / BYTES_PER_MB) / (duration / 60) if duration > 0 else 0.0,
        mf4_ratio=ratio,
        mfc_ratio=ratio * MFC_TO_MF4_RATIO,
    )
def _count_frames(frames: Sequence[Frame], scale: float) -> Tuple["OrderedDict[Tuple[int, int, bool], dict]", float]:
    groups: "OrderedDict[Tuple[int, int, bool], dict]" = OrderedDict()
    total_weight = 0.0
    for frame in frames:
        weight = frame_weight(frame.data_length, scale)
        total_weight += weight
        key = (frame.channel, frame.identifier, frame.is_extended)
        group = groups.get(key)
        if group is None:
            groups[key] = {'count': 1, 'weight': weight, 'data_length': frame.data_length}
        else:
            group['count'] += 1
            group['weight'] += weight
    return groups, total_weight
def _group_by_pgn(entries: List[AggregatedEntry]) -> List[AggregatedEntry]:
    groups: "OrderedDict[Tuple[int, int], List[AggregatedEntry]]" = OrderedDict()
    standard: List[AggregatedEntry] = []
    for entry in entries:
        if not entry.is_extended:
            standard.append(entry)
            continue
        groups.setdefault((entry.channel, extract_pgn(entry.identifier)), []).append(entry)
    grouped = []
    for (_, pgn), members in groups.items():
        first = members[0]
        percentages = [m.percentage for m in members if m.percentage is not None]
        grouped.append(replace(
            first,
            count=sum(m.count for m in members),
            weighted_size=sum(m.weighted_size for m in members),
            percentage=sum(percentages) if percentages else None,
            pgn=pgn,
            is_group=True,
            grouped_identifiers=tuple(m.identifier for m in members),
            from_dictionary_only=all(m.from_dictionary_only for m in members),
        ))
    return sorted(grouped + standard, key=lambda e: -(e.percentage or 0.0))
def aggregate_frames(frames: Iterable[Frame], dictionary: Optional[DictionaryParseResult] = None,
                     group_by_pgn: Optional[bool] = None, weight_scale: Optional[float] = None,
                     source_size_bytes: Optional[int] = None, reduction_percent: float = 0.0,
                     settings: Optional[Settings] = None) -> Aggregation:
    """
    Builds the size-contribution summary of a frame sequence.

    Args:
        frames: Raw or filter-evaluated frames in trace order
        dictionary: Parsed dictionary used to name entries and to add
            dictionary-only entries for messages absent from the trace
        group_by_pgn: Merge 29-bit entries by (channel, PGN), ``settings.group_by_pgn`` when None
        weight_scale: Scale factor of ``frame_weight``, ``settings.frame_weight_scale`` when None
        source_size_bytes: Trace file size, for the data rate metrics
        reduction_percent: Frame reduction of a filter evaluation, for the data rate metrics
        settings: Source of the grouping and weight defaults

    Returns:
        Aggregation: Entries sorted by descending size share, identical for identical inputs
    """
    settings = settings or Settings()
    group_by_pgn = settings.group_by_pgn if group_by_pgn is None else group_by_pgn
    weight_scale = settings.frame_weight_scale if weight_scale is None else weight_scale
    frames = list(frames)
    groups, total_weight = _count_frames(frames, weight_scale)
    entries: List[AggregatedEntry] = []
    matched_keys = set()
    for (channel, identifier, is_extended), group in groups.items():
        message = find_dictionary_match(channel, identifier, dictionary) if dictionary else None
        if message is not None:
            matched_keys.add(message.key)
        entries.append(AggregatedEntry(
            channel=channel,
            identifier=identifier,
            is_extended=is_extended,
            count=group['count'],
            weighted_size=group['weight'],
            percentage=group['weight'] / total_weight * 100 if total_weight > 0 else 0.0,
            data_length=group['data_length'],
            dictionary_message=message,
            pgn=extract_pgn(identifier) if is_extended else None,
            length_mismatch=message is not None and group['data_length'] != message.byte_length,
        ))
    entries.sort(key=lambda e: -e.percentage)
    channels: Dict[int, ChannelSummary] = {}
    for entry in entries:
        summary = channels.setdefault(entry.channel, ChannelSummary(entry.channel))
        summary.identifiers += 1
        if entry.is_extended:
            summary.extended_identifiers += 1
    trace_entry_count = len(entries)
    if dictionary:
        for key, message in dictionary.messages.items():
            if key in matched_keys:
                continue
            is_extended = message.raw_identifier > STANDARD_ID_MAX
            entries.append(AggregatedEntry(
                channel=message.channel,
                identifier=message.identifier,
                is_extended=is_extended,
                count=0,
                weighted_size=0.0,
                percentage=None,
                data_length=None,
                dictionary_message=message,
                pgn=extract_pgn(message.identifier) if is_extended else None,
                from_dictionary_only=True,
            ))
    if group_by_pgn:
        entries = _group_by_pgn(entries)
    metrics = session_metrics(frames, trace_entry_count, source_size_bytes, reduction_percent)
    logger.debug("Aggregated %d frames into %d entries (%d from dictionary only)",
                 len(frames), trace_entry_count, sum(1 for e in entries if e.from_dictionary_only))
    return Aggregation(
        entries=entries,
        total_frames=len(frames),
        total_weight=total_weight,
        channels=dict(sorted(channels.items())),
        metrics=metrics,
        grouped_by_pgn=group_by_pgn,
    )
def search_entries(entries: Iterable[AggregatedEntry], query: str) -> List[AggregatedEntry]:
    """Case-insensitive substring search over channel, id, name, comment, signals and match token."""
    entries = list(entries)
    query = (query or '').strip().lower()
    if not query:
        return entries
    return [entry for entry in entries if query in entry.search_text]
def select_top(entries: Iterable[AggregatedEntry], count: int) -> List[AggregatedEntry]:
    return [entry for entry in entries if not entry.from_dictionary_only][:max(count, 0)]
def select_matched(entries: Iterable[AggregatedEntry], matched: bool = True) -> List[AggregatedEntry]:
    return [entry for entry in entries if not entry.from_dictionary_only and entry.is_matched == matched]
