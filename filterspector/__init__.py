"""
FilterSpector - CAN filter simulation and builder engine

Predicts how a CAN logger's acceptance filters and prescalers reduce a
recorded trace, and builds new filter rule sets from selected traffic.

Main features:
- Parsing of mdf2csv frame traces and DBC message dictionaries
- Filter and prescaler replay against a trace
- Size contribution statistics with J1939 PGN grouping
- Filter set generation, capacity checks and deduplicating merges
- Supported OBD PID detection from query session traces
- HTML summary reports
"""
from .constants import SCRIPT_VERSION as __version__
from .errors import (
    FilterSpectorError, MalformedTraceHeader, TraceTooLarge, DictionaryPrefixMissing, InvalidFilterRule,
    CapacityExceeded, InvalidMergeResult,
)
from .models import (
    Direction, Disposition, IdFormat, MatchMethod, PrescalerType, MergePolicy, Frame, FilterRule,
    NoPrescaler, CountPrescaler, TimePrescaler, DataChangePrescaler, DictionaryMessage, AggregatedEntry,
    MergeResult,
)
from .trace import parse_trace, parse_trace_file, iter_trace_frames, receive_frames
from .dictionary import parse_dictionary_files, load_dictionary_files, find_dictionary_match
from .pgn import extract_pgn, pgn_mask, pgns_equal, is_pdu1
from .profiles import DeviceProfile, SplitCapacity, CombinedCapacity, CANEDGE, MASK_ONLY, detect_profile, profile_for_device
from .evaluator import extract_filters, evaluate_filters, evaluate_document, calculate_reduction
from .aggregator import aggregate_frames, frame_weight, search_entries, select_top, select_matched
from .builder import build_prescaler, build_filter_set, merge_filter_set, deduplicate_rules, remove_duplicate_filters, dump_filter_set
from .diagnostics import run_diagnostics
from .config import Settings, load_settings
from .obd import SupportedPids, parse_supported_pids, parse_supported_pids_trace
from .report import generate_html_report
