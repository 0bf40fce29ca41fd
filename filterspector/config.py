import json
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Optional
from .constants import (
    DEFAULT_TRACE_DELIMITER, DEFAULT_MAX_TRACE_SIZE_MB, DEFAULT_FRAME_WEIGHT_SCALE, DEFAULT_SUMMARY_LIMIT,
    DEFAULT_CHART_LIMIT,
)
from .models import MergePolicy
logger = logging.getLogger(__name__)
@dataclass(frozen=True)
class Settings:
    """
    Run-time settings. Every field defaults to the matching ``DEFAULT_*`` constant.

    Attributes:
        trace_delimiter (str): Field separator of trace files
        max_trace_size_mb (float): Largest trace file accepted by ``parse_trace_file``
        frame_weight_scale (float): Scale factor of the frame weight function
        group_by_pgn (bool): Merge 29-bit entries by J1939 PGN
        summary_limit (int): Rows in the report's top contributor table
        chart_limit (int): Bars in the report's size share chart
        merge_policy (MergePolicy): Default policy for merging built filter sets
    """
    trace_delimiter: str = DEFAULT_TRACE_DELIMITER
    max_trace_size_mb: float = DEFAULT_MAX_TRACE_SIZE_MB
    frame_weight_scale: float = DEFAULT_FRAME_WEIGHT_SCALE
    group_by_pgn: bool = False
    summary_limit: int = DEFAULT_SUMMARY_LIMIT
    chart_limit: int = DEFAULT_CHART_LIMIT
    merge_policy: MergePolicy = MergePolicy.REPLACE
    def __post_init__(self):
        if not isinstance(self.merge_policy, MergePolicy):
            object.__setattr__(self, 'merge_policy', MergePolicy(self.merge_policy))
        if self.summary_limit < 1 or self.chart_limit < 1:
            raise ValueError("summary_limit and chart_limit must be positive")
        if self.max_trace_size_mb <= 0:
            raise ValueError("max_trace_size_mb must be positive")
def load_settings(path: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Loads settings from a JSON file; keyword overrides win over file values.

    Args:
        path (Optional[str]): JSON object with a subset of the Settings fields
        **overrides: Field values taking precedence over the file

    Raises:
        FileNotFoundError: If ``path`` does not exist
        ValueError: On invalid JSON or unknown keys
    """
    values = {}
    if path:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Configuration file not found: {path}")
        try:
            with open(path, 'r') as f:
                values = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Syntax error in JSON configuration file {path}: {e}") from e
        if not isinstance(values, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")
    values.update({k: v for k, v in overrides.items() if v is not None})
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")
    settings = replace(Settings(), **values)
    logger.debug("Loaded settings: %s", settings)
    return settings
