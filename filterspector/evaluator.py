"""
Replays a device's acceptance filters and prescalers against a recorded trace.

Filter lists are read from the configuration document once by
``extract_filters``; ``evaluate_filters`` then works on typed rules only and
never raises.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple
from .constants import MAX_PRESCALER_IDS_PER_CHANNEL, TIME_PRESCALER_RESOLUTION_DIGITS
from .errors import InvalidFilterRule
from .models import (
    Disposition, MatchMethod, Frame, FilterRule, NoPrescaler, CountPrescaler, TimePrescaler, DataChangePrescaler,
    Prescaler, PrescalerState,
)
from .profiles import CANEDGE, DeviceProfile, detect_profile
logger = logging.getLogger(__name__)
@dataclass(frozen=True)
class ChannelFilterConfig:
    """
    Filter settings of one bus channel.

    Attributes:
        channel (int): Bus channel number
        rules (Tuple[FilterRule, ...]): All rules in declaration order, disabled ones included
        remote_frames_enabled (Optional[bool]): Remote frame policy, None when the device has none
    """
    channel: int
    rules: Tuple[FilterRule, ...] = ()
    remote_frames_enabled: Optional[bool] = None
    @property
    def enabled_rules(self) -> List[FilterRule]:
        return [rule for rule in self.rules if rule.enabled]
@dataclass
class ChannelCounts:
    total: int = 0
    accepted: int = 0
    rejected: int = 0
@dataclass
class EvaluationStats:
    total_frames: int = 0
    accepted_frames: int = 0
    rejected_frames: int = 0
    by_channel: Dict[int, ChannelCounts] = field(default_factory=dict)
@dataclass
class EvaluationResult:
    accepted_frames: List[Frame] = field(default_factory=list)
    stats: EvaluationStats = field(default_factory=EvaluationStats)
    reduction_percent: float = 0.0
def matches_range(identifier: int, f1: int, f2: int) -> bool:
    return f1 <= identifier <= f2
def matches_mask(identifier: int, filter_id: int, filter_mask: int) -> bool:
    return (filter_id & filter_mask) == (identifier & filter_mask)
def rule_matches(rule: FilterRule, frame: Frame) -> bool:
    if rule.is_extended != frame.is_extended:
        return False
    if rule.method == MatchMethod.RANGE:
        return matches_range(frame.identifier, rule.f1, rule.f2)
    return matches_mask(frame.identifier, rule.f1, rule.f2)
class PrescalerRegistry:
    """
    Prescaler state for one evaluation run, keyed by (channel, identifier).

    Only the first ``max_ids_per_channel`` identifiers reaching a prescaled
    acceptance filter on a channel are tracked. Later identifiers are accepted
    without prescaling.
    """
    def __init__(self, max_ids_per_channel: int = MAX_PRESCALER_IDS_PER_CHANNEL):
        self.max_ids_per_channel = max_ids_per_channel
        self._states: Dict[Tuple[int, int], PrescalerState] = {}
        self._registered: Dict[int, Set[int]] = defaultdict(set)
    def registered_count(self, channel: int) -> int:
        return len(self._registered.get(channel, ()))
    def state_for(self, frame: Frame) -> Optional[PrescalerState]:
        """Returns the frame's state, registering it if there is room. None means the cap was hit."""
        registered = self._registered[frame.channel]
        if frame.identifier not in registered:
            if len(registered) >= self.max_ids_per_channel:
                return None
            registered.add(frame.identifier)
        key = (frame.channel, frame.identifier)
        state = self._states.get(key)
        if state is None:
            state = self._states[key] = PrescalerState()
        return state
    def apply(self, frame: Frame, prescaler: Prescaler) -> bool:
        if isinstance(prescaler, NoPrescaler):
            return True
        state = self.state_for(frame)
        if state is None:
            return True
        if isinstance(prescaler, CountPrescaler):
            accept = state.message_count % prescaler.n == 0
            state.message_count += 1
            return accept
        if isinstance(prescaler, TimePrescaler):
            if state.last_accepted_timestamp is None:
                state.last_accepted_timestamp = frame.timestamp
                return True
            elapsed_ms = round((frame.timestamp - state.last_accepted_timestamp) * 1000, TIME_PRESCALER_RESOLUTION_DIGITS)
            if elapsed_ms >= prescaler.ms:
                state.last_accepted_timestamp = frame.timestamp
                return True
            return False
        if isinstance(prescaler, DataChangePrescaler):
            if state.last_payload is None:
                state.last_payload = frame.payload_hex
                return True
            if _payload_changed(state.last_payload, frame.payload_hex, prescaler.byte_mask()):
                state.last_payload = frame.payload_hex
                return True
            return False
        return True
def _payload_values(payload_hex: str) -> List[Optional[int]]:
    """Payload bytes, None for a byte that is not valid hex."""
    cleaned = ''.join((payload_hex or '').split())
    values: List[Optional[int]] = []
    for i in range(0, len(cleaned), 2):
        try:
            values.append(int(cleaned[i:i + 2], 16))
        except ValueError:
            values.append(None)
    return values
def _payload_changed(previous_hex: str, current_hex: str, byte_mask: Optional[int]) -> bool:
    previous = _payload_values(previous_hex)
    current = _payload_values(current_hex)
    for i in range(max(len(previous), len(current))):
        if byte_mask is not None and not (byte_mask >> i) & 1:
            continue
        prev_byte = previous[i] if i < len(previous) else 0
        curr_byte = current[i] if i < len(current) else 0
        if prev_byte is None or curr_byte is None or prev_byte != curr_byte:
            return True
    return False
def accepts_frame(frame: Frame, channel_config: ChannelFilterConfig, registry: PrescalerRegistry) -> bool:
    """
    Decides whether the device logs ``frame`` under ``channel_config``.

    The first enabled rule with the frame's id format and a matching operand
    decides: rejection rules drop the frame, acceptance rules hand it to their
    prescaler. Frames matching no rule are dropped, as are all frames on a
    channel without enabled rules.
    """
    if frame.remote_request and channel_config.remote_frames_enabled is False:
        return False
    rules = channel_config.enabled_rules
    if not rules:
        return False
    for rule in rules:
        if not rule_matches(rule, frame):
            continue
        if rule.disposition == Disposition.REJECT:
            return False
        return registry.apply(frame, rule.prescaler)
    return False
def calculate_reduction(original_count: int, filtered_count: int) -> float:
    """Percentage of frames removed (0-100)."""
    if original_count == 0:
        return 0.0
    return (original_count - filtered_count) / original_count * 100
def evaluate_filters(frames: Iterable[Frame], filter_config: Mapping[int, ChannelFilterConfig]) -> EvaluationResult:
    """
    Applies per-channel filter settings to a frame sequence.

    Args:
        frames: Frames in trace order
        filter_config: Channel number -> ChannelFilterConfig. Channels missing
            from the map run on device default filters and pass every frame.

    Returns:
        EvaluationResult: Accepted frames in input order plus per-channel counts
    """
    registry = PrescalerRegistry()
    stats = EvaluationStats()
    accepted_frames: List[Frame] = []
    for frame in frames:
        stats.total_frames += 1
        counts = stats.by_channel.get(frame.channel)
        if counts is None:
            counts = stats.by_channel[frame.channel] = ChannelCounts()
        counts.total += 1
        channel_config = filter_config.get(frame.channel)
        accepted = True if channel_config is None else accepts_frame(frame, channel_config, registry)
        if accepted:
            accepted_frames.append(frame)
            stats.accepted_frames += 1
            counts.accepted += 1
        else:
            stats.rejected_frames += 1
            counts.rejected += 1
    reduction = calculate_reduction(stats.total_frames, len(accepted_frames))
    logger.debug("Filter evaluation kept %d of %d frames (%.2f%% reduction)", len(accepted_frames), stats.total_frames, reduction)
    return EvaluationResult(accepted_frames=accepted_frames, stats=stats, reduction_percent=reduction)
def extract_filters(document: Dict[str, Any], profile: DeviceProfile = CANEDGE) -> Dict[int, ChannelFilterConfig]:
    """
    Reads every channel's filter list from a configuration document.

    Raises:
        InvalidFilterRule: If a rule has a malformed operand or prescaler
    """
    filters: Dict[int, ChannelFilterConfig] = {}
    for channel in sorted(profile.channel_keys):
        raw_rules = profile.get_rules(document, channel)
        if raw_rules is None:
            continue
        rules = []
        for index, raw_rule in enumerate(raw_rules):
            try:
                rules.append(FilterRule.from_config(raw_rule))
            except InvalidFilterRule as e:
                raise InvalidFilterRule(f"CAN{channel} filter #{index + 1}: {e}", e.field, e.value) from e
        filters[channel] = ChannelFilterConfig(
            channel=channel,
            rules=tuple(rules),
            remote_frames_enabled=profile.remote_frames_enabled(document, channel),
        )
    return filters
def evaluate_document(frames: Iterable[Frame], document: Dict[str, Any],
                      profile: Optional[DeviceProfile] = None) -> EvaluationResult:
    if profile is None:
        profile = detect_profile(document)
    return evaluate_filters(frames, extract_filters(document, profile))
