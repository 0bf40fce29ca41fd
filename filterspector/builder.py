"""
Builds filter rule sets from selected traffic and merges them into a
configuration document.

Every step is all-or-nothing: capacity and schema problems raise before a
filter set or merged document is returned, and the caller's document is
never modified.
"""
import copy
import json
import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import jsonschema
from .config import Settings
from .constants import (
    COUNT_PRESCALER_MIN, COUNT_PRESCALER_MAX, TIME_PRESCALER_MIN_MS, TIME_PRESCALER_MAX_MS,
    MAX_FILTER_NAME_LENGTH, STANDARD_ID_MAX, EXTENDED_ID_MAX,
)
from .errors import CapacityExceeded, InvalidFilterRule, InvalidMergeResult
from .models import (
    AggregatedEntry, Disposition, FilterRule, IdFormat, MatchMethod, MergePolicy, MergeResult,
    NoPrescaler, CountPrescaler, TimePrescaler, DataChangePrescaler, Prescaler, PrescalerType,
)
from .pgn import extract_pgn, pgn_filter_id, pgn_filter_mask
from .profiles import CANEDGE, DeviceProfile
logger = logging.getLogger(__name__)
PRESCALER_KINDS = {
    'none': PrescalerType.NONE,
    'count': PrescalerType.COUNT,
    'time': PrescalerType.TIME,
    'data': PrescalerType.DATA,
}
def _bounded_int(value: Any, low: int, high: int, label: str) -> int:
    if isinstance(value, bool):
        raise InvalidFilterRule(f"{label} must be an integer, got {value!r}.", 'prescaler_value', value)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidFilterRule(f"{label} must be an integer, got {value!r}.", 'prescaler_value', value) from None
    if not (low <= number <= high):
        raise InvalidFilterRule(f"{label} must be between {low} and {high}, got {number}.", 'prescaler_value', value)
    return number
def build_prescaler(kind: Union[str, PrescalerType, None], value: Any = None) -> Prescaler:
    """
    Creates a validated prescaler.

    Args:
        kind: 'none', 'count', 'time', 'data' or a PrescalerType
        value: Every n-th frame (count), minimum period in ms (time) or a hex
            byte mask, empty for all bytes (data)

    Raises:
        InvalidFilterRule: On an unknown kind, an out-of-range value or a non-hex mask
    """
    if kind is None:
        return NoPrescaler()
    if isinstance(kind, str):
        if kind.strip().lower() not in PRESCALER_KINDS:
            raise InvalidFilterRule(f"Unknown prescaler type {kind!r}.", 'prescaler_type', kind)
        kind = PRESCALER_KINDS[kind.strip().lower()]
    try:
        kind = PrescalerType(kind)
    except ValueError:
        raise InvalidFilterRule(f"Unknown prescaler type {kind!r}.", 'prescaler_type', kind) from None
    if kind == PrescalerType.NONE:
        return NoPrescaler()
    if kind == PrescalerType.COUNT:
        return CountPrescaler(_bounded_int(value, COUNT_PRESCALER_MIN, COUNT_PRESCALER_MAX, "Count prescaler"))
    if kind == PrescalerType.TIME:
        return TimePrescaler(_bounded_int(value, TIME_PRESCALER_MIN_MS, TIME_PRESCALER_MAX_MS, "Time prescaler"))
    mask = '' if value is None else str(value).strip()
    if mask.lower().startswith('0x'):
        mask = mask[2:]
    if mask and not all(c in '0123456789abcdefABCDEF' for c in mask):
        raise InvalidFilterRule(f"Data prescaler mask must be hexadecimal, got {value!r}.", 'prescaler_value', value)
    return DataChangePrescaler(mask.upper())
def validate_prescaler(prescaler: Prescaler) -> Prescaler:
    return build_prescaler(prescaler.kind, prescaler.wire_value())
def _partition_by_channel(selection: Iterable[AggregatedEntry]) -> "OrderedDict[int, List[AggregatedEntry]]":
    channels: "OrderedDict[int, List[AggregatedEntry]]" = OrderedDict()
    for entry in selection:
        channels.setdefault(entry.channel, []).append(entry)
    return channels
def _entry_is_extended(entry: AggregatedEntry) -> bool:
    return entry.is_group or entry.is_extended
def validate_capacity(channel: int, standard_count: int, extended_count: int, profile: DeviceProfile,
                      existing_standard: int = 0, existing_extended: int = 0) -> None:
    """
    Raises CapacityExceeded when a channel's rule counts do not fit the device.

    Counts include the existing rules; ``existing_*`` only shapes the error message.
    """
    existing = dict(zip(('11-bit', '29-bit', 'total'),
                        (existing_standard, existing_extended, existing_standard + existing_extended)))
    for kind, count, limit in profile.capacity.checks(standard_count, extended_count):
        if count > limit:
            raise CapacityExceeded(channel, kind, count, limit, existing=existing[kind])
def rule_for_entry(entry: AggregatedEntry, profile: DeviceProfile, disposition: Disposition,
                   prescaler: Prescaler) -> FilterRule:
    if entry.is_group:
        pgn = entry.pgn if entry.pgn is not None else extract_pgn(entry.identifier)
        return FilterRule(
            name=(entry.name or f"PGN {pgn:X}")[:MAX_FILTER_NAME_LENGTH],
            f1=pgn_filter_id(pgn),
            f2=pgn_filter_mask(pgn),
            disposition=disposition,
            id_format=IdFormat.EXTENDED,
            method=MatchMethod.MASK,
            prescaler=prescaler,
        )
    id_format = IdFormat.EXTENDED if entry.is_extended else IdFormat.STANDARD
    if profile.supports_range:
        method, f2 = MatchMethod.RANGE, entry.identifier
    else:
        method, f2 = MatchMethod.MASK, EXTENDED_ID_MAX if entry.is_extended else STANDARD_ID_MAX
    return FilterRule(
        name=(entry.name or entry.id_hex)[:MAX_FILTER_NAME_LENGTH],
        f1=entry.identifier,
        f2=f2,
        disposition=disposition,
        id_format=id_format,
        method=method,
        prescaler=prescaler,
    )
def build_filter_rules(selection: Iterable[AggregatedEntry], profile: DeviceProfile = CANEDGE,
                       disposition: Disposition = Disposition.ACCEPT,
                       prescaler: Optional[Prescaler] = None) -> "OrderedDict[int, List[FilterRule]]":
    """
    Turns selected entries into typed rules per channel.

    Capacity is checked for every channel before any rule is created. Channels
    the profile has no configuration key for are left out.

    Raises:
        CapacityExceeded: If a channel's new rules alone exceed the device limit
        InvalidFilterRule: If the prescaler is out of range
    """
    prescaler = validate_prescaler(prescaler or NoPrescaler())
    disposition = Disposition(disposition)
    channels = _partition_by_channel(selection)
    for channel, entries in channels.items():
        extended = sum(1 for entry in entries if _entry_is_extended(entry))
        validate_capacity(channel, len(entries) - extended, extended, profile)
    rules: "OrderedDict[int, List[FilterRule]]" = OrderedDict()
    for channel, entries in channels.items():
        if profile.config_key(channel) is None:
            logger.warning("CAN%d has no configuration key on %s devices, skipping %d entries", channel, profile.name, len(entries))
            continue
        rules[channel] = [rule_for_entry(entry, profile, disposition, prescaler) for entry in entries]
    return rules
def build_filter_set(selection: Iterable[AggregatedEntry], profile: DeviceProfile = CANEDGE,
                     disposition: Disposition = Disposition.ACCEPT,
                     prescaler: Optional[Prescaler] = None) -> Dict[str, Any]:
    """
    Builds the partial configuration document holding the new rules.

    Args:
        selection: Aggregated entries picked by the user
        profile: Target device
        disposition: Accept or reject the selected traffic
        prescaler: Prescaler applied to every new rule, none by default

    Returns:
        Dict: JSON-serializable document restricted to the affected channels
    """
    filter_set: Dict[str, Any] = {}
    rules = build_filter_rules(selection, profile, disposition, prescaler)
    for channel, channel_rules in rules.items():
        profile.set_rules(filter_set, channel, [rule.to_config() for rule in channel_rules])
    logger.debug("Built %d filter rules on %d channels", sum(len(r) for r in rules.values()), len(rules))
    return filter_set
def dump_filter_set(filter_set: Dict[str, Any], indent: int = 2) -> str:
    return json.dumps(filter_set, indent=indent)
def _rule_key(rule: Any) -> str:
    if isinstance(rule, FilterRule):
        rule = rule.to_config()
    if isinstance(rule, dict):
        return json.dumps({k: v for k, v in rule.items() if k != 'name'}, sort_keys=True)
    return json.dumps(rule, sort_keys=True)
def deduplicate_rules(rules: Iterable[Any]) -> Tuple[List[Any], int]:
    """
    Drops rules equal to an earlier one in every field except ``name``.

    Returns:
        Tuple: (remaining rules in order, number removed)
    """
    seen = set()
    unique = []
    removed = 0
    for rule in rules:
        key = _rule_key(rule)
        if key in seen:
            removed += 1
            continue
        seen.add(key)
        unique.append(rule)
    return unique, removed
def _deduplicate_document(document: Dict[str, Any], profile: DeviceProfile) -> int:
    removed = 0
    for channel in profile.channel_keys:
        rules = profile.get_rules(document, channel)
        if rules is None:
            continue
        unique, count = deduplicate_rules(rules)
        if count:
            profile.set_rules(document, channel, unique)
            removed += count
    return removed
def remove_duplicate_filters(document: Dict[str, Any], profile: DeviceProfile = CANEDGE) -> MergeResult:
    result = copy.deepcopy(document)
    return MergeResult(document=result, duplicates_removed=_deduplicate_document(result, profile))
def _count_widths(rules: List[Any]) -> Tuple[int, int]:
    extended = sum(1 for rule in rules if isinstance(rule, dict) and rule.get('id_format') == int(IdFormat.EXTENDED))
    return len(rules) - extended, extended
def _merge_lists(existing: List[Any], new: List[Any], policy: MergePolicy) -> List[Any]:
    if policy == MergePolicy.REPLACE:
        return list(new)
    if policy == MergePolicy.APPEND_TOP:
        return list(new) + list(existing)
    return list(existing) + list(new)
def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any], policy: MergePolicy) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value, policy)
        elif isinstance(current, list) and isinstance(value, list):
            merged[key] = _merge_lists(current, value, policy)
        else:
            merged[key] = value
    return merged
def validate_document(document: Dict[str, Any], schema: Dict[str, Any]) -> None:
    """
    Raises:
        InvalidMergeResult: Listing every schema violation of ``document``
    """
    validator_cls = jsonschema.validators.validator_for(schema)
    validator = validator_cls(schema)
    errors = sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        messages = [f"{'/'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}" for e in errors]
        raise InvalidMergeResult(f"Merged configuration is invalid ({len(errors)} schema errors): {messages[0]}", messages)
def merge_filter_set(document: Dict[str, Any], filter_set: Dict[str, Any], profile: DeviceProfile = CANEDGE,
                     policy: Union[MergePolicy, str, None] = None,
                     schema: Optional[Dict[str, Any]] = None, settings: Optional[Settings] = None) -> MergeResult:
    """
    Merges a built filter set into a copy of ``document``.

    Args:
        document: Current configuration document, left unchanged
        filter_set: Output of ``build_filter_set``
        profile: Target device
        policy: replace, append_top or append_bottom, applied to every channel;
            ``settings.merge_policy`` when None
        schema: JSON schema the merged document must satisfy
        settings: Source of the default merge policy

    Returns:
        MergeResult: Merged, deduplicated document and the number of duplicates removed

    Raises:
        CapacityExceeded: If existing plus new rules exceed a channel's limit (append policies)
        InvalidMergeResult: If the merged document violates ``schema``
    """
    settings = settings or Settings()
    policy = MergePolicy(settings.merge_policy if policy is None else policy)
    if policy != MergePolicy.REPLACE:
        for channel in profile.channel_keys:
            new_rules = profile.get_rules(filter_set, channel)
            if not new_rules:
                continue
            existing_standard, existing_extended = _count_widths(profile.get_rules(document, channel) or [])
            new_standard, new_extended = _count_widths(new_rules)
            validate_capacity(channel, existing_standard + new_standard, existing_extended + new_extended, profile,
                              existing_standard, existing_extended)
    merged = _deep_merge(copy.deepcopy(document), copy.deepcopy(filter_set), policy)
    removed = _deduplicate_document(merged, profile)
    if removed:
        logger.debug("Removed %d duplicate filters after %s merge", removed, policy.value)
    if schema is not None:
        validate_document(merged, schema)
    return MergeResult(document=merged, duplicates_removed=removed)
