from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union
from .constants import STANDARD_ID_MAX, EXTENDED_ID_MAX, MAX_FILTER_NAME_LENGTH
from .errors import InvalidFilterRule
class Direction(IntEnum):
    RX = 0
    TX = 1
class Disposition(IntEnum):
    ACCEPT = 0
    REJECT = 1
class IdFormat(IntEnum):
    STANDARD = 0
    EXTENDED = 1
class MatchMethod(IntEnum):
    RANGE = 0
    MASK = 1
class PrescalerType(IntEnum):
    NONE = 0
    COUNT = 1
    TIME = 2
    DATA = 3
class MergePolicy(str, Enum):
    REPLACE = "replace"
    APPEND_TOP = "append_top"
    APPEND_BOTTOM = "append_bottom"
def parse_hex_bytes(payload_hex: str) -> List[int]:
    if not payload_hex:
        return []
    cleaned = ''.join(payload_hex.split())
    return [int(cleaned[i:i + 2], 16) for i in range(0, len(cleaned), 2)]
@dataclass(frozen=True)
class Frame:
    """
    One raw CAN frame from a recorded trace.

    Attributes:
        timestamp (float): Epoch timestamp in seconds
        channel (int): Bus channel number (1, 2, 9, ...)
        identifier (int): 11-bit or 29-bit CAN identifier
        is_extended (bool): True for 29-bit identifiers (IDE = 1)
        dlc (int): Declared data length code
        data_length (int): Actual payload length in bytes (0-64)
        direction (Direction): Receive or transmit
        remote_request (bool): RTR flag
        payload_hex (str): Payload as hex text, optionally space separated
    """
    timestamp: float
    channel: int
    identifier: int
    is_extended: bool = False
    dlc: int = 0
    data_length: int = 0
    direction: Direction = Direction.RX
    edl: bool = False
    brs: bool = False
    esi: bool = False
    remote_request: bool = False
    payload_hex: str = ''
    def __post_init__(self):
        limit = EXTENDED_ID_MAX if self.is_extended else STANDARD_ID_MAX
        if not (0 <= self.identifier <= limit):
            raise ValueError(f"Identifier 0x{self.identifier:X} does not fit a {'29' if self.is_extended else '11'}-bit frame.")
    @property
    def id_hex(self) -> str:
        return f"{self.identifier:X}"
    def payload_bytes(self) -> List[int]:
        return parse_hex_bytes(self.payload_hex)
@dataclass(frozen=True)
class NoPrescaler:
    kind = PrescalerType.NONE
    def wire_value(self) -> Any:
        return None
@dataclass(frozen=True)
class CountPrescaler:
    n: int
    kind = PrescalerType.COUNT
    def wire_value(self) -> Any:
        return self.n
@dataclass(frozen=True)
class TimePrescaler:
    ms: int
    kind = PrescalerType.TIME
    def wire_value(self) -> Any:
        return self.ms
@dataclass(frozen=True)
class DataChangePrescaler:
    """Accepts a frame when any payload byte selected by ``mask`` changed (bit i selects byte i, empty mask = all bytes)."""
    mask: str = ''
    kind = PrescalerType.DATA
    def wire_value(self) -> Any:
        return self.mask
    def byte_mask(self) -> Optional[int]:
        return int(self.mask, 16) if self.mask else None
Prescaler = Union[NoPrescaler, CountPrescaler, TimePrescaler, DataChangePrescaler]
def _parse_operand(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidFilterRule(f"Filter operand {field_name} must be hexadecimal, got {value!r}.", field_name, value)
    if isinstance(value, int):
        return value
    text = str(value).strip() if value is not None else ''
    if text.lower().startswith('0x'):
        text = text[2:]
    try:
        return int(text, 16)
    except ValueError:
        raise InvalidFilterRule(f"Filter operand {field_name} must be hexadecimal, got {value!r}.", field_name, value) from None
def prescaler_from_config(rule: Dict[str, Any]) -> Prescaler:
    try:
        prescaler_type = PrescalerType(int(rule.get('prescaler_type') or 0))
    except (TypeError, ValueError):
        raise InvalidFilterRule(f"Unknown prescaler type {rule.get('prescaler_type')!r}.", 'prescaler_type', rule.get('prescaler_type')) from None
    value = rule.get('prescaler_value')
    if prescaler_type == PrescalerType.NONE:
        return NoPrescaler()
    if prescaler_type == PrescalerType.DATA:
        mask = '' if value is None else str(value).strip()
        if mask.lower().startswith('0x'):
            mask = mask[2:]
        if mask and not all(c in '0123456789abcdefABCDEF' for c in mask):
            raise InvalidFilterRule(f"Data prescaler mask must be hexadecimal, got {value!r}.", 'prescaler_value', value)
        return DataChangePrescaler(mask.upper())
    try:
        number = int(value or 1)
    except (TypeError, ValueError):
        raise InvalidFilterRule(f"Prescaler value must be an integer, got {value!r}.", 'prescaler_value', value) from None
    return CountPrescaler(number) if prescaler_type == PrescalerType.COUNT else TimePrescaler(number)
@dataclass(frozen=True)
class FilterRule:
    """
    One acceptance/rejection filter entry of a channel's ordered filter list.

    ``f1``/``f2`` are the range bounds for ``MatchMethod.RANGE`` and the
    filter id / mask for ``MatchMethod.MASK``.
    """
    name: str
    f1: int
    f2: int
    enabled: bool = True
    disposition: Disposition = Disposition.ACCEPT
    id_format: IdFormat = IdFormat.STANDARD
    method: MatchMethod = MatchMethod.RANGE
    prescaler: Prescaler = field(default_factory=NoPrescaler)
    @property
    def is_extended(self) -> bool:
        return self.id_format == IdFormat.EXTENDED
    def matches_id(self, identifier: int) -> bool:
        if self.method == MatchMethod.RANGE:
            return self.f1 <= identifier <= self.f2
        return (self.f1 & self.f2) == (identifier & self.f2)
    def to_config(self) -> Dict[str, Any]:
        rule = {
            "name": self.name[:MAX_FILTER_NAME_LENGTH],
            "state": 1 if self.enabled else 0,
            "type": int(self.disposition),
            "id_format": int(self.id_format),
            "method": int(self.method),
            "f1": f"{self.f1:X}",
            "f2": f"{self.f2:X}",
            "prescaler_type": int(self.prescaler.kind),
        }
        value = self.prescaler.wire_value()
        if value is not None:
            rule["prescaler_value"] = value
        return rule
    @classmethod
    def from_config(cls, rule: Dict[str, Any]) -> "FilterRule":
        if not isinstance(rule, dict):
            raise InvalidFilterRule(f"Filter entry must be an object, got {type(rule).__name__}.")
        try:
            disposition = Disposition(int(rule.get('type') or 0))
            id_format = IdFormat(int(rule.get('id_format') or 0))
            method = MatchMethod(int(rule.get('method') or 0))
        except (TypeError, ValueError) as e:
            raise InvalidFilterRule(f"Invalid filter field value in {rule!r}: {e}") from None
        return cls(
            name=str(rule.get('name', '')),
            f1=_parse_operand(rule.get('f1'), 'f1'),
            f2=_parse_operand(rule.get('f2'), 'f2'),
            enabled=rule.get('state') == 1,
            disposition=disposition,
            id_format=id_format,
            method=method,
            prescaler=prescaler_from_config(rule),
        )
@dataclass
class PrescalerState:
    message_count: int = 0
    last_accepted_timestamp: Optional[float] = None
    last_payload: Optional[str] = None
@dataclass(frozen=True)
class DictionaryMessage:
    channel: int
    identifier: int
    raw_identifier: int
    name: str
    byte_length: int
    comment: str = ''
    signal_names: Tuple[str, ...] = ()
    is_j1939: bool = False
    sender: Optional[str] = None
    source_file: Optional[str] = None
    @property
    def id_hex(self) -> str:
        return f"{self.identifier:X}"
    @property
    def key(self) -> Tuple[int, int]:
        return (self.channel, self.identifier)
@dataclass(frozen=True)
class AggregatedEntry:
    """
    One row of the size-contribution summary: a (channel, identifier) pair,
    or a (channel, PGN) group of 29-bit identifiers when grouping is enabled.

    ``percentage`` is None for dictionary-only entries (no trace data).
    """
    channel: int
    identifier: int
    is_extended: bool
    count: int = 0
    weighted_size: float = 0.0
    percentage: Optional[float] = 0.0
    data_length: Optional[int] = None
    dictionary_message: Optional[DictionaryMessage] = None
    pgn: Optional[int] = None
    is_group: bool = False
    grouped_identifiers: Tuple[int, ...] = ()
    from_dictionary_only: bool = False
    length_mismatch: bool = False
    @property
    def id_hex(self) -> str:
        return f"{self.identifier:X}"
    @property
    def channel_name(self) -> str:
        return f"CAN{self.channel}"
    @property
    def name(self) -> str:
        return self.dictionary_message.name if self.dictionary_message else ''
    @property
    def is_matched(self) -> bool:
        return self.dictionary_message is not None
    @property
    def search_text(self) -> str:
        msg = self.dictionary_message
        if self.from_dictionary_only:
            match_token = 'no_data'
        else:
            match_token = 'match_true' if msg else 'match_false'
        parts = [self.channel_name, self.id_hex]
        if msg:
            parts.extend([msg.name, msg.comment, *msg.signal_names])
        parts.append(match_token)
        return ' '.join(p for p in parts if p).lower()
@dataclass
class MergeResult:
    document: Dict[str, Any]
    duplicates_removed: int = 0
