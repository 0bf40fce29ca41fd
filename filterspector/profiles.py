"""
Device variants of the logging hardware.

A DeviceProfile is chosen once when a configuration document is loaded and
carries everything that differs between variants: the channel to config key
map, the filter capacity, whether range matching exists and where the
filter list lives in the document.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
from .constants import MAX_11BIT_FILTERS, MAX_29BIT_FILTERS, MAX_COMBINED_FILTERS
@dataclass(frozen=True)
class SplitCapacity:
    standard: int = MAX_11BIT_FILTERS
    extended: int = MAX_29BIT_FILTERS
    def checks(self, standard_count: int, extended_count: int) -> List[Tuple[str, int, int]]:
        return [('11-bit', standard_count, self.standard), ('29-bit', extended_count, self.extended)]
@dataclass(frozen=True)
class CombinedCapacity:
    total: int = MAX_COMBINED_FILTERS
    def checks(self, standard_count: int, extended_count: int) -> List[Tuple[str, int, int]]:
        return [('total', standard_count + extended_count, self.total)]
FilterCapacity = Union[SplitCapacity, CombinedCapacity]
@dataclass(frozen=True, eq=False)
class DeviceProfile:
    """
    Attributes:
        name (str): Device family name
        channel_keys (Dict[int, str]): Bus channel number -> top-level config key
        capacity (FilterCapacity): Per-channel filter limits
        supports_range (bool): False for mask-only devices
        filter_path (Tuple[str, ...]): Path from the channel section to the rule list
        remote_frames_path (Optional[Tuple[str, ...]]): Path to the remote frame policy, None if the device has none
    """
    name: str
    channel_keys: Dict[int, str] = field(default_factory=dict)
    capacity: FilterCapacity = field(default_factory=SplitCapacity)
    supports_range: bool = True
    filter_path: Tuple[str, ...] = ('filter', 'id')
    remote_frames_path: Optional[Tuple[str, ...]] = ('filter', 'remote_frames')
    def config_key(self, channel: int) -> Optional[str]:
        return self.channel_keys.get(channel)
    def channel_for_key(self, key: str) -> Optional[int]:
        for channel, config_key in self.channel_keys.items():
            if config_key == key:
                return channel
        return None
    def get_rules(self, document: Dict[str, Any], channel: int) -> Optional[List[Any]]:
        """Returns the channel's raw rule list, or None when the document has no filter section for it."""
        node = _walk(document, (self.config_key(channel) or '',) + self.filter_path)
        return node if isinstance(node, list) else None
    def set_rules(self, document: Dict[str, Any], channel: int, rules: List[Dict[str, Any]]) -> None:
        key = self.config_key(channel)
        if key is None:
            raise KeyError(f"Device {self.name} has no configuration key for CAN{channel}")
        node = document
        for part in (key,) + self.filter_path[:-1]:
            node = node.setdefault(part, {})
        node[self.filter_path[-1]] = rules
    def remote_frames_enabled(self, document: Dict[str, Any], channel: int) -> Optional[bool]:
        """None when the device has no remote frame policy; otherwise the configured flag (absent = disabled)."""
        if self.remote_frames_path is None:
            return None
        value = _walk(document, (self.config_key(channel) or '',) + self.remote_frames_path)
        return value == 1 or value is True
def _walk(document: Any, path: Tuple[str, ...]) -> Any:
    node = document
    for part in path:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node
CANEDGE = DeviceProfile(
    name='CANedge',
    channel_keys={1: 'can_1', 2: 'can_2', 9: 'can_internal'},
    capacity=SplitCapacity(MAX_11BIT_FILTERS, MAX_29BIT_FILTERS),
    supports_range=True,
    filter_path=('filter', 'id'),
    remote_frames_path=('filter', 'remote_frames'),
)
MASK_ONLY = DeviceProfile(
    name='CANmod',
    channel_keys={1: 'can_1', 2: 'can_2'},
    capacity=CombinedCapacity(MAX_COMBINED_FILTERS),
    supports_range=False,
    filter_path=('phy', 'filter'),
    remote_frames_path=None,
)
PROFILES = {
    'canedge': CANEDGE,
    'canmod': MASK_ONLY,
}
def profile_for_device(device_name: str) -> DeviceProfile:
    """
    Maps a device name (e.g. ``CANedge2``, ``CANmod.router``) to its profile.

    Raises:
        ValueError: If the name belongs to no known device family
    """
    lowered = (device_name or '').strip().lower()
    for prefix, profile in PROFILES.items():
        if lowered.startswith(prefix):
            return profile
    raise ValueError(f"Unknown device: {device_name!r}")
def detect_profile(document: Dict[str, Any]) -> DeviceProfile:
    """Picks the profile from the document layout. Documents with no filter section default to CANEDGE."""
    for key in MASK_ONLY.channel_keys.values():
        section = document.get(key) if isinstance(document, dict) else None
        if _walk(section, MASK_ONLY.filter_path) is not None:
            return MASK_ONLY
    return CANEDGE
