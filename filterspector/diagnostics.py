"""
Configuration document checks.

Each check is a pure function ``(document, profile) -> List[DiagnosticWarning]``
added to ``CHECKS`` with ``@diagnostic``; ``run_diagnostics`` runs them in
registration order.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from .profiles import CANEDGE, DeviceProfile
@dataclass(frozen=True)
class DiagnosticWarning:
    code: str
    message: str
    channel: Optional[int] = None
Check = Callable[[Dict[str, Any], DeviceProfile], List[DiagnosticWarning]]
CHECKS: List[Check] = []
def diagnostic(func: Check) -> Check:
    CHECKS.append(func)
    return func
def _channel_sections(document: Dict[str, Any], profile: DeviceProfile):
    for channel, key in sorted(profile.channel_keys.items()):
        section = document.get(key)
        if isinstance(section, dict):
            yield channel, section
@diagnostic
def check_filters_disabled(document: Dict[str, Any], profile: DeviceProfile) -> List[DiagnosticWarning]:
    warnings = []
    for channel, _ in _channel_sections(document, profile):
        rules = profile.get_rules(document, channel)
        if rules is None:
            continue
        if not any(isinstance(rule, dict) and rule.get('state') == 1 for rule in rules):
            warnings.append(DiagnosticWarning(
                'filters_disabled',
                f"Your CAN CH{channel} filter list contains only disabled filters - no data will be recorded on this channel",
                channel,
            ))
    return warnings
@diagnostic
def check_transmit_period_delay(document: Dict[str, Any], profile: DeviceProfile) -> List[DiagnosticWarning]:
    warnings = []
    for channel, section in _channel_sections(document, profile):
        transmit = section.get('transmit')
        if not isinstance(transmit, list):
            continue
        invalid = [
            entry for entry in transmit
            if isinstance(entry, dict) and (entry.get('period') or 0) > 0 and entry.get('period') <= (entry.get('delay') or 0)
        ]
        if invalid:
            warnings.append(DiagnosticWarning(
                'transmit_period_delay',
                f"Your CAN CH{channel} transmit list includes {len(invalid)} entries with period <= delay. "
                f"This is invalid and will cause the device to reject your Configuration File",
                channel,
            ))
    return warnings
@diagnostic
def check_transmit_mode(document: Dict[str, Any], profile: DeviceProfile) -> List[DiagnosticWarning]:
    warnings = []
    for channel, section in _channel_sections(document, profile):
        transmit = section.get('transmit')
        phy = section.get('phy')
        if not transmit or not isinstance(phy, dict) or phy.get('mode') is None:
            continue
        if phy.get('mode') != 0:
            warnings.append(DiagnosticWarning(
                'transmit_mode',
                f"Your CAN CH{channel} has a non-empty transmit list, but the device will not transmit any messages "
                f"unless the mode is set to Normal",
                channel,
            ))
    return warnings
@diagnostic
def check_split_offset(document: Dict[str, Any], profile: DeviceProfile) -> List[DiagnosticWarning]:
    split = (document.get('log') or {}).get('file') or {}
    period = split.get('split_time_period')
    offset = split.get('split_time_offset')
    if period is None or offset is None or offset <= period:
        return []
    return [DiagnosticWarning(
        'split_offset',
        "Your log file split time offset is set larger than your file split time period. "
        "This is invalid and will cause the device to reject the Configuration File",
    )]
@diagnostic
def check_split_period(document: Dict[str, Any], profile: DeviceProfile) -> List[DiagnosticWarning]:
    period = ((document.get('log') or {}).get('file') or {}).get('split_time_period')
    if period is None or not (0 < period < 60):
        return []
    return [DiagnosticWarning(
        'split_period',
        f"Your log files are currently set to split every {period} seconds. This increases the storage used "
        f"and reduces data transfer performance. Consider increasing your split time",
    )]
def run_diagnostics(document: Dict[str, Any], profile: DeviceProfile = CANEDGE,
                    checks: Optional[List[Check]] = None) -> List[DiagnosticWarning]:
    warnings: List[DiagnosticWarning] = []
    for check in (CHECKS if checks is None else checks):
        warnings.extend(check(document, profile))
    return warnings
