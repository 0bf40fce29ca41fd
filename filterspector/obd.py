"""
Supported PID detection from a recorded OBD "supported PIDs" query session.

Responses are read from the 11-bit ECU response id (7E8) or from 29-bit
identifiers carrying the OBD response PGN, whichever occurs more often.
OBD2 (service 01, ``0641..``) and WWH-OBD (``..62F4..``) response layouts are
recognized.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set
from .constants import (
    OBD_RESPONSE_ID_11BIT, OBD_REQUEST_ID_11BIT, OBD_REQUEST_ID_29BIT, OBD2_SUPPORTED_PIDS_PREFIX,
    WWH_OBD_SUPPORTED_PIDS_MARKER, SUPPORTED_PIDS_QUERY_VALUES, SUPPORTED_PIDS_RANGE_PIDS,
    MIN_SUPPORTED_PIDS_RESPONSE_HEX,
)
from .models import Frame
from .trace import parse_trace, receive_frames, is_obd_response_29bit
logger = logging.getLogger(__name__)
@dataclass
class SupportedPids:
    """
    Attributes:
        supported_pids (List[int]): Supported data PIDs, ascending, range query PIDs excluded
        protocol (Optional[str]): 'OBD2' or 'WWH-OBD', the first one detected
        transmit_id (int): Request id to use for follow-up queries (7DF or 18DB33F1)
        is_extended (bool): True when the 29-bit responses were used
        response_count (int): Responses of the chosen id type
        total_frames (int): Frames in the trace, transmitted ones included
        protocols_detected (List[str]): Every protocol seen, in detection order
        obd_11bit_count (int): 11-bit responses found
        obd_29bit_count (int): 29-bit responses found
    """
    supported_pids: List[int] = field(default_factory=list)
    protocol: Optional[str] = None
    transmit_id: int = OBD_REQUEST_ID_11BIT
    is_extended: bool = False
    response_count: int = 0
    total_frames: int = 0
    protocols_detected: List[str] = field(default_factory=list)
    obd_11bit_count: int = 0
    obd_29bit_count: int = 0
    @property
    def has_mixed_ids(self) -> bool:
        return self.obd_11bit_count > 0 and self.obd_29bit_count > 0
    @property
    def has_mixed_protocols(self) -> bool:
        return len(self.protocols_detected) > 1
    @property
    def id_type(self) -> str:
        return '29bit' if self.is_extended else '11bit'
    @property
    def supported_pids_hex(self) -> List[str]:
        return [f"{pid:02X}" for pid in self.supported_pids]
    @property
    def transmit_id_hex(self) -> str:
        return f"{self.transmit_id:X}"
def _normalize_payload(payload_hex: str) -> str:
    return ''.join((payload_hex or '').split()).upper()
def pids_from_bitmap(range_start: int, bitmap_hex: str) -> Set[int]:
    """
    Decodes a 4 byte support bitmap. The MSB stands for ``range_start + 1``,
    the LSB for ``range_start + 32``. Range query PIDs (20, 40, ... E0) are left out.
    """
    try:
        bitmap = int(bitmap_hex, 16)
    except ValueError:
        return set()
    pids = set()
    for i in range(32):
        if (bitmap >> (31 - i)) & 1:
            pid = range_start + i + 1
            if pid not in SUPPORTED_PIDS_RANGE_PIDS:
                pids.add(pid)
    return pids
def _decode_response(data: str):
    """Returns (protocol, range start, bitmap hex) of a supported PIDs response, or None."""
    if data.startswith(OBD2_SUPPORTED_PIDS_PREFIX):
        protocol, pid_hex, bitmap_hex = 'OBD2', data[4:6], data[6:14]
    elif data[2:6] == WWH_OBD_SUPPORTED_PIDS_MARKER:
        protocol, pid_hex, bitmap_hex = 'WWH-OBD', data[6:8], data[8:16]
    else:
        return None
    try:
        range_start = int(pid_hex, 16)
    except ValueError:
        return None
    if range_start not in SUPPORTED_PIDS_QUERY_VALUES:
        return None
    return protocol, range_start, bitmap_hex
def parse_supported_pids(frames: Sequence[Frame]) -> SupportedPids:
    """
    Collects the PIDs a vehicle reports as supported.

    Args:
        frames: Trace frames of a supported PIDs query session, in trace order

    Returns:
        SupportedPids: Decoded PIDs plus the detected id type and protocol
    """
    rx_frames = receive_frames(frames)
    responses_11bit = [f for f in rx_frames if not f.is_extended and f.identifier == OBD_RESPONSE_ID_11BIT]
    responses_29bit = [f for f in rx_frames if f.is_extended and is_obd_response_29bit(f.identifier)]
    use_29bit = len(responses_29bit) > len(responses_11bit)
    responses = responses_29bit if use_29bit else responses_11bit
    protocols: List[str] = []
    pids: Set[int] = set()
    for frame in responses:
        data = _normalize_payload(frame.payload_hex)
        if len(data) < MIN_SUPPORTED_PIDS_RESPONSE_HEX:
            continue
        decoded = _decode_response(data)
        if decoded is None:
            continue
        protocol, range_start, bitmap_hex = decoded
        if protocol not in protocols:
            protocols.append(protocol)
        pids.update(pids_from_bitmap(range_start, bitmap_hex))
    result = SupportedPids(
        supported_pids=sorted(pids),
        protocol=protocols[0] if protocols else None,
        transmit_id=OBD_REQUEST_ID_29BIT if use_29bit else OBD_REQUEST_ID_11BIT,
        is_extended=use_29bit,
        response_count=len(responses),
        total_frames=len(frames),
        protocols_detected=protocols,
        obd_11bit_count=len(responses_11bit),
        obd_29bit_count=len(responses_29bit),
    )
    if result.has_mixed_ids or result.has_mixed_protocols:
        logger.warning("Supported PIDs trace mixes id types or protocols (11-bit: %d, 29-bit: %d, protocols: %s)",
                       result.obd_11bit_count, result.obd_29bit_count, ', '.join(protocols))
    logger.debug("Found %d supported PIDs in %d responses", len(result.supported_pids), result.response_count)
    return result
def parse_supported_pids_trace(text: str) -> SupportedPids:
    """
    Parses trace text and collects its supported PIDs.

    Raises:
        MalformedTraceHeader: If the trace header lacks a required column
    """
    parsed = parse_trace(text)
    if parsed.error is not None:
        raise parsed.error
    return parse_supported_pids(parsed.frames)
