"""
J1939 Parameter Group Number arithmetic on 29-bit CAN identifiers.

Identifier layout: priority (3) | EDP/DP (2) | PDU format (8) | PDU specific (8) | source address (8).
PDU1 (PF < 240) carries a destination address in the PS field, which is not part of the PGN.
"""
from .constants import PDU2_MIN_PDU_FORMAT, PDU1_PGN_MASK, PDU2_PGN_MASK
def pdu_format(identifier: int) -> int:
    return (identifier >> 16) & 0xFF
def is_pdu1(identifier: int) -> bool:
    return pdu_format(identifier) < PDU2_MIN_PDU_FORMAT
def pdu_type(identifier: int) -> str:
    return 'PDU1' if is_pdu1(identifier) else 'PDU2'
def extract_pgn(identifier: int) -> int:
    if is_pdu1(identifier):
        return (identifier >> 8) & 0x3FF00
    return (identifier >> 8) & 0x3FFFF
def pgn_mask(identifier: int) -> int:
    """Mask selecting the PGN bits of ``identifier`` (source address, and destination for PDU1, cleared)."""
    return PDU1_PGN_MASK if is_pdu1(identifier) else PDU2_PGN_MASK
def pgns_equal(identifier_a: int, identifier_b: int) -> bool:
    return extract_pgn(identifier_a) == extract_pgn(identifier_b)
def pgn_is_pdu1(pgn: int) -> bool:
    return (pgn & 0xFF00) < (PDU2_MIN_PDU_FORMAT << 8)
def pgn_filter_id(pgn: int) -> int:
    """Mask-filter id (``f1``) that selects every identifier carrying ``pgn``."""
    if pgn_is_pdu1(pgn):
        return (pgn & 0x3FF00) << 8
    return pgn << 8
def pgn_filter_mask(pgn: int) -> int:
    return PDU1_PGN_MASK if pgn_is_pdu1(pgn) else PDU2_PGN_MASK
