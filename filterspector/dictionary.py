"""
Parser for DBC message dictionaries.

Only the metadata needed to annotate raw traffic is extracted: message ids,
names, byte lengths, senders, signal names and message comments. The bus
channel of each file is taken from its ``can<N>-`` filename prefix.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple
from .constants import (
    DBC_CHANNEL_PREFIX_RE, DBC_PROTOCOL_TYPE_RE, DBC_MESSAGE_RE, DBC_MESSAGE_LINE_RE, DBC_SIGNAL_LINE_RE,
    DBC_MESSAGE_COMMENT_RE, DBC_SECTION_RESET_PREFIXES, DBC_MIN_CHANNEL, DBC_MAX_CHANNEL, J1939_PROTOCOL_NAME,
    STANDARD_ID_MAX, EXTENDED_ID_MASK_29BIT,
)
from .errors import DictionaryPrefixMissing
from .models import DictionaryMessage
from .pgn import pgns_equal
logger = logging.getLogger(__name__)
@dataclass
class DictionaryFile:
    filename: str
    channel: Optional[int]
    is_j1939: bool = False
    messages: List[DictionaryMessage] = field(default_factory=list)
    @property
    def has_valid_prefix(self) -> bool:
        return self.channel is not None
@dataclass
class DictionaryParseResult:
    """
    Combined dictionary of every parsed file.

    Attributes:
        messages: Messages keyed by (channel, effective identifier), in first-seen order
        files: Per-file parse output, including files excluded for a missing prefix
        warnings: One DictionaryPrefixMissing per excluded file
        j1939_channels: Channels with at least one J1939 dictionary
    """
    messages: Dict[Tuple[int, int], DictionaryMessage] = field(default_factory=dict)
    files: List[DictionaryFile] = field(default_factory=list)
    warnings: List[DictionaryPrefixMissing] = field(default_factory=list)
    j1939_channels: Set[int] = field(default_factory=set)
    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
    def messages_for_channel(self, channel: int) -> List[DictionaryMessage]:
        return [msg for (msg_channel, _), msg in self.messages.items() if msg_channel == channel]
def extract_channel(filename: str) -> Optional[int]:
    match = DBC_CHANNEL_PREFIX_RE.match(os.path.basename(filename).lower())
    if not match:
        return None
    channel = int(match.group(1))
    if DBC_MIN_CHANNEL <= channel <= DBC_MAX_CHANNEL:
        return channel
    return None
def is_j1939_protocol(text: str) -> bool:
    match = DBC_PROTOCOL_TYPE_RE.search(text)
    return bool(match) and match.group(1) == J1939_PROTOCOL_NAME
def effective_identifier(raw_identifier: int) -> int:
    """Wire identifier of a DBC message id (extended ids are stored with bit 31 set)."""
    if raw_identifier > STANDARD_ID_MAX:
        return raw_identifier & EXTENDED_ID_MASK_29BIT
    return raw_identifier
def _unescape_comment(text: str) -> str:
    return text.replace('\\"', '"').replace('\\n', '\n')
def parse_dictionary_file(text: str, filename: str) -> DictionaryFile:
    """
    Parses one DBC text block.

    Args:
        text (str): DBC file content
        filename (str): File name carrying the ``can<N>-`` channel prefix

    Returns:
        DictionaryFile: Messages in declaration order. ``channel`` is None when
        the prefix is missing or out of range.
    """
    channel = extract_channel(filename)
    is_j1939 = is_j1939_protocol(text)
    records: Dict[int, dict] = {}
    for match in DBC_MESSAGE_RE.finditer(text):
        raw_id_str, name, length_str, sender = match.groups()
        raw_id = int(raw_id_str)
        records[raw_id] = {
            'name': name,
            'byte_length': int(length_str),
            'sender': sender,
            'signals': [],
            'comment': '',
        }
    current_raw_id: Optional[int] = None
    for line_content in text.splitlines():
        line = line_content.strip()
        msg_match = DBC_MESSAGE_LINE_RE.match(line)
        if msg_match:
            current_raw_id = int(msg_match.group(1))
            continue
        sig_match = DBC_SIGNAL_LINE_RE.match(line)
        if sig_match:
            if current_raw_id is not None and current_raw_id in records:
                records[current_raw_id]['signals'].append(sig_match.group(1))
            continue
        if line.startswith(DBC_SECTION_RESET_PREFIXES):
            current_raw_id = None
    for match in DBC_MESSAGE_COMMENT_RE.finditer(text):
        raw_id = int(match.group(1))
        if raw_id in records:
            records[raw_id]['comment'] = _unescape_comment(match.group(2))
    messages = [
        DictionaryMessage(
            channel=channel or 0,
            identifier=effective_identifier(raw_id),
            raw_identifier=raw_id,
            name=rec['name'],
            byte_length=rec['byte_length'],
            comment=rec['comment'],
            signal_names=tuple(rec['signals']),
            is_j1939=is_j1939,
            sender=rec['sender'],
            source_file=filename,
        )
        for raw_id, rec in records.items()
    ]
    return DictionaryFile(filename=filename, channel=channel, is_j1939=is_j1939, messages=messages)
def parse_dictionary_files(files: Iterable[Tuple[str, str]]) -> DictionaryParseResult:
    """
    Parses several DBC text blocks into one channel-scoped dictionary.

    Args:
        files: ``(filename, text)`` pairs

    Returns:
        DictionaryParseResult: When two files define the same (channel, identifier),
        the first one keeps it.
    """
    result = DictionaryParseResult()
    for filename, text in files:
        parsed = parse_dictionary_file(text, filename)
        result.files.append(parsed)
        if not parsed.has_valid_prefix:
            warning = DictionaryPrefixMissing(filename)
            logger.warning("%s", warning)
            result.warnings.append(warning)
            continue
        if parsed.is_j1939:
            result.j1939_channels.add(parsed.channel)
        for msg in parsed.messages:
            if msg.key in result.messages:
                logger.debug("Message %s on CAN%d from %s already defined, keeping first", msg.id_hex, msg.channel, filename)
                continue
            result.messages[msg.key] = msg
    logger.debug("Dictionary holds %d messages from %d files", len(result.messages), len(result.files))
    return result
def load_dictionary_files(paths: Iterable[str]) -> DictionaryParseResult:
    blocks = []
    for path in paths:
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            blocks.append((os.path.basename(path), f.read()))
    return parse_dictionary_files(blocks)
def find_dictionary_match(channel: int, identifier: int, dictionary: DictionaryParseResult) -> Optional[DictionaryMessage]:
    """
    Finds the dictionary message describing ``identifier`` on ``channel``.

    Exact (channel, identifier) matches win. For 29-bit identifiers on a J1939
    channel, the first J1939 message on that channel with the same PGN is used.
    """
    direct = dictionary.messages.get((channel, identifier))
    if direct is not None:
        return direct
    if identifier <= STANDARD_ID_MAX or channel not in dictionary.j1939_channels:
        return None
    for msg in dictionary.messages_for_channel(channel):
        if msg.is_j1939 and pgns_equal(identifier, msg.raw_identifier):
            return msg
    return None
