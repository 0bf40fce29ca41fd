"""
Error taxonomy.

Parsing problems are returned inside parse results (``MalformedTraceHeader``,
``DictionaryPrefixMissing``) so callers can keep partial data; builder and
merge problems are raised and never leave a partially applied filter set.
"""
from typing import Any, List, Optional, Sequence
class FilterSpectorError(Exception):
    """Base class for every error raised or returned by the engine."""
class MalformedTraceHeader(FilterSpectorError):
    def __init__(self, missing_fields: Sequence[str]):
        self.missing_fields: List[str] = list(missing_fields)
        super().__init__(f"Invalid CSV format. Missing columns: {', '.join(self.missing_fields)}")
class TraceTooLarge(FilterSpectorError):
    def __init__(self, path: str, size_bytes: int, limit_mb: float):
        self.path = path
        self.size_bytes = size_bytes
        self.limit_mb = limit_mb
        super().__init__(f"Trace file '{path}' exceeds {limit_mb} MB limit ({size_bytes} bytes)")
class DictionaryPrefixMissing(FilterSpectorError):
    """Warning: a dictionary file has no ``can<N>-`` channel prefix and was excluded."""
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"No valid CAN channel prefix found for: {filename}. "
            f"Specify the relevant channel via e.g. \"can1-\", \"can2-\" prefixes in the DBC file names."
        )
class InvalidFilterRule(FilterSpectorError, ValueError):
    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)
class CapacityExceeded(FilterSpectorError):
    """
    A channel would hold more filter rules than the device supports.

    Attributes:
        channel (int): Bus channel number
        kind (str): '11-bit', '29-bit' or 'total'
        count (int): Rules the build or merge would produce
        limit (int): Device limit for that kind
        existing (int): Rules already in the document (append merges only)
    """
    def __init__(self, channel: int, kind: str, count: int, limit: int, existing: int = 0):
        self.channel = channel
        self.kind = kind
        self.count = count
        self.limit = limit
        self.existing = existing
        if existing:
            message = (f"CAN{channel}: Combined {kind} filters ({existing} existing + {count - existing} new = {count}) "
                       f"exceeds limit of {limit}")
        else:
            message = f"CAN{channel}: Too many {kind} filters ({count}). Maximum is {limit}."
        super().__init__(message)
class InvalidMergeResult(FilterSpectorError):
    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors: List[str] = list(errors or [])
        super().__init__(message)
