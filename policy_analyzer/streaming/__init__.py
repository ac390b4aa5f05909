"""Streaming support: incremental decoding of newline-delimited records."""

from policy_analyzer.streaming.record_parser import (
    RecordParser,
    ParsedRecord,
    MalformedLine,
    ParseOutcome,
    clean_line,
)

__all__ = [
    "RecordParser",
    "ParsedRecord",
    "MalformedLine",
    "ParseOutcome",
    "clean_line",
]
