"""Incremental parser for newline-delimited JSON records.

The interpretation phase asks the model for one JSON object per line, but the
transport delivers text in fragments whose boundaries have nothing to do with
line boundaries. ``RecordParser`` buffers fragments and emits one outcome per
complete, non-empty line as soon as its delimiter arrives:

    parser = RecordParser()
    for fragment in fragments:
        outcomes.extend(parser.feed(fragment))
    outcomes.extend(parser.flush())

A line that does not decode yields ``MalformedLine``; the parser logs it and
keeps going. The parser is a pure function of the fragment sequence: the same
text split at any boundaries yields the same outcomes in the same order.
"""

import logging
import re
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from pydantic import BaseModel, ValidationError

from policy_analyzer.core.config import StreamConfig
from policy_analyzer.core.errors import ParserClosedError
from policy_analyzer.pydantic_models.phase_results import InterpretationRecord

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

_FENCE = re.escape(StreamConfig.FENCE_MARKER)
_LEADING_FENCE = re.compile(rf"^{_FENCE}[A-Za-z0-9_-]*")
_TRAILING_FENCE = re.compile(rf"{_FENCE}$")


@dataclass(frozen=True)
class ParsedRecord(Generic[R]):
    """A line that decoded into a record."""

    value: R


@dataclass(frozen=True)
class MalformedLine:
    """A non-empty line that could not be decoded. Non-fatal."""

    raw: str
    reason: str = ""


ParseOutcome = Union[ParsedRecord, MalformedLine]


def clean_line(line: str) -> str:
    """Trim whitespace and markdown code-fence artifacts from one line.

    Removes a leading fence (with optional language tag, e.g. ```json) and a
    trailing fence, then trims again.
    """
    cleaned = line.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


class RecordParser(Generic[R]):
    """Reconstructs records from an arbitrarily chunked text stream.

    One parser per stream: after ``flush()`` the parser is closed and any
    further ``feed``/``flush`` raises ``ParserClosedError``.
    """

    def __init__(
        self,
        record_model: type[R] = InterpretationRecord,
        delimiter: str = StreamConfig.LINE_DELIMITER,
    ):
        self.record_model = record_model
        self.delimiter = delimiter
        self._buffer = ""
        self._closed = False
        self.records_parsed = 0
        self.malformed_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def feed(self, fragment: str) -> list[ParseOutcome]:
        """Append a fragment and return outcomes for every completed line."""
        if self._closed:
            raise ParserClosedError("feed() called after flush()")

        self._buffer += fragment
        outcomes: list[ParseOutcome] = []
        while True:
            index = self._buffer.find(self.delimiter)
            if index == -1:
                break
            line = self._buffer[:index]
            self._buffer = self._buffer[index + len(self.delimiter):]
            outcome = self._decode_line(line)
            if outcome is not None:
                outcomes.append(outcome)
        return outcomes

    def flush(self) -> list[ParseOutcome]:
        """Process whatever is left after end of stream, then close."""
        if self._closed:
            raise ParserClosedError("flush() called twice")

        remainder = self._buffer
        self._buffer = ""
        self._closed = True

        # No trailing delimiter is required on the final line.
        outcome = self._decode_line(remainder)
        return [outcome] if outcome is not None else []

    def _decode_line(self, line: str) -> ParseOutcome | None:
        cleaned = clean_line(line)
        if not cleaned:
            return None

        try:
            record = self.record_model.model_validate_json(cleaned)
        except ValidationError as e:
            self.malformed_count += 1
            reason = _describe(e)
            logger.warning(
                f"Skipping malformed record line ({reason}): "
                f"{line.strip()[:StreamConfig.MALFORMED_PREVIEW_CHARS]}"
            )
            return MalformedLine(raw=line, reason=reason)

        self.records_parsed += 1
        return ParsedRecord(record)


def _describe(error: ValidationError) -> str:
    """One-line summary of why a line failed to decode."""
    first = error.errors()[0] if error.errors() else {}
    if first.get("type") == "json_invalid":
        return "invalid JSON"
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "validation failed")
    return f"{location}: {message}" if location else message
