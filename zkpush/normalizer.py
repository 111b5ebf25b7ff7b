"""Turns device push bodies into canonical LogRecords.

Two body shapes arrive on the push endpoints:
  1. A JSON object (or array) describing one punch (ZKTeco SpeedFace style keys).
  2. Plain text with one punch per line, fields separated by tabs or by
     runs of two or more spaces: PIN, DateTime, Status[, Verified].
"""

import logging
import re
from datetime import datetime, timezone

from zkpush.models import (
    NOT_A_NUMBER,
    TEXT_DEVICE,
    UNKNOWN_DEVICE,
    UNKNOWN_USER,
    LogRecord,
    is_not_a_number,
)

logger = logging.getLogger(__name__)

_FIELD_SPLIT_RE = re.compile(r"\t+|\s{2,}")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

MIN_TEXT_FIELDS = 3


class MalformedPayloadError(ValueError):
    """Body cannot be shaped into punch records at all."""


def utc_timestamp(now: datetime | None = None) -> str:
    """Server time as ISO-8601 with millisecond precision, e.g. 2024-01-01T08:00:00.000Z."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_int(value: str | None):
    """Lenient integer parse: leading digits win, anything else is NOT_A_NUMBER."""
    if value is None:
        return NOT_A_NUMBER
    match = _LEADING_INT_RE.match(value)
    if match is None:
        return NOT_A_NUMBER
    return int(match.group(1))


def _first_truthy(data: dict, *keys):
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


def _as_text(value) -> str:
    return value if isinstance(value, str) else str(value)


def normalize_json(data: dict | list, now: datetime | None = None) -> LogRecord:
    """Map a single JSON punch onto a LogRecord.

    ``Verified`` and ``Status`` count as present even when falsy, so an
    explicit 0 is never replaced by ``VerifyMode`` or the default. A JSON
    array carries no named fields and yields a record of defaults. String
    fields are stringified, so a numeric PIN is stored as text.
    """
    fields = data if isinstance(data, dict) else {}

    if fields.get("Verified") is not None:
        verified = fields["Verified"]
    else:
        verified = _first_truthy(fields, "VerifyMode") or 0

    status = fields["Status"] if fields.get("Status") is not None else 0

    return LogRecord(
        serial_number=_as_text(_first_truthy(fields, "SN", "SerialNumber") or UNKNOWN_DEVICE),
        pin=_as_text(_first_truthy(fields, "PIN", "UserID") or UNKNOWN_USER),
        verified=verified,
        status=status,
        date_time=_as_text(_first_truthy(fields, "DateTime", "Timestamp") or utc_timestamp(now)),
        raw_data=data,
    )


def split_fields(line: str) -> list[str]:
    """Split a text line on tab runs or 2+ whitespace runs, dropping empty fields."""
    return [f.strip() for f in _FIELD_SPLIT_RE.split(line) if f.strip()]


def parse_text_line(line: str) -> LogRecord | None:
    """Parse one text line, or return None if it has fewer than three fields."""
    fields = split_fields(line)
    if len(fields) < MIN_TEXT_FIELDS:
        logger.debug("Skipping line with %d field(s): %r", len(fields), line)
        return None

    pin, date_time = fields[0], fields[1]
    status = parse_int(fields[2])
    verified = parse_int(fields[3]) if len(fields) > 3 else 0
    if is_not_a_number(status) or is_not_a_number(verified):
        logger.debug("Non-numeric status/verify code kept as NaN: %r", line)

    return LogRecord(
        serial_number=TEXT_DEVICE,
        pin=pin,
        verified=verified,
        status=status,
        date_time=date_time,
        raw_data={
            "PIN": pin,
            "DateTime": date_time,
            "Status": status,
            "Verified": verified,
            "RawText": line,
        },
    )


def normalize_text(body: str) -> list[LogRecord]:
    """Parse a plain-text push body into records, preserving line order."""
    records = []
    for line in body.split("\n"):
        if not line.strip():
            continue
        record = parse_text_line(line)
        if record is not None:
            records.append(record)
    return records


def normalize_structured(body) -> list[LogRecord]:
    """Records for a parsed JSON body: an object or array yields one record."""
    if isinstance(body, (dict, list)):
        return [normalize_json(body)]
    raise MalformedPayloadError(
        f"expected a JSON object or array, got {type(body).__name__}"
    )


def normalize(body) -> list[LogRecord]:
    """Dispatch on body shape: str -> one record per valid line, JSON -> one record."""
    if isinstance(body, str):
        return normalize_text(body)
    return normalize_structured(body)
