"""Tolerant decoding of remote commit payloads.

A malformed field never aborts a batch: text fields fall back to an empty
string and an unparsable date falls back to the current time. Each fallback
is recorded as a DecodeError so the sync report can show it.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from commitsync.exceptions import DecodeError
from commitsync.models.commit import CommitRecord, ensure_utc

log = structlog.stdlib.get_logger()


class DecodeResult(BaseModel):
    """Records decoded from one payload and the problems found on the way."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    records: list[CommitRecord] = Field(default_factory=list)
    errors: list[DecodeError] = Field(default_factory=list)
    skipped: int = Field(default=0, ge=0, description="Records dropped entirely")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating a missing offset as UTC.

    Raises:
        ValueError: If ``value`` is not an ISO-8601 timestamp
    """
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _lookup(raw: Any, path: tuple[str, ...]) -> Any:
    value = raw
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


class CommitDecoder:
    """Turns raw commit JSON objects into CommitRecords."""

    TEXT_FIELDS: dict[str, tuple[str, ...]] = {
        "message": ("commit", "message"),
        "url": ("html_url",),
        "author_name": ("commit", "committer", "name"),
        "author_email": ("commit", "committer", "email"),
    }
    DATE_PATH: tuple[str, ...] = ("commit", "committer", "date")

    def decode_payload(self, payload: list[Any], now: datetime | None = None) -> DecodeResult:
        """
        Decode every record in ``payload``, keeping payload order.

        Args:
            payload: JSON array returned by the remote source
            now: Substitute for unparsable dates (defaults to the current time)

        Returns:
            DecodeResult with the decoded records and collected errors
        """
        now = ensure_utc(now) if now else datetime.now(timezone.utc)
        result = DecodeResult()

        for index, raw in enumerate(payload):
            record, errors = self.decode_record(raw, now)
            result.errors.extend(errors)
            if record is None:
                result.skipped += 1
                log.warning("record_skipped", index=index, reason=str(errors[-1]))
                continue
            result.records.append(record)

        log.info(
            "payload_decoded",
            records=len(result.records),
            skipped=result.skipped,
            field_errors=len(result.errors),
        )
        return result

    def decode_record(
        self, raw: Any, now: datetime
    ) -> tuple[CommitRecord | None, list[DecodeError]]:
        """
        Decode one record.

        Returns:
            The record (None if it has no usable sha) and its field errors
        """
        if not isinstance(raw, dict):
            return None, [DecodeError(f"Record is a {type(raw).__name__}, not an object")]

        sha = raw.get("sha")
        if not isinstance(sha, str) or not sha:
            return None, [DecodeError("Record has no sha", field="sha")]

        errors: list[DecodeError] = []
        values: dict[str, Any] = {"sha": sha}

        for field, path in self.TEXT_FIELDS.items():
            value = _lookup(raw, path)
            if isinstance(value, str):
                values[field] = value
            else:
                values[field] = ""
                errors.append(
                    DecodeError(
                        f"Field {'.'.join(path)} missing or not a string", sha=sha, field=field
                    )
                )

        raw_date = _lookup(raw, self.DATE_PATH)
        try:
            if not isinstance(raw_date, str):
                raise ValueError(f"expected a string, got {type(raw_date).__name__}")
            values["date"] = parse_timestamp(raw_date)
        except (ValueError, OverflowError) as e:
            values["date"] = now
            errors.append(DecodeError(f"Unparsable date {raw_date!r}: {e}", sha=sha, field="date"))

        if errors:
            log.debug(
                "record_fields_defaulted",
                sha=sha,
                fields=[error.field for error in errors],
            )

        return CommitRecord(**values), errors
