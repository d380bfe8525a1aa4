"""Record building: fetched response → canonical signed-content bytes."""

from __future__ import annotations

from apiwatch.models import RecordPayload


def build_payload(api_method: str, fetched: bytes, captured_at: int) -> RecordPayload:
    """Wrap a fetched body in a record.

    The body is decoded as UTF-8; invalid byte sequences become U+FFFD so
    the record is always valid JSON text.
    """
    return RecordPayload(
        api_method=api_method,
        return_data=fetched.decode("utf-8", errors="replace"),
        timestamp_unix=int(captured_at),
    )


def build_record(api_method: str, fetched: bytes, captured_at: int) -> bytes:
    """Build and serialize the record for one fetch.

    Pure function: identical arguments always produce identical bytes.
    """
    return build_payload(api_method, fetched, captured_at).to_json()
