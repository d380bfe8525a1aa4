"""Domain models for watch jobs and the records they anchor.

- JobDescriptor: one configured watch job, parsed from the job source
- CapturedResponse: body and status of one fetch of the watched endpoint
- RecordPayload: the timestamped record whose serialization gets signed
- SignedEntry: serialized record plus its signature, ready for the ledger

Descriptors are pydantic models because they come from untrusted input and
need validation; the other three are plain frozen dataclasses built
internally.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator

from apiwatch.ledger.entry import Entry


class JobDescriptor(BaseModel):
    """A single watch job.

    The wire names (``APIMethod``, ``ChainID``, ``SecKey``, ``ECAddr``) are
    kept as aliases so existing configuration files load unchanged. Keys
    that have no exact match are matched case-insensitively, so
    ``apimethod`` loads as ``APIMethod``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api_method: StrictStr = Field(alias="APIMethod", description="Watched URL, also the record's method label")
    chain_id: StrictStr = Field(alias="ChainID", description="Target chain (64 hex chars)")
    secret_key: StrictStr = Field(alias="SecKey", repr=False, description="Hex-encoded 64-byte Ed25519 secret key")
    funding_address: StrictStr = Field(alias="ECAddr", description="Entry credit address paying for the entry")

    @model_validator(mode="before")
    @classmethod
    def _fold_key_case(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        folded = dict(data)
        for field in cls.model_fields.values():
            alias = field.alias
            if alias is None or alias in folded:
                continue
            for key in data:
                if isinstance(key, str) and key.lower() == alias.lower():
                    folded[alias] = data[key]
                    break
        return folded

    @property
    def masked_key(self) -> str:
        """The secret key with everything but the first four characters hidden."""
        if len(self.secret_key) <= 4:
            return "****"
        return self.secret_key[:4] + "…"


@dataclass(frozen=True)
class CapturedResponse:
    """Raw result of fetching a watched endpoint."""

    raw_bytes: bytes
    http_status: int


# HTML-sensitive characters are always written as JSON escapes.
_HTML_UNSAFE = ("<", ">", "&", chr(0x2028), chr(0x2029))
_HTML_ESCAPES = {ch: "\\u%04x" % ord(ch) for ch in _HTML_UNSAFE}
_HTML_UNSAFE_RE = re.compile("[" + "".join(_HTML_UNSAFE) + "]")


@dataclass(frozen=True)
class RecordPayload:
    """The record anchored for one fetch.

    Field order of the serialized form is fixed (``APIMethod``,
    ``ReturnData``, ``Timestamp``) so the same logical record always encodes
    to the same bytes and a signature over it can be reproduced.
    """

    api_method: str
    return_data: str
    timestamp_unix: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "APIMethod": self.api_method,
            "ReturnData": self.return_data,
            "Timestamp": self.timestamp_unix,
        }

    def to_json(self) -> bytes:
        """Canonical serialization: compact, UTF-8, HTML-sensitive chars escaped."""
        text = json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
        text = _HTML_UNSAFE_RE.sub(lambda m: _HTML_ESCAPES[m.group(0)], text)
        return text.encode("utf-8")

    @classmethod
    def from_json(cls, content: bytes | str) -> RecordPayload:
        """Parse a serialized record.

        Raises:
            ValueError: If the content is not a record object.
        """
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("record must be a JSON object")
        api_method = data.get("APIMethod")
        return_data = data.get("ReturnData")
        timestamp = data.get("Timestamp")
        if not isinstance(api_method, str) or not isinstance(return_data, str):
            raise ValueError("record APIMethod and ReturnData must be strings")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("record Timestamp must be an integer")
        return cls(api_method=api_method, return_data=return_data, timestamp_unix=timestamp)


@dataclass(frozen=True)
class SignedEntry:
    """Serialized record plus its detached signature.

    The signature covers exactly ``content`` and travels as the first
    external id of the ledger entry, never inside the content itself.
    """

    chain_id: str
    content: bytes
    signature: bytes

    def to_entry(self) -> Entry:
        """Build the ledger entry: signature first in ``ext_ids``."""
        return Entry(chain_id=self.chain_id, content=self.content, ext_ids=[self.signature])
