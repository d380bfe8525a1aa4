"""Factom entry construction and wire encoding.

Binary layout produced by :meth:`Entry.marshal_binary`::

    [version:1 = 0x00][chain id:32][ext ids size:2 BE]
    ([ext id length:2 BE][ext id bytes]) * n
    [content]

The entry hash is ``sha256(sha512(data) + data)``. Ext ids plus content may
not exceed 10240 bytes; commits are priced at one entry credit per started
KiB of that payload.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

from apiwatch.core.errors import EntryError

ENTRY_VERSION = 0
CHAIN_ID_LENGTH = 32
MAX_ENTRY_PAYLOAD = 10240


def decode_chain_id(chain_id: str) -> bytes:
    """Return the 32 raw bytes of a hex chain id.

    Raises:
        EntryError: If the chain id is not 64 hex characters.
    """
    try:
        raw = bytes.fromhex(chain_id)
    except ValueError as e:
        raise EntryError(f"chain id is not hex: {chain_id!r}", cause=e).with_context(chain_id=chain_id)
    if len(raw) != CHAIN_ID_LENGTH:
        raise EntryError(
            f"chain id must be {CHAIN_ID_LENGTH} bytes, got {len(raw)}"
        ).with_context(chain_id=chain_id)
    return raw


@dataclass
class Entry:
    """An entry as handed to a ledger client."""

    chain_id: str
    content: bytes = b""
    ext_ids: list[bytes] = field(default_factory=list)

    @property
    def payload_size(self) -> int:
        """Bytes counted against the entry size limit and the commit price."""
        return sum(2 + len(x) for x in self.ext_ids) + len(self.content)

    def entry_credits(self) -> int:
        """Entry credits needed to commit this entry."""
        return max(1, -(-self.payload_size // 1024))

    def marshal_binary(self) -> bytes:
        """Encode the entry in Factom wire format.

        Raises:
            EntryError: On a malformed chain id or an oversized entry.
        """
        chain = decode_chain_id(self.chain_id)
        if self.payload_size > MAX_ENTRY_PAYLOAD:
            raise EntryError(
                f"entry payload is {self.payload_size} bytes, limit is {MAX_ENTRY_PAYLOAD}"
            ).with_context(chain_id=self.chain_id)

        ext = b"".join(struct.pack(">H", len(x)) + x for x in self.ext_ids)
        return (
            struct.pack(">B", ENTRY_VERSION)
            + chain
            + struct.pack(">H", len(ext))
            + ext
            + self.content
        )

    def hash(self) -> str:
        """Hex entry hash, as reported by factomd."""
        data = self.marshal_binary()
        return hashlib.sha256(hashlib.sha512(data).digest() + data).hexdigest()

    def to_rpc(self) -> dict[str, object]:
        """Hex-encoded form used by walletd's ``compose-entry``."""
        return {
            "chainid": self.chain_id,
            "extids": [x.hex() for x in self.ext_ids],
            "content": self.content.hex(),
        }
