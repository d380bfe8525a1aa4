"""Job source: a stream of concatenated JSON job descriptors.

The configuration file has no enclosing array; records simply follow each
other, separated by optional whitespace::

    {"APIMethod": "https://api.example.com/v1/price", "ChainID": "a1…", "SecKey": "…", "ECAddr": "EC2…"}
    {"APIMethod": "https://api.example.com/v1/volume", "ChainID": "b2…", "SecKey": "…", "ECAddr": "EC2…"}

:class:`JobSource` reads the stream in chunks and decodes one record at a
time, so the dispatcher can start a job before the rest of the file has
been parsed.

Clean end of input ends iteration. Any record that fails to decode or
validate raises :class:`ConfigSourceError` carrying the record index, and
the source yields nothing afterwards.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from pydantic import ValidationError

from apiwatch.core.errors import ConfigSourceError
from apiwatch.core.logging import get_logger
from apiwatch.models import JobDescriptor

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"[ \t\n\r]*")
DEFAULT_CHUNK_SIZE = 64 * 1024

# A decode error this close to the end of the buffer may be a token cut at
# the chunk boundary ("fals", a partial unicode escape).
_CUT_TOKEN_SLACK = 6


class JobSource:
    """Sequential reader of job descriptors.

    Use :meth:`open` for files; any text stream works for the constructor.
    Iterating the source consumes it.
    """

    def __init__(self, stream: TextIO, *, name: str = "<stream>", chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.name = name
        self._stream = stream
        self._chunk_size = chunk_size
        self._decoder = json.JSONDecoder()
        self._buffer = ""
        self._eof = False
        self._done = False
        self.records_read = 0

    @classmethod
    def open(cls, path: str | Path, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> JobSource:
        """Open a job source file.

        Raises:
            ConfigSourceError: If the file cannot be opened.
        """
        try:
            stream = open(path, encoding="utf-8")
        except OSError as e:
            raise ConfigSourceError(
                f"cannot open job source {str(path)!r}: {e.strerror or e}", cause=e
            ).with_context(source=str(path))
        return cls(stream, name=str(path), chunk_size=chunk_size)

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> JobSource:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __iter__(self) -> Iterator[JobDescriptor]:
        while not self._done:
            descriptor = self._next_descriptor()
            if descriptor is None:
                return
            yield descriptor

    # ── Decoding ─────────────────────────────────────────────────────

    def _fill(self) -> None:
        try:
            chunk = self._stream.read(self._chunk_size)
        except (OSError, UnicodeDecodeError) as e:
            raise self._fail(f"cannot read job source: {e}", cause=e)
        if chunk:
            self._buffer += chunk
        else:
            self._eof = True

    def _next_descriptor(self) -> JobDescriptor | None:
        while True:
            start = _WHITESPACE.match(self._buffer).end()
            if start == len(self._buffer):
                if self._eof:
                    self._done = True
                    return None
                self._fill()
                continue

            try:
                obj, end = self._decoder.raw_decode(self._buffer, start)
            except json.JSONDecodeError as e:
                if not self._eof and self._cut_off(e):
                    self._fill()
                    continue
                raise self._fail(f"malformed JSON: {e.msg}", cause=e)

            self._buffer = self._buffer[end:]
            return self._validate(obj)

    def _cut_off(self, e: json.JSONDecodeError) -> bool:
        """Whether the decode error is just the record running past the buffer."""
        if e.msg.startswith("Unterminated string"):
            return True
        return e.pos >= len(self._buffer) - _CUT_TOKEN_SLACK

    def _validate(self, obj: object) -> JobDescriptor:
        if not isinstance(obj, dict):
            raise self._fail(f"expected a JSON object, got {type(obj).__name__}")
        try:
            descriptor = JobDescriptor.model_validate(obj)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) or "record" for err in e.errors())
            raise self._fail(f"invalid job descriptor ({fields})", cause=e)
        self.records_read += 1
        logger.debug("source.record", source=self.name, index=self.records_read - 1)
        return descriptor

    def _fail(self, reason: str, *, cause: Exception | None = None) -> ConfigSourceError:
        self._done = True
        index = self.records_read
        return ConfigSourceError(
            f"{self.name}: record {index}: {reason}", cause=cause
        ).with_context(record_index=index, source=self.name)
