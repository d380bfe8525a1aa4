"""Tests for the concatenated-JSON job source."""

from __future__ import annotations

import io
import json

import pytest

from apiwatch.core.errors import ConfigSourceError
from apiwatch.source import JobSource
from tests._support.fakes import descriptor_record


def _source(text: str, **kwargs) -> JobSource:
    return JobSource(io.StringIO(text), name="conf.json", **kwargs)


def _records(n: int) -> list[dict[str, str]]:
    return [descriptor_record(url=f"https://api.example.com/{i}", key="ab" * 64) for i in range(n)]


class TestParsing:
    def test_concatenated_without_separator(self):
        text = "".join(json.dumps(r) for r in _records(2))
        urls = [d.api_method for d in _source(text)]
        assert urls == ["https://api.example.com/0", "https://api.example.com/1"]

    def test_whitespace_between_records(self):
        text = "\n\n  " + "\n\t".join(json.dumps(r) for r in _records(3)) + "\n  \n"
        assert len(list(_source(text))) == 3

    def test_records_span_chunk_boundaries(self):
        text = "\n".join(json.dumps(r, indent=2) for r in _records(4))
        descriptors = list(_source(text, chunk_size=7))
        assert [d.api_method for d in descriptors] == [r["APIMethod"] for r in _records(4)]

    def test_wire_names_map_to_fields(self):
        (d,) = _source(json.dumps(descriptor_record(key="cd" * 64)))
        assert d.api_method == "https://api.example.com/v1/price"
        assert d.chain_id == descriptor_record()["ChainID"]
        assert d.secret_key == "cd" * 64
        assert d.funding_address == descriptor_record()["ECAddr"]

    def test_keys_match_case_insensitively(self):
        record = {k.lower(): v for k, v in descriptor_record(key="cd" * 64).items()}
        record["CHAINID"] = record.pop("chainid")
        (d,) = _source(json.dumps(record))
        assert d.api_method == "https://api.example.com/v1/price"
        assert d.chain_id == descriptor_record()["ChainID"]
        assert d.secret_key == "cd" * 64

    def test_exact_key_wins_over_case_variant(self):
        record = {"apimethod": "https://other.example.com", **descriptor_record()}
        (d,) = _source(json.dumps(record))
        assert d.api_method == "https://api.example.com/v1/price"

    def test_unknown_keys_ignored(self):
        record = {**descriptor_record(), "Comment": "price feed", "Interval": 60}
        assert len(list(_source(json.dumps(record)))) == 1

    def test_empty_source(self):
        assert list(_source("")) == []
        assert list(_source("   \n ")) == []

    def test_records_read(self):
        source = _source("".join(json.dumps(r) for r in _records(2)))
        list(source)
        assert source.records_read == 2

    def test_lazy(self):
        """A record is yielded before later records are decoded."""
        text = json.dumps(_records(1)[0]) + "{not json"
        it = iter(_source(text))
        assert next(it).api_method == "https://api.example.com/0"
        with pytest.raises(ConfigSourceError):
            next(it)


class TestMalformed:
    def test_third_record_malformed(self):
        text = "".join(json.dumps(r) for r in _records(2)) + '{"APIMethod": '
        source = _source(text)
        it = iter(source)
        next(it)
        next(it)
        with pytest.raises(ConfigSourceError) as exc_info:
            next(it)
        err = exc_info.value
        assert err.context.record_index == 2
        assert err.context.metadata["source"] == "conf.json"
        assert "record 2" in err.message

    def test_nothing_after_malformed_record(self):
        text = "{oops}" + json.dumps(_records(1)[0])
        source = _source(text)
        with pytest.raises(ConfigSourceError):
            list(source)
        assert list(source) == []

    def test_trailing_garbage(self):
        text = json.dumps(_records(1)[0]) + " trailing"
        source = _source(text)
        with pytest.raises(ConfigSourceError, match="malformed JSON"):
            list(source)
        assert source.records_read == 1

    def test_non_object_record(self):
        with pytest.raises(ConfigSourceError, match="expected a JSON object, got list"):
            list(_source("[1, 2]"))

    def test_missing_field(self):
        record = descriptor_record()
        del record["ECAddr"]
        with pytest.raises(ConfigSourceError, match="invalid job descriptor") as exc_info:
            list(_source(json.dumps(record)))
        assert exc_info.value.context.record_index == 0

    def test_non_string_field(self):
        record = {**descriptor_record(), "ChainID": 12345}
        with pytest.raises(ConfigSourceError, match="invalid job descriptor"):
            list(_source(json.dumps(record)))


class TestOpen:
    def test_open_file(self, write_source):
        path = write_source(*_records(2))
        with JobSource.open(path) as source:
            assert len(list(source)) == 2
            assert source.name == str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigSourceError, match="cannot open job source") as exc_info:
            JobSource.open(tmp_path / "absent.json")
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_directory(self, tmp_path):
        with pytest.raises(ConfigSourceError):
            JobSource.open(tmp_path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "conf.json"
        path.write_bytes(b'{"APIMethod": "\xff"}')
        with JobSource.open(path) as source, pytest.raises(ConfigSourceError, match="cannot read"):
            list(source)


class CountingStream(io.StringIO):
    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.reads = 0

    def read(self, size: int = -1) -> str:
        self.reads += 1
        return super().read(size)


class TestChunking:
    def test_syntax_error_fails_without_reading_on(self):
        stream = CountingStream("{bad}\n" + "\n".join(json.dumps(r) for r in _records(50)))
        source = JobSource(stream, name="conf.json", chunk_size=64)
        with pytest.raises(ConfigSourceError, match="malformed JSON") as exc_info:
            list(source)
        assert exc_info.value.context.record_index == 0
        assert stream.reads == 1

    @pytest.mark.parametrize("cut", [5, 14, 15, 16, 40])
    def test_cut_record_is_completed(self, cut):
        text = json.dumps({**_records(1)[0], "Enabled": False, "Retries": 3})
        source = _source(text, chunk_size=cut)
        (d,) = source
        assert d.api_method == "https://api.example.com/0"
