"""Runtime cache tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cain.errors import InvalidInputError
from cain.runtime import RuntimeCache


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    cache = RuntimeCache(tmp_path / "runtime.json")

    assert cache.get("twitter_token") is None


def test_set_creates_file_and_keeps_other_keys(tmp_path: Path) -> None:
    path = tmp_path / "config" / "runtime.json"
    cache = RuntimeCache(path)

    cache.set("first", "1")
    cache.set("second", "2")

    assert cache.get("first") == "1"
    assert json.loads(path.read_text(encoding="utf-8")) == {"first": "1", "second": "2"}


def test_non_string_value_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "runtime.json"
    path.write_text(json.dumps({"twitter_token": 5}), encoding="utf-8")

    with pytest.raises(InvalidInputError):
        RuntimeCache(path).get("twitter_token")


@pytest.mark.parametrize("content", ["not json", "[1, 2]"])
def test_malformed_file_is_rejected(tmp_path: Path, content: str) -> None:
    path = tmp_path / "runtime.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(InvalidInputError):
        RuntimeCache(path).get("anything")


def test_default_path_lives_under_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    cache = RuntimeCache()
    cache.set("key", "value")

    assert cache.path == tmp_path / ".config" / "cain" / "runtime.json"
    assert cache.path.exists()
