"""Webpage capture tests with the snapshot tool replaced."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

import pytest

from cain.analysis import FileItem, WebpageCapture
from cain.errors import IOFailureError, SnapshotError
from cain.recorder import METADATA_FILE, create_record, read_metadata_file


def _fake_monolith(returncode: int = 0) -> Any:
    """Return a ``subprocess.run`` stand-in that writes the ``-o`` target.

    Args:
        returncode: Exit status reported by the fake process.

    Returns:
        Any: Callable recording the argument vectors it receives.
    """
    calls: list[list[str]] = []

    def _run(args: list[str], check: bool = False) -> subprocess.CompletedProcess[bytes]:
        calls.append(args)
        if returncode == 0:
            output = Path(args[args.index("-o") + 1])
            output.write_text(f"<html>{args[-1]}</html>", encoding="utf-8")
        return subprocess.CompletedProcess(args, returncode)

    _run.calls = calls  # type: ignore[attr-defined]
    return _run


def test_build_command_uses_default_flags(tmp_path: Path) -> None:
    capture = WebpageCapture(output_path=tmp_path / "out.html")

    assert capture.build_command("https://example.com") == [
        "monolith",
        "--no-audio",
        "--isolate",
        "-o",
        str(tmp_path / "out.html"),
        "--no-fonts",
        "--no-js",
        "https://example.com",
    ]


def test_build_command_honours_options(tmp_path: Path) -> None:
    capture = WebpageCapture(
        download_fonts=True,
        disable_js=False,
        command="/opt/monolith",
        output_path=tmp_path / "out.html",
    )

    args = capture.build_command("https://example.com")

    assert args[0] == "/opt/monolith"
    assert "--no-fonts" not in args
    assert "--no-js" not in args


def test_default_output_lives_in_temp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("cain.analysis.webpage.tempfile.gettempdir", lambda: str(tmp_path))

    assert WebpageCapture().output_path == tmp_path / "cain-monolith.html"


def test_analyse_returns_snapshot_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _fake_monolith()
    monkeypatch.setattr("cain.analysis.webpage.subprocess.run", fake)
    output = tmp_path / "out.html"

    items = WebpageCapture(output_path=output).analyse("https://example.com")

    assert items == [FileItem(output)]
    assert output.read_text(encoding="utf-8") == "<html>https://example.com</html>"
    assert len(fake.calls) == 1


def test_analyse_raises_on_non_zero_exit(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("cain.analysis.webpage.subprocess.run", _fake_monolith(returncode=2))

    with pytest.raises(SnapshotError) as excinfo:
        WebpageCapture(output_path=tmp_path / "out.html").analyse("https://example.com")

    assert excinfo.value.returncode == 2


def test_analyse_raises_when_tool_is_missing(tmp_path: Path) -> None:
    capture = WebpageCapture(
        command=str(tmp_path / "no-such-monolith"),
        output_path=tmp_path / "out.html",
    )

    with pytest.raises(IOFailureError):
        capture.analyse("https://example.com")


def test_snapshot_recorded_into_empty_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ensure a captured page becomes one resource file plus the metadata document.

    Args:
        tmp_path: Temporary directory provided by pytest.
        monkeypatch: Fixture used to replace the snapshot tool.
    """
    monkeypatch.setattr("cain.analysis.webpage.subprocess.run", _fake_monolith())
    record_dir = tmp_path / "record"
    record_dir.mkdir()

    items = WebpageCapture(output_path=tmp_path / "out.html").analyse("https://example.com")
    metadata = create_record(items, "test", "https://example.com", record_dir)

    assert len(items) == 1
    assert sorted(path.name for path in record_dir.iterdir()) == sorted(
        [metadata.resources[0].filename, METADATA_FILE]
    )
    stored = read_metadata_file(record_dir / METADATA_FILE)
    assert stored.title == "test"
    assert stored.url == "https://example.com"
