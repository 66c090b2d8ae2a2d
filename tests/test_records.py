"""Record catalog tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from cain.analysis import ResourceAnalyser, TempItem, TextItem, WebpageCapture
from cain.config import CainConfig, CaptureSettings, StorageSettings
from cain.errors import InvalidInputError, NotFoundError
from cain.recorder import METADATA_FILE
from cain.records import (
    ListItem,
    directory_category_tree,
    is_record,
    list_all,
    list_items,
    make_record,
    read_record,
    select_analyser,
)
from cain.runtime import RuntimeCache
from cain.twitter import TwitterClient


class FakeAnalyser(ResourceAnalyser):
    """Analyser returning a fixed text item and remembering requested URLs."""

    def __init__(self) -> None:
        self.urls: list[str] = []

    def analyse(self, url: str) -> list[TempItem]:
        self.urls.append(url)
        return [TextItem(f"captured {url}")]


def _config(root: Path) -> CainConfig:
    return CainConfig(storage=StorageSettings(root_dir=str(root)))


def _make_record(directory: Path) -> None:
    directory.mkdir(parents=True)
    (directory / METADATA_FILE).write_text(
        "<metadata><title>t</title></metadata>", encoding="utf-8"
    )


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    """Return an archive root with nested categories, records, and an empty category.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        Path: Root of the populated archive.
    """
    (tmp_path / "news" / "tech").mkdir(parents=True)
    _make_record(tmp_path / "news" / "tech" / "Launch")
    _make_record(tmp_path / "news" / "Election")
    (tmp_path / "empty").mkdir()
    return tmp_path


def test_list_items_lists_direct_children(archive: Path) -> None:
    assert list_items(Path(""), archive) == [
        ListItem("category", Path("empty")),
        ListItem("category", Path("news")),
    ]
    assert list_items(Path("news"), archive) == [
        ListItem("record", Path("news/Election")),
        ListItem("category", Path("news/tech")),
    ]


def test_list_items_on_record_returns_record(archive: Path) -> None:
    assert list_items(Path("news/Election"), archive) == [
        ListItem("record", Path("news/Election"))
    ]


def test_list_items_missing_category_raises(archive: Path) -> None:
    with pytest.raises(NotFoundError):
        list_items(Path("missing"), archive)


def test_list_all_walks_recursively(archive: Path) -> None:
    """Ensure records and empty categories are reported in sorted walk order.

    Args:
        archive: Populated archive root.
    """
    assert list_all(Path(""), archive) == [
        ListItem("category", Path("empty")),
        ListItem("record", Path("news/Election")),
        ListItem("record", Path("news/tech/Launch")),
    ]


def test_list_item_to_dict_uses_posix_paths() -> None:
    item = ListItem("record", Path("news") / "tech" / "Launch")

    assert item.to_dict() == {"kind": "record", "path": "news/tech/Launch"}


def test_directory_category_tree_skips_records(archive: Path) -> None:
    tree = directory_category_tree(archive)

    assert tree.serialize() == {
        "data": {"id": 0, "name": "(root)"},
        "children": [
            {"data": {"id": 1, "name": "empty"}, "children": []},
            {
                "data": {"id": 2, "name": "news"},
                "children": [{"data": {"id": 3, "name": "tech"}, "children": []}],
            },
        ],
    }


def test_make_record_creates_category_path(tmp_path: Path) -> None:
    analyser = FakeAnalyser()

    path = make_record(
        "https://example.com/page", "My page", "notes/web", _config(tmp_path), analyser=analyser
    )

    assert path == tmp_path / "notes" / "web" / "My page"
    assert is_record(path)
    assert analyser.urls == ["https://example.com/page"]
    metadata = read_record(Path("notes/web/My page"), tmp_path)
    assert metadata.title == "My page"
    assert metadata.url == "https://example.com/page"
    assert len(metadata.resources) == 1
    assert (path / metadata.resources[0].filename).read_text(encoding="utf-8") == (
        "captured https://example.com/page"
    )


def test_make_record_at_root(tmp_path: Path) -> None:
    path = make_record(
        "https://example.com", "Top", "", _config(tmp_path), analyser=FakeAnalyser()
    )

    assert path == tmp_path / "Top"
    assert list_all(Path(""), tmp_path) == [ListItem("record", Path("Top"))]


@pytest.mark.parametrize("title", ["", "   ", "..", "a/b", "bell\x07"])
def test_make_record_rejects_bad_titles(tmp_path: Path, title: str) -> None:
    analyser = FakeAnalyser()

    with pytest.raises(InvalidInputError):
        make_record("https://example.com", title, "", _config(tmp_path), analyser=analyser)
    assert analyser.urls == []


@pytest.mark.parametrize("category", ["..", "../outside", "news/../../outside", "/abs/news"])
def test_make_record_keeps_categories_inside_root(tmp_path: Path, category: str) -> None:
    root = tmp_path / "archive"
    root.mkdir()
    analyser = FakeAnalyser()

    with pytest.raises(InvalidInputError):
        make_record("https://example.com", "Page", category, _config(root), analyser=analyser)

    assert analyser.urls == []
    assert list(tmp_path.iterdir()) == [root]
    assert list(root.iterdir()) == []


def test_read_record_rejects_categories(archive: Path) -> None:
    with pytest.raises(NotFoundError):
        read_record(Path("news"), archive)


def test_select_analyser_by_host(tmp_path: Path) -> None:
    config = CainConfig(capture=CaptureSettings(command="/usr/local/bin/monolith"))
    cache = RuntimeCache(tmp_path / "runtime.json")

    twitter = select_analyser("https://twitter.com/user/status/1", config, cache=cache)
    www_twitter = select_analyser("https://www.twitter.com/user/status/1", config, cache=cache)
    page = select_analyser("https://example.com/article", config, cache=cache)

    assert isinstance(twitter, TwitterClient)
    assert isinstance(www_twitter, TwitterClient)
    assert isinstance(page, WebpageCapture)
    assert page.command == "/usr/local/bin/monolith"
    twitter.close()
    www_twitter.close()


@pytest.mark.parametrize("url", ["example.com/page", "not a url", "file:///tmp/x"])
def test_select_analyser_rejects_invalid_urls(url: str) -> None:
    with pytest.raises(InvalidInputError):
        select_analyser(url, CainConfig())
