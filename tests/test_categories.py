"""Category loader and SQL category store tests."""

from __future__ import annotations

from collections.abc import Iterator
from itertools import permutations
from pathlib import Path

import pytest

from cain.categories import (
    ROOT_CATEGORY_ID,
    Category,
    CategoryRow,
    CategoryStore,
    load_category_tree,
)
from cain.errors import InvalidInputError
from cain.tree import Tree

ROWS: list[CategoryRow] = [
    (0, "(root)", None),
    (1, "news", 0),
    (2, "science", 1),
    (3, "sports", 1),
    (4, "space", 2),
]


def _shape(tree: Tree[Category]) -> dict[int, tuple[str, int | None]]:
    """Return ``{id: (name, parent)}`` for every node reachable from the root.

    Args:
        tree: Category tree under test.

    Returns:
        dict[int, tuple[str, int | None]]: Name and parent per category id.
    """
    shape: dict[int, tuple[str, int | None]] = {}
    pending = [tree.root.id]
    while pending:
        node_id = pending.pop()
        node = tree.find_by_id(node_id)
        assert node is not None
        shape[node_id] = (node.name, tree.parent_of(node_id))
        pending.extend(child.id for child in tree.children(node_id))
    return shape


EXPECTED = {
    0: ("(root)", None),
    1: ("news", 0),
    2: ("science", 1),
    3: ("sports", 1),
    4: ("space", 2),
}


def test_load_category_tree_in_order() -> None:
    tree = load_category_tree(ROWS)

    assert _shape(tree) == EXPECTED
    assert len(tree) == len(ROWS)


@pytest.mark.parametrize("order", list(permutations(ROWS[1:])))
def test_load_category_tree_is_order_independent(order: tuple[CategoryRow, ...]) -> None:
    """Ensure every row order yields the same hierarchy without leftover placeholders.

    Args:
        order: One permutation of the non-root rows.
    """
    tree = load_category_tree(order)

    assert _shape(tree) == EXPECTED
    assert len(tree) == len(ROWS)


SIBLINGS_IN_ORDER = [
    order for order in permutations(ROWS[1:]) if order.index(ROWS[2]) < order.index(ROWS[3])
]


@pytest.mark.parametrize("order", SIBLINGS_IN_ORDER)
def test_serialize_is_stable_when_siblings_keep_their_order(
    order: tuple[CategoryRow, ...],
) -> None:
    """Ensure sibling rows arriving in the same relative order serialize identically.

    Children are listed in the order they were attached, so only the order of
    rows sharing a parent can change the serialized form.

    Args:
        order: One permutation of the non-root rows with science before sports.
    """
    assert load_category_tree(order).serialize() == load_category_tree(ROWS).serialize()


def test_swapped_siblings_serialize_in_arrival_order() -> None:
    tree = load_category_tree([ROWS[1], ROWS[3], ROWS[2], ROWS[4]])

    news = tree.serialize()["children"][0]
    assert [child["data"]["name"] for child in news["children"]] == ["sports", "science"]


def test_child_before_parent_hangs_under_placeholder_until_parent_arrives() -> None:
    tree = load_category_tree([(4, "space", 2)])

    assert _shape(tree) == {0: ("(root)", None), 2: ("", 0), 4: ("space", 2)}


def test_load_category_tree_rejects_missing_parent() -> None:
    with pytest.raises(InvalidInputError):
        load_category_tree([(1, "orphan", None)])


def test_load_category_tree_rejects_cycles() -> None:
    with pytest.raises(InvalidInputError):
        load_category_tree([(1, "a", 2), (2, "b", 1)])


@pytest.fixture
def store() -> Iterator[CategoryStore]:
    """Provide an initialised in-memory category store.

    Yields:
        Iterator[CategoryStore]: Connected store with the categories table created.
    """
    category_store = CategoryStore()
    category_store.connect()
    category_store.init()
    yield category_store
    category_store.close()


def test_init_creates_root_only(store: CategoryStore) -> None:
    assert store.table_exists("categories")

    tree = store.load_categories()

    assert tree.serialize() == {"data": {"id": 0, "name": "(root)"}, "children": []}


def test_init_is_idempotent(store: CategoryStore) -> None:
    store.init()

    assert len(store.load_categories()) == 1


def test_add_category_assigns_increasing_ids(store: CategoryStore) -> None:
    first = store.add_category("aaa")
    second = store.add_category("bbb", first)

    assert first == 1
    assert second == 2
    tree = store.load_categories()
    assert [child.name for child in tree.children(ROOT_CATEGORY_ID)] == ["aaa"]
    assert [child.name for child in tree.children(first)] == ["bbb"]


def test_add_category_rejects_duplicate_names(store: CategoryStore) -> None:
    parent = store.add_category("aaa")

    with pytest.raises(InvalidInputError):
        store.add_category("aaa")
    with pytest.raises(InvalidInputError):
        store.add_category("aaa", parent)


def test_add_category_rejects_empty_name(store: CategoryStore) -> None:
    with pytest.raises(InvalidInputError):
        store.add_category("  ")


def test_file_store_persists_between_connections(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "cain.db"
    first = CategoryStore(db_path)
    first.connect()
    first.init()
    first.add_category("kept")
    first.close()

    second = CategoryStore(db_path)
    second.connect()
    second.init()
    try:
        tree = second.load_categories()
    finally:
        second.close()

    assert [child.name for child in tree.children(ROOT_CATEGORY_ID)] == ["kept"]
