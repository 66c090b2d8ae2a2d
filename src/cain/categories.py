"""Category models, the row loader, and the SQL-backed category store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from cain.errors import IOFailureError, InvalidInputError
from cain.tree import Tree

LOGGER = logging.getLogger(__name__)

ROOT_CATEGORY_ID = 0
ROOT_CATEGORY_NAME = "(root)"

CategoryRow = Tuple[int, str, Optional[int]]


class Category(BaseModel):
    """A node of the category hierarchy."""

    id: int
    name: str


def root_category() -> Category:
    """Return the reserved root category."""
    return Category(id=ROOT_CATEGORY_ID, name=ROOT_CATEGORY_NAME)


def load_category_tree(rows: Iterable[CategoryRow]) -> Tree[Category]:
    """Build a category tree from ``(id, name, parent)`` rows in any order.

    A child seen before its parent hangs under an empty-named placeholder at
    the root; the placeholder is filled in and moved under its own parent once
    its row arrives.

    Args:
        rows: Category rows as stored in the backing store.

    Returns:
        Tree[Category]: Tree rooted at the reserved root category.

    Raises:
        InvalidInputError: If a non-root row has no parent or rows form a cycle.
    """
    tree: Tree[Category] = Tree(root_category())
    for category_id, name, parent in rows:
        if category_id == ROOT_CATEGORY_ID:
            continue
        if parent is None:
            raise InvalidInputError(f"Category {category_id} has no parent")

        category = Category(id=category_id, name=name)
        if category_id in tree:
            tree.modify_node(category_id, category)
            if tree.parent_of(category_id) != parent:
                if parent not in tree:
                    tree.add_node(Category(id=parent, name=""), ROOT_CATEGORY_ID)
                tree.reparent(category_id, parent)
            continue

        if parent not in tree:
            tree.add_node(Category(id=parent, name=""), ROOT_CATEGORY_ID)
        tree.add_node(category, parent)
    return tree


class CategoryStore:
    """Persist categories in SQLite through a pooled SQLAlchemy engine."""

    def __init__(self, db_path: Path | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: SQLite database file; ``None`` keeps the database in memory.
        """
        self._db_path = db_path
        self._engine: Engine | None = None

    def connect(self) -> None:
        """Create the connection pool, creating the database file if needed."""
        if self._db_path is None:
            self._engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
            return
        path = self._db_path.expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IOFailureError(f"Failed to create database directory {path.parent}: {exc}") from exc
        self._engine = create_engine(f"sqlite:///{path}")

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def table_exists(self, table: str) -> bool:
        try:
            return inspect(self._require_engine()).has_table(table)
        except SQLAlchemyError as exc:
            raise IOFailureError(f"Failed to look up table {table}: {exc}") from exc

    def init(self) -> None:
        """Create the categories table and the root row when missing."""
        if self.table_exists("categories"):
            return
        LOGGER.debug("Creating categories table")
        try:
            with self._require_engine().begin() as conn:
                conn.execute(
                    text(
                        "CREATE TABLE categories ("
                        " id INTEGER PRIMARY KEY ASC,"
                        " name TEXT UNIQUE,"
                        " parent INTEGER)"
                    )
                )
                conn.execute(
                    text("INSERT INTO categories (id, name, parent) VALUES (:id, :name, NULL)"),
                    {"id": ROOT_CATEGORY_ID, "name": ROOT_CATEGORY_NAME},
                )
        except SQLAlchemyError as exc:
            raise IOFailureError(f"Failed to create categories table: {exc}") from exc

    def add_category(self, name: str, parent: int = ROOT_CATEGORY_ID) -> int:
        """Insert a category and return its assigned id.

        Raises:
            InvalidInputError: If the name is empty or already used by any category.
            IOFailureError: For other database failures.
        """
        if not name.strip():
            raise InvalidInputError("Category name must not be empty")
        try:
            with self._require_engine().begin() as conn:
                result = conn.execute(
                    text("INSERT OR ABORT INTO categories (name, parent) VALUES (:name, :parent)"),
                    {"name": name, "parent": parent},
                )
                new_id = result.lastrowid
        except IntegrityError as exc:
            raise InvalidInputError(f"Category already exists: {name}") from exc
        except SQLAlchemyError as exc:
            raise IOFailureError(f"Failed to add category: {exc}") from exc
        LOGGER.info("Added category %s (%s) under %s", name, new_id, parent)
        return int(new_id)

    def load_categories(self) -> Tree[Category]:
        """Load every stored category into a tree."""
        try:
            with self._require_engine().connect() as conn:
                rows = conn.execute(text("SELECT id, name, parent FROM categories")).all()
        except SQLAlchemyError as exc:
            raise IOFailureError(f"Failed to load categories: {exc}") from exc
        return load_category_tree((row[0], row[1], row[2]) for row in rows)

    def _require_engine(self) -> Engine:
        if self._engine is None:
            raise IOFailureError("Category database not connected")
        return self._engine


__all__ = [
    "Category",
    "CategoryRow",
    "CategoryStore",
    "ROOT_CATEGORY_ID",
    "ROOT_CATEGORY_NAME",
    "load_category_tree",
    "root_category",
]
