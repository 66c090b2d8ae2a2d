"""Generic arena-backed tree keyed by integer identifiers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Dict, Generic, Iterator, List, Optional, Protocol, TypeVar

from cain.errors import InvalidInputError, NotFoundError


class TreeData(Protocol):
    """Payload stored in a :class:`Tree`; must expose an integer ``id``."""

    @property
    def id(self) -> int: ...


T = TypeVar("T", bound=TreeData)


@dataclass
class _TreeNode(Generic[T]):
    data: T
    parent_id: Optional[int]
    children: List[int] = field(default_factory=list)


class ChildView(Generic[T]):
    """Lazy, restartable view over the children of one node."""

    def __init__(self, tree: "Tree[T]", child_ids: List[int]) -> None:
        self._tree = tree
        self._child_ids = child_ids

    def __iter__(self) -> Iterator[T]:
        for child_id in self._child_ids:
            yield self._tree._node(child_id).data

    def __len__(self) -> int:
        return len(self._child_ids)


class Tree(Generic[T]):
    """Hold nodes in a flat list with an id-to-position side table.

    The first node is the root; its id is taken from the root value. Nodes are
    only ever appended, so positions recorded in the side table stay valid for
    the lifetime of the tree.
    """

    def __init__(self, root: T) -> None:
        self._nodes: List[_TreeNode[T]] = [_TreeNode(root, None)]
        self._id_to_index: Dict[int, int] = {root.id: 0}

    @property
    def root(self) -> T:
        """Return the payload of the root node."""
        return self._nodes[0].data

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._id_to_index

    def add_node(self, value: T, parent_id: int) -> None:
        """Append ``value`` as the last child of ``parent_id``.

        Raises:
            NotFoundError: If ``parent_id`` is not in the tree.
            InvalidInputError: If a node with the same id already exists.
        """
        parent_index = self._id_to_index.get(parent_id)
        if parent_index is None:
            raise NotFoundError(f"Parent not found: {parent_id}")
        if value.id in self._id_to_index:
            raise InvalidInputError(f"Node already exists: {value.id}")
        self._nodes[parent_index].children.append(value.id)
        self._nodes.append(_TreeNode(value, parent_id))
        self._id_to_index[value.id] = len(self._nodes) - 1

    def find_by_id(self, node_id: int) -> Optional[T]:
        """Return the payload stored under ``node_id`` or ``None``."""
        index = self._id_to_index.get(node_id)
        if index is None:
            return None
        return self._nodes[index].data

    def find_by_id_mut(self, node_id: int) -> Optional[T]:
        """Return the stored payload itself so callers may mutate it in place."""
        return self.find_by_id(node_id)

    def modify_node(self, node_id: int, value: T) -> None:
        """Replace the payload of ``node_id`` with ``value``.

        Raises:
            NotFoundError: If ``node_id`` is not in the tree.
            ValueError: If ``value`` carries a different id.
        """
        if value.id != node_id:
            raise ValueError(f"Cannot change node id {node_id} to {value.id}")
        self._node(node_id).data = value

    def parent_of(self, node_id: int) -> Optional[int]:
        """Return the parent id of ``node_id`` (``None`` for the root)."""
        return self._node(node_id).parent_id

    def reparent(self, node_id: int, parent_id: int) -> None:
        """Detach ``node_id`` from its parent and append it under ``parent_id``.

        Raises:
            NotFoundError: If either node is missing.
            InvalidInputError: For the root, or if the move would create a cycle.
        """
        node = self._node(node_id)
        new_parent = self._node(parent_id)
        if node.parent_id is None:
            raise InvalidInputError("The root node cannot be moved")
        if node.parent_id == parent_id:
            return
        ancestor: Optional[int] = parent_id
        while ancestor is not None:
            if ancestor == node_id:
                raise InvalidInputError(
                    f"Moving node {node_id} under {parent_id} would create a cycle"
                )
            ancestor = self._node(ancestor).parent_id

        self._node(node.parent_id).children.remove(node_id)
        new_parent.children.append(node_id)
        node.parent_id = parent_id

    def children(self, node_id: int) -> ChildView[T]:
        """Return the children of ``node_id`` in insertion order.

        Raises:
            NotFoundError: If ``node_id`` is not in the tree.
        """
        return ChildView(self, self._node(node_id).children)

    def serialize(self) -> Dict[str, Any]:
        """Return the nested ``{"data": ..., "children": [...]}`` form from the root."""
        return self._serialize_node(self.root.id)

    def _serialize_node(self, node_id: int) -> Dict[str, Any]:
        node = self._node(node_id)
        return {
            "data": _dump(node.data),
            "children": [self._serialize_node(child_id) for child_id in node.children],
        }

    def _node(self, node_id: int) -> _TreeNode[T]:
        index = self._id_to_index.get(node_id)
        if index is None:
            raise NotFoundError(f"Node with ID {node_id} not found")
        return self._nodes[index]


def _dump(data: Any) -> Any:
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json")
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    return data


__all__ = ["Tree", "TreeData", "ChildView"]
