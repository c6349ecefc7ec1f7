"""Hierarchy Store - in-memory tree of classification nodes.

Codes are prefix-structured: a child's code always begins with its
parent's code. Each node carries a dot-joined `path` of ancestor codes,
so descendant lookup is a prefix match on `path` and ancestor lookup
walks the path segments.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from device_pricing.core.errors import IntegrityViolation, NotFound
from device_pricing.infra.logging import get_logger
from device_pricing.models.base import new_id

if TYPE_CHECKING:
    from device_pricing.infra.store import Store

logger = get_logger(__name__)

PATH_SEPARATOR = "."
DEFAULT_SCHEME = Path(__file__).parent.parent / "data" / "categories.yaml"


@dataclass(frozen=True)
class CategoryNode:
    """Immutable classification node."""

    id: str
    code: str
    name: str
    parent_id: str | None
    depth: int
    path: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CategoryNode":
        """Create from a `categories` row."""
        return cls(
            id=str(row["id"]),
            code=row["code"],
            name=row["name"],
            parent_id=str(row["parent_id"]) if row.get("parent_id") else None,
            depth=int(row["depth"]),
            path=row["path"],
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "parent_id": self.parent_id,
            "depth": self.depth,
            "path": self.path,
        }


class HierarchyStore:
    """Read-mostly index over classification nodes.

    Validates the tree on construction. The only permitted mutation
    afterwards is `rename`.
    """

    def __init__(self, nodes: Iterable[CategoryNode]) -> None:
        self._by_id: dict[str, CategoryNode] = {}
        self._by_code: dict[str, CategoryNode] = {}
        self._by_path: dict[str, CategoryNode] = {}

        for node in nodes:
            self._by_id[node.id] = node
            self._by_code[node.code] = node

        problems = self._validate()
        if problems:
            raise IntegrityViolation("Invalid classification hierarchy", problems)

        self._by_path = {node.path: node for node in self._by_id.values()}

        logger.debug("Hierarchy store built", node_count=len(self._by_id))

    def _validate(self) -> list[str]:
        problems: list[str] = []
        seen_paths: set[str] = set()

        for node in self._by_id.values():
            if node.path in seen_paths:
                problems.append(f"duplicate path {node.path}")
            seen_paths.add(node.path)

            if node.parent_id is None:
                if node.depth != 0 or node.path != node.code:
                    problems.append(f"root {node.code} must have depth 0 and path == code")
                continue

            parent = self._by_id.get(node.parent_id)
            if parent is None:
                problems.append(f"{node.code}: parent {node.parent_id} missing")
                continue
            if not node.code.startswith(parent.code) or node.code == parent.code:
                problems.append(f"{node.code} does not extend parent code {parent.code}")
            if node.depth != parent.depth + 1:
                problems.append(f"{node.code}: depth {node.depth} != {parent.depth + 1}")
            if node.path != f"{parent.path}{PATH_SEPARATOR}{node.code}":
                problems.append(f"{node.code}: path {node.path} does not follow parent path")

        return problems

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def nodes(self) -> list[CategoryNode]:
        """All nodes ordered by path."""
        return sorted(self._by_id.values(), key=lambda n: n.path)

    def get_node(self, node_id: str) -> CategoryNode:
        """Get a node by id.

        Raises:
            NotFound: If the id is absent
        """
        node = self._by_id.get(node_id)
        if node is None:
            raise NotFound("category", node_id)
        return node

    def get_by_code(self, code: str) -> CategoryNode:
        """Get a node by hierarchy code.

        Raises:
            NotFound: If the code is absent
        """
        node = self._by_code.get(code)
        if node is None:
            raise NotFound("category code", code)
        return node

    def has_code(self, code: str) -> bool:
        return code in self._by_code

    def get_descendant_ids(self, node_id: str) -> set[str]:
        """Ids of the node itself and every node below it."""
        node = self.get_node(node_id)
        prefix = node.path + PATH_SEPARATOR
        ids = {node.id}
        ids.update(n.id for n in self._by_id.values() if n.path.startswith(prefix))
        return ids

    def get_ancestor_chain(self, node_id: str) -> list[CategoryNode]:
        """Nodes from the root down to and including the node."""
        node = self.get_node(node_id)
        segments = node.path.split(PATH_SEPARATOR)
        chain: list[CategoryNode] = []
        for idx in range(1, len(segments) + 1):
            chain.append(self._by_path[PATH_SEPARATOR.join(segments[:idx])])
        return chain

    def is_descendant_or_self(self, candidate_id: str, ancestor_id: str) -> bool:
        """Whether `candidate_id` equals or sits below `ancestor_id`."""
        candidate = self.get_node(candidate_id)
        ancestor = self.get_node(ancestor_id)
        return candidate.path == ancestor.path or candidate.path.startswith(
            ancestor.path + PATH_SEPARATOR
        )

    def rename(self, node_id: str, name: str) -> CategoryNode:
        """Correct the display name of a node."""
        node = self.get_node(node_id)
        renamed = replace(node, name=name)
        self._by_id[node_id] = renamed
        self._by_code[node.code] = renamed
        self._by_path[node.path] = renamed
        logger.info("Category renamed", category_id=node_id, code=node.code, name=name)
        return renamed


def build_nodes(
    entries: Iterable[tuple[str, str]],
    id_factory: Any = None,
) -> list[CategoryNode]:
    """Build nodes for a classification scheme import.

    The parent of a code is the longest strictly shorter prefix that is
    itself part of the scheme; depth and path follow from the parent.

    Args:
        entries: (code, name) pairs in any order
        id_factory: Callable mapping a code to its id (defaults to the code)

    Returns:
        Nodes ordered by code length, parents before children
    """
    names = dict(entries)
    make_id = id_factory or (lambda code: code)
    built: dict[str, CategoryNode] = {}

    for code in sorted(names, key=lambda c: (len(c), c)):
        parent_code = None
        for length in range(len(code) - 1, 0, -1):
            if code[:length] in names:
                parent_code = code[:length]
                break

        parent = built.get(parent_code) if parent_code else None
        built[code] = CategoryNode(
            id=make_id(code),
            code=code,
            name=names[code],
            parent_id=parent.id if parent else None,
            depth=parent.depth + 1 if parent else 0,
            path=f"{parent.path}{PATH_SEPARATOR}{code}" if parent else code,
        )

    return list(built.values())


def read_scheme(path: Path | str = DEFAULT_SCHEME) -> list[tuple[str, str]]:
    """Read (code, name) pairs from a scheme YAML file."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return [(str(code), str(name)) for code, name in data.get("categories", {}).items()]


async def import_scheme(store: "Store", entries: Iterable[tuple[str, str]]) -> int:
    """Write a classification scheme to the `categories` table.

    Existing codes keep their ids. Rows identical to the stored ones are
    not rewritten.

    Returns:
        Number of rows written
    """
    existing = {row["code"]: row for row in await store.select("categories")}
    nodes = build_nodes(
        entries,
        id_factory=lambda code: str(existing[code]["id"]) if code in existing else new_id(),
    )
    HierarchyStore(nodes)

    written = 0
    for node in nodes:
        current = existing.get(node.code)
        if current is not None and CategoryNode.from_row(current) == node:
            continue
        await store.upsert("categories", node.as_dict())
        written += 1

    logger.info("Scheme imported", node_count=len(nodes), written=written)
    return written


async def load_hierarchy(store: "Store") -> HierarchyStore:
    """Build a HierarchyStore from the `categories` table."""
    rows = await store.select("categories", order_by=("path",))
    hierarchy = HierarchyStore(CategoryNode.from_row(row) for row in rows)
    logger.info("Hierarchy loaded", node_count=len(hierarchy))
    return hierarchy
