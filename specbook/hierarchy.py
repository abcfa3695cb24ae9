from __future__ import annotations

from typing import Dict, Iterator, List, Sequence, Set, Tuple

from .model import Requirement


class HierarchyCycleError(ValueError):
    """Raised when parent references loop back on themselves."""

    def __init__(self, req_ids: Sequence[str]) -> None:
        self.req_ids = list(req_ids)
        super().__init__(f"Cyclic parent references between requirements: {', '.join(self.req_ids)}")


def build_hierarchy(requirements: Sequence[Requirement]) -> List[Requirement]:
    """
    Arrange one scope's requirements into a forest using their ``parent`` field.

    Parents are looked up only inside ``requirements``: a requirement whose
    parent lives in another section becomes a root here. Children keep input
    order. Every requirement lands in exactly one place; if some cannot be
    reached from a root, their parent chain is cyclic and
    ``HierarchyCycleError`` is raised.
    """

    by_id: Dict[str, Requirement] = {}
    for req in requirements:
        req.children = []
        by_id.setdefault(req.id, req)

    roots: List[Requirement] = []
    for req in requirements:
        parent = by_id.get(req.parent) if req.parent else None
        if parent is not None:
            parent.children.append(req)
        else:
            roots.append(req)

    reached: Set[int] = set()
    for _, node in iter_forest(roots):
        reached.add(id(node))

    stranded = [req.id for req in requirements if id(req) not in reached]
    if stranded:
        raise HierarchyCycleError(stranded)
    return roots


def iter_forest(roots: Sequence[Requirement], depth: int = 0) -> Iterator[Tuple[int, Requirement]]:
    """Yield ``(depth, requirement)`` pairs in pre-order."""
    stack: List[Tuple[int, Requirement]] = [(depth, root) for root in reversed(roots)]
    visited: Set[int] = set()
    while stack:
        level, node = stack.pop()
        if id(node) in visited:
            continue
        visited.add(id(node))
        yield level, node
        for child in reversed(node.children):
            stack.append((level + 1, child))
