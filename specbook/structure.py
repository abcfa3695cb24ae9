from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .model import NODE_KINDS, PART, SECTION, Structure, StructureNode
from .tables import read_structure_rows


def parse_required(value: Any) -> bool:
    """Only a case-insensitive ``"true"`` marks a node as required."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


def classify_node_kind(raw_kind: Optional[str], node_id: str) -> Tuple[str, bool]:
    """
    Return ``(kind, inferred)`` for a structure row.

    An explicit ``Part``/``Section`` type wins (case-insensitive). Otherwise a
    dotted id is a Section and a dot-free id is a Part, and ``inferred`` is
    True so the caller can tell the author to fix the table.
    """
    normalized = (raw_kind or "").strip().lower()
    for kind in NODE_KINDS:
        if normalized == kind.lower():
            return kind, False
    if "." in node_id:
        return SECTION, True
    return PART, True


def _parent_candidates(node_id: str) -> List[str]:
    segments = node_id.split(".")
    candidates: List[str] = []
    if len(segments) > 1:
        candidates.append(".".join(segments[:-1]))
        if segments[0] not in candidates:
            candidates.append(segments[0])
    return candidates


def build_structure(rows: Iterable[Mapping[str, Any]]) -> Structure:
    """
    Build the Part/Section hierarchy from structure rows.

    Problems with individual rows never abort the load; they are logged and
    returned in ``Structure.warnings``.
    """

    warnings: List[str] = []

    def warn(message: str) -> None:
        logging.warning(message)
        warnings.append(message)

    index: Dict[str, StructureNode] = {}
    ordered: List[StructureNode] = []

    for row_number, row in enumerate(rows, start=1):
        node_id = str(row.get("id", "") or "").strip()
        if not node_id:
            warn(f"Structure row {row_number}: missing id; row ignored.")
            continue
        if node_id in index:
            warn(f"Structure row {row_number}: duplicate id '{node_id}'; keeping the first definition.")
            continue

        raw_kind = row.get("type")
        kind, inferred = classify_node_kind(raw_kind, node_id)
        if inferred:
            shown = str(raw_kind).strip() if raw_kind else ""
            if shown:
                warn(f"Structure node {node_id}: unrecognized type '{shown}', inferred '{kind}' from id.")
            else:
                warn(f"Structure node {node_id}: no type given, inferred '{kind}' from id.")

        node = StructureNode(
            id=node_id,
            kind=kind,
            title=str(row.get("title", "") or "").strip(),
            description=str(row.get("description", "") or "").strip(),
            required=parse_required(row.get("required")),
        )
        index[node_id] = node
        ordered.append(node)

    parts: List[StructureNode] = []
    for node in ordered:
        if node.is_part:
            parts.append(node)
            continue

        parent = None
        for candidate in _parent_candidates(node.id):
            found = index.get(candidate)
            if found is not None and found is not node:
                parent = found
                break

        if parent is None:
            warn(f"Structure node {node.id}: no parent part found; section left out of the hierarchy.")
            continue
        parent.children.append(node)

    return Structure(parts=parts, index=index, warnings=warnings)


def load_structure(path: Union[str, Path], sheet_name: Optional[str] = None) -> Structure:
    rows = read_structure_rows(path, sheet_name=sheet_name)
    structure = build_structure(rows)
    logging.info(
        f"Loaded structure from {path}: {len(structure.parts)} parts, {len(structure.index)} nodes"
    )
    return structure
