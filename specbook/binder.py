from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from .model import Requirement, Structure, StructureNode


@dataclass
class BindResult:
    row_number: int
    requirement: Optional[Requirement] = None
    skip_reason: str = ""

    @property
    def bound(self) -> bool:
        return self.requirement is not None


@dataclass
class SkippedRow:
    row_number: int
    req_id: str
    reason: str


@dataclass
class BindingReport:
    requirements: List[Requirement] = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)


def _field(row: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = row.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def resolve_section(segments: List[str], structure: Structure) -> Optional[StructureNode]:
    """
    Longest declared Section ancestor for an id split into ``segments``.

    The id's own last segment is never part of the candidate, so ``G.1.2.3``
    tries ``G.1.2`` then ``G.1`` then ``G``.
    """
    for length in range(len(segments) - 1, 0, -1):
        node = structure.get(".".join(segments[:length]))
        if node is not None and node.is_section:
            return node
    return None


def bind_requirement(row: Mapping[str, Any], structure: Structure, row_number: int = 0) -> BindResult:
    req_id = _field(row, "id")
    description = _field(row, "description")
    if not req_id or not description:
        return BindResult(row_number, skip_reason="missing id or description")

    segments = req_id.split(".")
    if len(segments) < 2:
        return BindResult(
            row_number,
            skip_reason=f"Requirement {req_id}: id must address at least a part and a section",
        )

    part = structure.get(segments[0])
    if part is None or not part.is_part:
        return BindResult(
            row_number,
            skip_reason=f"Requirement {req_id}: part '{segments[0]}' not found in structure",
        )

    section = resolve_section(segments, structure)
    if section is None:
        section_id = ".".join(segments[:2])
        return BindResult(
            row_number,
            skip_reason=f"Requirement {req_id}: section '{section_id}' not found in structure",
        )

    requirement = Requirement(
        id=req_id,
        description=description,
        part=part.title,
        section=section.title,
        priority=_field(row, "priority"),
        parent=_field(row, "parent"),
        reference_to=_field(row, "reference to", "reference_to"),
        attached_files=_field(row, "attached files", "attached_files"),
        part_id=part.id,
        section_id=section.id,
        row_number=row_number,
    )
    return BindResult(row_number, requirement=requirement)


def bind_requirements(rows: Iterable[Mapping[str, Any]], structure: Structure) -> BindingReport:
    report = BindingReport()
    for row_number, row in enumerate(rows, start=1):
        result = bind_requirement(row, structure, row_number=row_number)
        if result.requirement is not None:
            report.requirements.append(result.requirement)
            continue
        skipped = SkippedRow(row_number, _field(row, "id"), result.skip_reason)
        report.skipped.append(skipped)
        logging.warning(f"Skipping requirement row {row_number}: {result.skip_reason}")

    logging.info(
        f"Bound {len(report.requirements)} requirements, skipped {len(report.skipped)} rows"
    )
    return report
