"""
Cross-checks bound requirements against the declared structure.

Errors block document generation; warnings are advisory. Messages follow
input order, with the required-coverage pass appended last in structure
order, so two runs over the same inputs report identically.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Union

from .attachments import parse_attachments
from .model import Requirement, Structure, StructureNode, ValidationResult

ID_PATTERN = re.compile(r"^[A-Z]+\.\d+(\.\d+)*$")
LETTER_PATTERN = re.compile(r"^[A-Z]+")
DEFAULT_MAX_NESTING_DEPTH = 6


def normalize_title(title: str) -> str:
    return (title or "").strip().lower()


@dataclass(frozen=True)
class TitleIndex:
    """Part title -> part id, and part title -> {section title -> section number}."""

    part_ids: Mapping[str, str] = field(default_factory=dict)
    section_numbers: Mapping[str, Mapping[str, int]] = field(default_factory=dict)


def _section_number(section_id: str) -> Optional[int]:
    segments = (section_id or "").split(".")
    if len(segments) >= 2 and segments[1].isdigit():
        return int(segments[1])
    return None


def build_title_index(structure: Structure) -> TitleIndex:
    """
    Title lookups for requirements that carry titles but no bound section id.

    Section titles are only unique per Part by convention; when two Sections
    share a title the first one in table order wins.
    """
    part_ids: Dict[str, str] = {}
    section_numbers: Dict[str, Dict[str, int]] = {}
    for part in structure.parts:
        part_ids[part.title] = part.id
        numbers: Dict[str, int] = {}
        for node in part.walk():
            if node is part:
                continue
            number = _section_number(node.id)
            if number is not None:
                numbers.setdefault(normalize_title(node.title), number)
        section_numbers[part.title] = numbers
    return TitleIndex(part_ids=part_ids, section_numbers=section_numbers)


def coverage_ids(requirements: Iterable[Requirement]) -> Set[str]:
    covered: Set[str] = set()
    for req in requirements:
        segments = req.segments
        covered.add(segments[0])
        if len(segments) >= 2:
            covered.add(".".join(segments[:2]))
    return covered


class RequirementValidator:
    def __init__(
        self,
        base_dir: Union[str, Path, None] = None,
        file_exists: Optional[Callable[[str], bool]] = None,
        max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH,
    ) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self._file_exists = file_exists or self._path_exists
        self.max_nesting_depth = max_nesting_depth

    def _path_exists(self, path: str) -> bool:
        candidate = Path(path)
        if self.base_dir is not None and not candidate.is_absolute():
            candidate = self.base_dir / candidate
        return candidate.exists()

    def validate(self, requirements: List[Requirement], structure: Structure) -> ValidationResult:
        result = ValidationResult()
        titles = build_title_index(structure)
        valid_ids = {req.id for req in requirements}
        seen_rows: Dict[str, int] = {}

        for position, req in enumerate(requirements, start=1):
            self._check_id(req, titles, result)
            self._check_nesting_depth(req, result)
            self._check_parent_exists(req, valid_ids, result)
            self._check_attachments(req, result)
            self._check_duplicate(req, position, seen_rows, result)

        self._check_required_coverage(requirements, structure, result)
        return result

    def _check_id(self, req: Requirement, titles: TitleIndex, result: ValidationResult) -> None:
        if not ID_PATTERN.match(req.id):
            result.error(
                f"Requirement {req.id}: ID format invalid. Must be <Letters>.<Section>.<ID> (e.g., G.1.1)."
            )
            return

        segments = req.segments
        letter = LETTER_PATTERN.match(segments[0]).group(0)
        section_number = int(segments[1])

        expected_letter = titles.part_ids.get(req.part)
        if expected_letter and letter != expected_letter:
            result.error(
                f"Requirement {req.id}: ID starts with '{letter}' but belongs to '{req.part}' "
                f"(expected '{expected_letter}')."
            )

        expected_number = _section_number(req.section_id)
        if expected_number is None:
            # Not bound to a structure node; fall back to the first section with this title.
            expected_number = titles.section_numbers.get(req.part, {}).get(normalize_title(req.section))
        if expected_number is not None and section_number != expected_number:
            result.error(
                f"Requirement {req.id}: ID indicates section {section_number} but belongs to "
                f"section \"{req.section}\" (expected {expected_number})."
            )

        if req.parent and not req.id.startswith(req.parent + "."):
            result.error(
                f"Requirement {req.id}: ID inconsistent with parent {req.parent}. "
                "Child ID must start with Parent ID."
            )

    def _check_nesting_depth(self, req: Requirement, result: ValidationResult) -> None:
        depth = len(req.segments)
        if depth > self.max_nesting_depth:
            result.warn(f"Requirement {req.id}: Nesting is very deep ({depth} levels). Consider refactoring.")

    def _check_parent_exists(self, req: Requirement, valid_ids: Set[str], result: ValidationResult) -> None:
        if req.parent and req.parent not in valid_ids:
            result.error(
                f"Requirement {req.id}: Parent requirement '{req.parent}' not found. "
                "Top-level requirements should have an empty parent field."
            )

    def _check_attachments(self, req: Requirement, result: ValidationResult) -> None:
        for attachment in parse_attachments(req.attached_files):
            if not self._file_exists(attachment.path):
                result.error(f"Requirement {req.id}: Attached file '{attachment.path}' not found.")

    def _check_duplicate(
        self,
        req: Requirement,
        position: int,
        seen_rows: Dict[str, int],
        result: ValidationResult,
    ) -> None:
        first = seen_rows.setdefault(req.id, req.row_number or position)
        if first != (req.row_number or position):
            result.error(
                f"Requirement {req.id}: Duplicate requirement ID (first defined at row {first}). "
                "Anchors and cross-references need unique IDs."
            )

    def _check_required_coverage(
        self,
        requirements: List[Requirement],
        structure: Structure,
        result: ValidationResult,
    ) -> None:
        covered = coverage_ids(requirements)

        def visit(node: StructureNode) -> None:
            if node.required and node.id not in covered:
                result.error(f"Missing requirements for required section/part: {node.title} ({node.id})")
            for child in node.children:
                visit(child)

        for part in structure.parts:
            visit(part)

        # Sections the loader could not attach are never rendered, so their
        # required flag can never be met.
        reached = {node.id for node in structure.walk()}
        for node_id, node in structure.index.items():
            if node_id not in reached and node.required:
                result.error(f"Missing requirements for required section/part: {node.title} ({node.id})")


def validate_requirements(
    requirements: List[Requirement],
    structure: Structure,
    base_dir: Union[str, Path, None] = None,
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH,
) -> ValidationResult:
    validator = RequirementValidator(base_dir=base_dir, max_nesting_depth=max_nesting_depth)
    return validator.validate(requirements, structure)
