from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

PART = "Part"
SECTION = "Section"
NODE_KINDS = (PART, SECTION)


@dataclass
class StructureNode:
    """A Part or Section declared in the structure table."""

    id: str
    kind: str
    title: str
    description: str = ""
    required: bool = False
    children: List["StructureNode"] = field(default_factory=list)

    @property
    def is_part(self) -> bool:
        return self.kind == PART

    @property
    def is_section(self) -> bool:
        return self.kind == SECTION

    def walk(self):
        """Yield this node and every descendant, pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class Structure:
    parts: List[StructureNode]
    index: Dict[str, StructureNode]
    warnings: List[str] = field(default_factory=list)

    def get(self, node_id: str) -> Optional[StructureNode]:
        return self.index.get(node_id)

    def walk(self):
        for part in self.parts:
            yield from part.walk()


@dataclass
class Requirement:
    id: str
    description: str
    part: str = ""
    section: str = ""
    priority: str = ""
    parent: str = ""
    reference_to: str = ""
    attached_files: str = ""
    part_id: str = ""
    section_id: str = ""
    row_number: int = 0
    # Populated by build_hierarchy for one render pass only.
    children: List["Requirement"] = field(default_factory=list, repr=False, compare=False)

    @property
    def segments(self) -> List[str]:
        return self.id.split(".")

    def references(self) -> List[str]:
        return [ref.strip() for ref in self.reference_to.split(",") if ref.strip()]


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
