"""
Structure binding, validation and AsciiDoc rendering for requirement catalogs
organized as Parts and Sections.
"""

from .model import (  # noqa: F401
    PART,
    SECTION,
    Requirement,
    Structure,
    StructureNode,
    ValidationResult,
)

from .structure import build_structure, classify_node_kind, load_structure, parse_required  # noqa: F401
from .binder import BindingReport, BindResult, bind_requirement, bind_requirements  # noqa: F401
from .validator import RequirementValidator, TitleIndex, build_title_index, validate_requirements  # noqa: F401
from .hierarchy import HierarchyCycleError, build_hierarchy  # noqa: F401
from .render import render_part, render_parts, render_requirements  # noqa: F401

__all__ = [
    "PART",
    "SECTION",
    "Requirement",
    "Structure",
    "StructureNode",
    "ValidationResult",
    "build_structure",
    "classify_node_kind",
    "load_structure",
    "parse_required",
    "BindingReport",
    "BindResult",
    "bind_requirement",
    "bind_requirements",
    "RequirementValidator",
    "TitleIndex",
    "build_title_index",
    "validate_requirements",
    "HierarchyCycleError",
    "build_hierarchy",
    "render_part",
    "render_parts",
    "render_requirements",
]
