"""
AsciiDoc rendering for bound requirements.

Heading marker count equals nesting depth: in a Part file the Part title is
``=``, its Sections ``==`` and the requirements of a Section start one level
below the Section. Requirement headings are discrete so deep requirement
trees never disturb the table of contents. Children of a requirement sit in
an example block whose delimiter grows with depth, which keeps nested blocks
valid and shows where a parent's content ends.
"""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .attachments import DIAGRAM, IMAGE, Attachment, parse_attachments
from .hierarchy import build_hierarchy
from .model import Requirement, Structure, StructureNode

REQUIREMENT_SEPARATOR = "---"
PAGE_BREAK = "<<<"
NO_REQUIREMENTS_PLACEHOLDER = "_No requirements for this section._"
MASTER_FILENAME = "full-specs.adoc"
DEFAULT_TITLE = "Project Specifications"


def heading(level: int, text: str) -> str:
    return f"{'=' * level} {text}".rstrip()


def _nested_delimiter(level: int) -> str:
    # Example block delimiters need at least four characters.
    return "=" * (level + 3)


def attachment_anchor(req_id: str, index: int) -> str:
    return f"{req_id}-attachment-{index}"


def diagram_target(req_id: str, index: int) -> str:
    return f"diagram-{req_id}-{index}"


def render_attachment(attachment: Attachment, req_id: str, index: int) -> List[str]:
    lines = [f"[[{attachment_anchor(req_id, index)}]]"]
    caption = attachment.caption or f"Visual for {req_id}"

    if attachment.kind == DIAGRAM:
        lines += [
            "[.text-center]",
            f".{caption}",
            f"plantuml::{attachment.path}[format=svg, target={diagram_target(req_id, index)}, align=center]",
        ]
    elif attachment.kind == IMAGE:
        lines += [
            "[.text-center]",
            f".{caption}",
            f"image::{attachment.path}[{req_id} Image, align=center]",
        ]
    else:
        lines.append(f"link:{attachment.path}[{attachment.caption or 'Attached File'}]")
    lines.append("")
    return lines


def render_references(req: Requirement) -> List[str]:
    refs = req.references()
    if not refs:
        return []
    links = ", ".join(f"<<{ref}>>" for ref in refs)
    return [
        '[cols="1,4", options="noheader", frame="none", grid="none"]',
        "|===",
        f"|*References*: | {links}",
        "|===",
        "",
    ]


def render_requirement_body(req: Requirement, level: int) -> List[str]:
    lines = [
        f"[[{req.id}]]",
        "[discrete]",
        heading(level, req.id),
        "",
    ]
    text = req.description
    if req.priority:
        text = f"[.priority]#{req.priority}# {text}"
    lines += [text, ""]
    lines += render_references(req)
    for index, attachment in enumerate(parse_attachments(req.attached_files), start=1):
        lines += render_attachment(attachment, req.id, index)
    return lines


def _render_forest(reqs: Sequence[Requirement], level: int, top_level: bool) -> List[str]:
    lines: List[str] = []
    for req in reqs:
        lines += render_requirement_body(req, level)
        if req.children:
            delimiter = _nested_delimiter(level + 1)
            lines += ["[.nested]", delimiter]
            lines += _render_forest(req.children, level + 1, top_level=False)
            lines += [delimiter, ""]
        if top_level:
            lines += [REQUIREMENT_SEPARATOR, ""]
    return lines


def render_requirements(roots: Sequence[Requirement], level: int) -> str:
    """Render a forest depth-first, roots at heading ``level``."""
    if level < 1:
        raise ValueError(f"Heading level must be >= 1, got {level}")
    return "\n".join(_render_forest(roots, level, top_level=True))


def group_by_section(requirements: Iterable[Requirement]) -> Dict[str, List[Requirement]]:
    grouped: Dict[str, List[Requirement]] = {}
    for req in requirements:
        grouped.setdefault(req.section_id, []).append(req)
    return grouped


def render_structure_node(
    node: StructureNode,
    reqs_by_section: Mapping[str, Sequence[Requirement]],
    level: int,
) -> str:
    lines = [heading(level, f"{node.id} {node.title}"), ""]
    if node.description:
        lines += [node.description, ""]

    section_reqs = list(reqs_by_section.get(node.id, ()))
    if section_reqs:
        roots = build_hierarchy(section_reqs)
        lines.append(render_requirements(roots, level + 1))

    if node.children:
        for child in node.children:
            lines.append(render_structure_node(child, reqs_by_section, level + 1))
    elif not section_reqs:
        lines += [NO_REQUIREMENTS_PLACEHOLDER, ""]
    return "\n".join(lines)


def render_part(part: StructureNode, reqs_by_section: Mapping[str, Sequence[Requirement]]) -> str:
    lines = [heading(1, part.title or part.id), ":toc:", ""]
    if part.description:
        lines += [part.description, ""]
    for child in part.children:
        lines.append(render_structure_node(child, reqs_by_section, 2))
    return "\n".join(lines).rstrip() + "\n"


def render_parts(
    structure: Structure,
    requirements: Sequence[Requirement],
    workers: int = 1,
) -> List[Tuple[StructureNode, str]]:
    """Render every Part; output order always follows the structure table."""
    reqs_by_section = group_by_section(requirements)
    parts = list(structure.parts)
    if workers > 1 and len(parts) > 1:
        with ThreadPoolExecutor(max_workers=workers) as ex:
            rendered = list(ex.map(lambda p: render_part(p, reqs_by_section), parts))
    else:
        rendered = [render_part(part, reqs_by_section) for part in parts]
    return list(zip(parts, rendered))


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug or "part"


def part_filenames(parts: Sequence[StructureNode]) -> Dict[str, str]:
    """Part id -> unique ``.adoc`` filename derived from the Part title."""
    used: Set[str] = set()
    names: Dict[str, str] = {}
    for part in parts:
        stem = slugify(part.title or part.id)
        candidate = stem
        counter = 1
        while f"{candidate}.adoc" in used or f"{candidate}.adoc" == MASTER_FILENAME:
            candidate = f"{stem}-{counter}"
            counter += 1
        used.add(f"{candidate}.adoc")
        names[part.id] = f"{candidate}.adoc"
    return names


def render_master(title: str, part_files: Sequence[str], changelog: Optional[str] = None) -> str:
    lines = [heading(1, title or DEFAULT_TITLE), ":toc: left", ":toclevels: 2", ""]
    if changelog:
        lines += [changelog.rstrip(), ""]
    for filename in part_files:
        lines += [f"include::{filename}[leveloffset=+1]", "", PAGE_BREAK, ""]
    return "\n".join(lines)
