from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

DIAGRAM = "diagram"
IMAGE = "image"
LINK = "link"

_DIAGRAM_RE = re.compile(r"\.puml$", re.IGNORECASE)
_IMAGE_RE = re.compile(r"\.(png|jpg|jpeg|svg|gif)$", re.IGNORECASE)


@dataclass(frozen=True)
class Attachment:
    path: str
    caption: str = ""

    @property
    def kind(self) -> str:
        return classify_attachment(self.path)


def classify_attachment(path: str) -> str:
    if _DIAGRAM_RE.search(path):
        return DIAGRAM
    if _IMAGE_RE.search(path):
        return IMAGE
    return LINK


def parse_attachments(raw: str) -> List[Attachment]:
    """Split ``"a.png|Caption; b.puml"`` into attachments, dropping empty items."""
    items: List[Attachment] = []
    for item in (raw or "").split(";"):
        item = item.strip()
        if not item:
            continue
        path, _, caption = item.partition("|")
        path = path.strip()
        if not path:
            continue
        items.append(Attachment(path=path, caption=caption.strip()))
    return items
