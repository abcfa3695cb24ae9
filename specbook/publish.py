"""
Writes rendered AsciiDoc to disk and hands it to asciidoctor.

Compilation is optional; the ``.adoc`` output is complete on its own. The
HTML build compiles each Part as a body-only fragment and stitches the
fragments into ``index.html`` with one tab per Part.
"""

from __future__ import annotations

import html
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .model import StructureNode
from .process import CommandRunner, run_cmd
from .render import MASTER_FILENAME, part_filenames, render_master

INDEX_FILENAME = "index.html"
DIAGRAM_ARGS = ["-r", "asciidoctor-diagram", "-a", "allow-uri-read"]


class PublishError(RuntimeError):
    """An asciidoctor step failed or the tool is missing."""


@dataclass
class WrittenDocument:
    master: Path
    parts: List[Tuple[StructureNode, Path]] = field(default_factory=list)


def write_documents(
    output_dir: Path,
    rendered_parts: Sequence[Tuple[StructureNode, str]],
    title: str,
    changelog: Optional[str] = None,
) -> WrittenDocument:
    output_dir.mkdir(parents=True, exist_ok=True)
    names = part_filenames([part for part, _ in rendered_parts])

    written = []
    for part, content in rendered_parts:
        path = output_dir / names[part.id]
        path.write_text(content, encoding="utf-8")
        written.append((part, path))
        logging.debug(f"Wrote {path}")

    master = output_dir / MASTER_FILENAME
    master.write_text(
        render_master(title, [path.name for _, path in written], changelog=changelog),
        encoding="utf-8",
    )
    logging.info(f"Wrote {len(written)} part files and master document {master}")
    return WrittenDocument(master=master, parts=written)


def copy_assets(assets_dir: Optional[Path], output_dir: Path) -> Optional[Path]:
    """Mirror the assets folder next to the generated documents so relative paths resolve."""
    if assets_dir is None or not assets_dir.is_dir():
        return None
    dest = output_dir / assets_dir.name
    logging.info(f"Copying {assets_dir} to {dest}")
    shutil.copytree(assets_dir, dest, dirs_exist_ok=True)
    return dest


def _run_tool(cmd: List[str], runner: CommandRunner, cwd: Optional[Path] = None) -> None:
    logging.info(f"Running: {' '.join(cmd)}")
    try:
        code, _stdout, stderr = runner(cmd, cwd)
    except OSError as exc:
        raise PublishError(f"Could not run {cmd[0]}: {exc}") from exc
    if code != 0:
        raise PublishError(f"{cmd[0]} exited with {code}: {stderr.strip()}")


def compile_pdf(master: Path, executable: str = "asciidoctor-pdf", runner: CommandRunner = run_cmd) -> Path:
    _run_tool([executable, *DIAGRAM_ARGS, str(master)], runner)
    return master.with_suffix(".pdf")


def compile_html_fragment(source: Path, executable: str = "asciidoctor", runner: CommandRunner = run_cmd) -> Path:
    target = source.with_suffix(".html")
    _run_tool([executable, *DIAGRAM_ARGS, "-s", "-o", str(target), str(source)], runner)
    return target


INDEX_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>
body {{font-family: Arial, sans-serif;}}
.tab {{overflow: hidden; border: 1px solid #ccc; background-color: #f1f1f1;}}
.tab button {{background-color: inherit; float: left; border: none; outline: none; cursor: pointer; padding: 14px 16px; font-size: 17px;}}
.tab button:hover {{background-color: #ddd;}}
.tab button.active {{background-color: #ccc;}}
.tabcontent {{display: none; padding: 6px 12px; border: 1px solid #ccc; border-top: none;}}
</style>
</head>
<body>
<h2>{title}</h2>
<div class="tab">
{buttons}
</div>
{panels}
<script>
function openPart(evt, partId) {{
  var panels = document.getElementsByClassName("tabcontent");
  for (var i = 0; i < panels.length; i++) {{ panels[i].style.display = "none"; }}
  var links = document.getElementsByClassName("tablinks");
  for (var i = 0; i < links.length; i++) {{ links[i].className = links[i].className.replace(" active", ""); }}
  document.getElementById(partId).style.display = "block";
  evt.currentTarget.className += " active";
}}
</script>
</body>
</html>
"""


def build_tab_index(title: str, fragments: Sequence[Tuple[StructureNode, str]]) -> str:
    """One tab per Part, first tab open."""
    buttons: List[str] = []
    panels: List[str] = []
    for position, (part, fragment) in enumerate(fragments):
        tab_id = f"part-{html.escape(part.id, quote=True)}"
        active = " active" if position == 0 else ""
        display = "block" if position == 0 else "none"
        label = html.escape(part.title or part.id)
        buttons.append(f'<button class="tablinks{active}" onclick="openPart(event, \'{tab_id}\')">{label}</button>')
        panels.append(f'<div id="{tab_id}" class="tabcontent" style="display:{display}">\n{fragment}\n</div>')
    return INDEX_TEMPLATE.format(
        title=html.escape(title),
        buttons="\n".join(buttons),
        panels="\n".join(panels),
    )


def publish_html(
    written: WrittenDocument,
    title: str,
    executable: str = "asciidoctor",
    runner: CommandRunner = run_cmd,
) -> Path:
    fragments = []
    for part, source in written.parts:
        target = compile_html_fragment(source, executable=executable, runner=runner)
        fragments.append((part, target.read_text(encoding="utf-8")))
    index_path = written.master.parent / INDEX_FILENAME
    index_path.write_text(build_tab_index(title, fragments), encoding="utf-8")
    logging.info(f"Generated {index_path} with {len(fragments)} tabs")
    return index_path


def ensure_tool(executable: str) -> None:
    if shutil.which(executable) is None:
        raise PublishError(f"'{executable}' not found on PATH. Install asciidoctor and asciidoctor-diagram first.")
