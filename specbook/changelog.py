from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .process import CommandRunner, run_cmd

GIT_TAG_FORMAT = "%(refname:short)|%(creatordate:short)|%(contents:subject)"


@dataclass(frozen=True)
class ChangelogEntry:
    version: str
    date: str
    comment: str


def parse_tag_lines(output: str) -> List[ChangelogEntry]:
    entries: List[ChangelogEntry] = []
    for line in output.strip().splitlines():
        if not line.strip():
            continue
        parts = line.split("|")
        if len(parts) < 3:
            continue
        entries.append(
            ChangelogEntry(
                version=parts[0].strip(),
                date=parts[1].strip(),
                # Subjects may contain pipes of their own.
                comment="|".join(parts[2:]).strip(),
            )
        )
    return entries


def get_changelog(repo_dir: Optional[Path] = None, runner: CommandRunner = run_cmd) -> List[ChangelogEntry]:
    """Tags newest first as changelog entries; empty when git is unavailable or untagged."""
    cmd = ["git", "tag", "-n1", "--sort=-creatordate", f"--format={GIT_TAG_FORMAT}"]
    try:
        code, stdout, stderr = runner(cmd, repo_dir)
    except OSError as exc:
        logging.warning(f"Failed to fetch tags for changelog: {exc}")
        return []
    if code != 0:
        logging.warning(f"git tag exited with {code}; changelog skipped. {stderr.strip()}")
        return []
    return parse_tag_lines(stdout)


def render_changelog_adoc(entries: Sequence[ChangelogEntry]) -> str:
    if not entries:
        return ""
    lines = [
        "[discrete]",
        "== Changelog",
        "",
        '[cols="1,1,3", options="header"]',
        "|===",
        "| Version | Date | Description",
    ]
    for entry in entries:
        comment = entry.comment.replace("|", "\\|")
        lines.append(f"| {entry.version} | {entry.date} | {comment}")
    lines.append("|===")
    return "\n".join(lines) + "\n"
