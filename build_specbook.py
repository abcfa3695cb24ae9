"""Build an AsciiDoc specification book from a structure table and a requirement table.

Pipeline:
    * Load the Part/Section structure table.
    * Bind each requirement row to its Part and Section from its dotted id.
    * Validate ids, parents, attachments and required coverage; stop on any error.
    * Render one .adoc per Part plus a master document, optionally compiled
      with asciidoctor (PDF + tabbed HTML).
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from specbook.binder import bind_requirements
from specbook.changelog import get_changelog, render_changelog_adoc
from specbook.config import RunConfig, apply_env_overrides, load_run_config
from specbook.hierarchy import HierarchyCycleError
from specbook.publish import (
    PublishError,
    WrittenDocument,
    compile_pdf,
    copy_assets,
    ensure_tool,
    publish_html,
    write_documents,
)
from specbook.render import render_parts
from specbook.structure import load_structure
from specbook.tables import read_requirement_rows
from specbook.validator import RequirementValidator

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_PUBLISH_FAILED = 2


########################
# CLI
########################

def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Validate a requirements catalog against its declared structure and render it as AsciiDoc.",
    )
    parser.add_argument("--run-config", type=Path, help="Optional YAML file with run settings.")
    parser.add_argument("--structure", type=Path, help="Structure table (CSV/Excel): id, type, title, description, required.")
    parser.add_argument("--requirements", type=Path, help="Requirement table (CSV/Excel).")
    parser.add_argument("--output-dir", type=Path, help="Directory for the generated .adoc/.pdf/.html files.")
    parser.add_argument("--title", help="Title of the master document.")
    parser.add_argument("--assets-dir", type=Path, help="Folder copied next to the generated documents.")
    parser.add_argument("--attachments-base", type=Path, help="Base directory for relative attachment paths.")
    parser.add_argument("--workers", type=int, help="Render Parts in parallel with this many threads.")
    parser.add_argument("--changelog", action="store_true", default=None, help="Add a changelog table built from git tags.")
    parser.add_argument("--pdf", action="store_true", default=None, help="Compile the master document with asciidoctor-pdf.")
    parser.add_argument("--html", action="store_true", default=None, help="Compile Part fragments and a tabbed index.html.")
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Stop after validation; write nothing.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace, environ=None) -> RunConfig:
    config = load_run_config(args.run_config) if args.run_config else RunConfig()
    config = apply_env_overrides(config, environ)

    overrides = {
        "structure": args.structure,
        "requirements": args.requirements,
        "output_dir": args.output_dir,
        "title": args.title,
        "assets_dir": args.assets_dir,
        "attachments_base": args.attachments_base,
        "workers": max(1, args.workers) if args.workers is not None else None,
        "changelog": args.changelog,
        "compile_pdf": args.pdf,
        "compile_html": args.html,
    }
    values = {k: v for k, v in overrides.items() if v is not None}
    config = replace(config, **values)

    if config.structure is None or config.requirements is None:
        raise ValueError("Both a structure table and a requirement table are required (--structure/--requirements).")
    return config


def report_messages(errors: List[str], warnings: List[str]) -> None:
    for message in warnings:
        logging.warning(message)
    for message in errors:
        logging.error(message)


def publish(config: RunConfig, written: WrittenDocument) -> None:
    copy_assets(config.assets_dir, config.output_dir)
    if config.compile_pdf:
        ensure_tool(config.asciidoctor_pdf)
        pdf = compile_pdf(written.master, executable=config.asciidoctor_pdf)
        logging.info(f"Compiled {pdf}")
    if config.compile_html:
        ensure_tool(config.asciidoctor)
        publish_html(written, config.title, executable=config.asciidoctor)


########################
# MAIN EXECUTION
########################

def run(config: RunConfig, validate_only: bool = False) -> int:
    structure = load_structure(config.structure)
    rows = read_requirement_rows(config.requirements)
    logging.info(f"Read {len(rows)} requirement rows from {config.requirements}")

    binding = bind_requirements(rows, structure)

    validator = RequirementValidator(
        base_dir=config.attachments_base,
        max_nesting_depth=config.max_nesting_depth,
    )
    result = validator.validate(binding.requirements, structure)
    # Load and bind diagnostics were already logged as they happened.
    report_messages(result.errors, result.warnings)
    warning_count = len(structure.warnings) + len(binding.skipped) + len(result.warnings)

    if not result.is_valid:
        logging.error(f"Validation failed with {len(result.errors)} error(s); no documents generated.")
        return EXIT_INVALID
    logging.info(f"Validation passed ({warning_count} warning(s)).")

    if validate_only:
        return EXIT_OK

    rendered = render_parts(structure, binding.requirements, workers=config.workers)

    changelog = None
    if config.changelog:
        changelog = render_changelog_adoc(get_changelog())

    written = write_documents(config.output_dir, rendered, config.title, changelog=changelog)
    publish(config, written)
    logging.info("Done!")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = resolve_config(args)
        return run(config, validate_only=args.validate_only)
    except (FileNotFoundError, ValueError) as e:
        # HierarchyCycleError is a ValueError as well.
        kind = "Hierarchy error" if isinstance(e, HierarchyCycleError) else "Input error"
        logging.error(f"{kind}: {e}")
        return EXIT_INVALID
    except PublishError as e:
        logging.error(f"Publishing failed: {e}")
        return EXIT_PUBLISH_FAILED


if __name__ == "__main__":
    sys.exit(main())
