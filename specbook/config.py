from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .render import DEFAULT_TITLE
from .validator import DEFAULT_MAX_NESTING_DEPTH


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _optional_path(base: Path, value: Any) -> Optional[Path]:
    if value in (None, ""):
        return None
    path = Path(str(value)).expanduser()
    return path if path.is_absolute() else base / path


@dataclass(frozen=True)
class RunConfig:
    structure: Optional[Path] = None
    requirements: Optional[Path] = None
    output_dir: Path = Path("build")
    title: str = DEFAULT_TITLE
    assets_dir: Optional[Path] = Path("assets")
    attachments_base: Optional[Path] = None
    max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    workers: int = 1
    changelog: bool = False
    compile_pdf: bool = False
    compile_html: bool = False
    asciidoctor: str = "asciidoctor"
    asciidoctor_pdf: str = "asciidoctor-pdf"


def config_from_mapping(data: Mapping[str, Any], base_dir: Path) -> RunConfig:
    defaults = RunConfig()
    compile_opts = data.get("compile") or {}
    if not isinstance(compile_opts, dict):
        raise ValueError("'compile' must be a mapping with optional 'pdf' and 'html' keys.")

    assets = data.get("assets_dir", str(defaults.assets_dir))
    return RunConfig(
        structure=_optional_path(base_dir, data.get("structure")),
        requirements=_optional_path(base_dir, data.get("requirements")),
        output_dir=_optional_path(base_dir, data.get("output_dir")) or base_dir / defaults.output_dir,
        title=str(data.get("title") or defaults.title),
        assets_dir=_optional_path(base_dir, assets),
        attachments_base=_optional_path(base_dir, data.get("attachments_base")) or base_dir,
        max_nesting_depth=int(data.get("max_nesting_depth", defaults.max_nesting_depth)),
        workers=max(1, int(data.get("workers", defaults.workers))),
        changelog=bool(data.get("changelog", defaults.changelog)),
        compile_pdf=bool(compile_opts.get("pdf", defaults.compile_pdf)),
        compile_html=bool(compile_opts.get("html", defaults.compile_html)),
        asciidoctor=str(data.get("asciidoctor") or defaults.asciidoctor),
        asciidoctor_pdf=str(data.get("asciidoctor_pdf") or defaults.asciidoctor_pdf),
    )


def load_run_config(config_path: Path) -> RunConfig:
    if not config_path.exists():
        raise FileNotFoundError(f"Run config file not found: {config_path}")

    raw_text = config_path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to parse YAML config at {config_path}") from exc

    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ValueError("Config must be a mapping of settings.")
    return config_from_mapping(parsed, config_path.parent)


def apply_env_overrides(config: RunConfig, environ: Optional[Mapping[str, str]] = None) -> RunConfig:
    """SPECBOOK_* environment variables (and a local .env) override file settings."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    updates: Dict[str, Any] = {}
    if environ.get("SPECBOOK_OUTPUT_DIR"):
        updates["output_dir"] = Path(environ["SPECBOOK_OUTPUT_DIR"]).expanduser()
    if "SPECBOOK_WORKERS" in environ:
        updates["workers"] = max(1, _parse_int(environ.get("SPECBOOK_WORKERS"), config.workers))
    if "SPECBOOK_CHANGELOG" in environ:
        updates["changelog"] = _parse_bool(environ.get("SPECBOOK_CHANGELOG"), config.changelog)
    if "SPECBOOK_COMPILE_PDF" in environ:
        updates["compile_pdf"] = _parse_bool(environ.get("SPECBOOK_COMPILE_PDF"), config.compile_pdf)
    if "SPECBOOK_COMPILE_HTML" in environ:
        updates["compile_html"] = _parse_bool(environ.get("SPECBOOK_COMPILE_HTML"), config.compile_html)
    return replace(config, **updates) if updates else config
