from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Tuple

CommandRunner = Callable[[List[str], Optional[Path]], Tuple[int, str, str]]


def run_cmd(cmd: List[str], cwd: Optional[Path] = None) -> Tuple[int, str, str]:
    p = subprocess.run(cmd, capture_output=True, text=True, shell=False, cwd=str(cwd) if cwd else None)
    return p.returncode, p.stdout, p.stderr
