from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class Sample(Generic[T]):
    """Result of one sampler call.

    ``value`` is ``None`` when the family produced nothing at all; a partial
    result carries both a value and an ``error`` describing what was missed.
    """

    value: T | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class ToolUnavailable(Exception):
    """An external command-line tool is missing, timed out or failed."""


def join_errors(*messages: str) -> str:
    return "; ".join(m for m in messages if m)


def run_tool(args: list[str], timeout: float) -> str:
    """Run an external tool and return its stdout.

    The call is bounded by ``timeout`` seconds; the child is killed when it
    expires. Missing binaries, timeouts and non-zero exits all raise
    ``ToolUnavailable``.
    """
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ToolUnavailable(f"{Path(args[0]).name} not found") from exc
    except subprocess.TimeoutExpired as exc:
        raise ToolUnavailable(f"{Path(args[0]).name} timed out after {timeout:g}s") from exc
    except OSError as exc:
        raise ToolUnavailable(f"{Path(args[0]).name}: {exc}") from exc

    if proc.returncode != 0:
        output = (proc.stdout + proc.stderr).strip()
        raise ToolUnavailable(f"exit status {proc.returncode}: {output}")
    return proc.stdout


def read_text(path: str | Path) -> str:
    """Read a small sysfs/procfs file, stripped of whitespace and NULs."""
    return Path(path).read_text(errors="replace").strip().rstrip("\x00").strip()


def read_int(path: str | Path) -> int:
    text = read_text(path)
    if not text:
        raise ValueError(f"{path}: empty")
    return int(text)
