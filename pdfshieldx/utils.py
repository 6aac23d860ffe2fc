"""Utility helpers for :mod:`pdfshieldx`."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Sequence, Union

PathLike = Union[str, os.PathLike[str]]

LOGGER = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Configure package-wide logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def to_path(path: PathLike) -> Path:
    """Normalize *path* into an absolute :class:`~pathlib.Path`."""
    return Path(path).expanduser().resolve()


def ensure_parent_dir(path: Path) -> None:
    """Create parent directory for *path* if it does not exist."""
    path.parent.mkdir(parents=True, exist_ok=True)


def which(executables: Sequence[str]) -> str | None:
    """Return the first executable from *executables* found on ``PATH``."""

    for candidate in executables:
        found = shutil.which(candidate)
        if found:
            LOGGER.debug("Detected external tool: %s -> %s", candidate, found)
            return found
    return None


def run_subprocess(
    command: Sequence[str],
    *,
    timeout: float | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *command* capturing output.

    Parameters
    ----------
    command:
        Command and arguments to execute.
    timeout:
        Seconds to wait before killing the process. ``None`` waits forever.
    check:
        Whether to raise :class:`subprocess.CalledProcessError` on non-zero exit.
    """

    LOGGER.debug("Executing command: %s", " ".join(command))
    completed = subprocess.run(
        command,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        check=check,
        text=True,
        timeout=timeout,
    )
    LOGGER.debug(
        "Command finished with exit code %s\nstdout: %s\nstderr: %s",
        completed.returncode,
        completed.stdout,
        completed.stderr,
    )
    return completed


def write_bytes_atomic(destination: Path, payload: bytes) -> None:
    """Write *payload* to *destination* through a sibling temporary file."""
    ensure_parent_dir(destination)
    temp_path = destination.with_name(f".{destination.name}.tmp")
    try:
        temp_path.write_bytes(payload)
        temp_path.replace(destination)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def reset_directory(path: Path) -> None:
    """Delete *path* if present and recreate it empty."""
    if path.exists():
        LOGGER.debug("Removing stale directory %s", path)
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


@contextmanager
def time_block(logger: logging.Logger, message: str) -> Iterator[None]:
    """Context manager that logs the execution time of a code block."""
    start = datetime.now(tz=timezone.utc)
    logger.debug("Starting %s", message)
    try:
        yield
    finally:
        elapsed = (datetime.now(tz=timezone.utc) - start).total_seconds()
        logger.info("%s completed in %.2fs", message, elapsed)


def format_file_size(size_bytes: float) -> str:
    """
    Format file size in human-readable format.

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "500 KB")
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"
