"""Rename PDFs after an identifier extracted from their filename."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Union

from .exceptions import DirectoryNotFoundError
from .utils import PathLike, to_path

LOGGER = logging.getLogger(__name__)

PRESETS: Dict[str, str] = {
    # "Facture FR0123TM45-6 du 2024.pdf" -> "FR0123TM45-6.pdf"
    "invoices": r"(FR\d+TM\d+-\d+)",
    # "Note - Commission - Paris - FR01-23.pdf" -> "Commission-FR01-23.pdf"
    "expenses": r".* - (.*) - .* - (FR\d+-\d+)\.pdf$",
}


@dataclass(frozen=True)
class RenameOutcome:
    source: Path
    target: Path | None
    status: str  # renamed | planned | unmatched | conflict | unchanged


def resolve_pattern(
    pattern: Union[str, Pattern[str], None] = None,
    *,
    preset: Optional[str] = None,
) -> Pattern[str]:
    """Compile *pattern*, or look up the named *preset*; exactly one is required."""

    if (pattern is None) == (preset is None):
        raise ValueError("Give exactly one of pattern or preset")
    if preset is not None:
        if preset not in PRESETS:
            raise ValueError(f"Unknown preset {preset!r}, expected one of: {', '.join(sorted(PRESETS))}")
        pattern = PRESETS[preset]
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


def target_name(filename: str, pattern: Pattern[str]) -> str | None:
    """Return ``<groups joined by '-'>.pdf`` for *filename*, or ``None`` on no match."""

    match = pattern.search(filename)
    if not match:
        return None
    groups = [group for group in match.groups() if group]
    if not groups:
        groups = [match.group(0)]
    return "-".join(groups) + ".pdf"


def rename_pdfs(
    directory: PathLike,
    pattern: Union[str, Pattern[str], None] = None,
    *,
    preset: Optional[str] = None,
    dry_run: bool = False,
) -> List[RenameOutcome]:
    """Rename every matching ``.pdf`` in *directory*.

    Names are matched against *pattern* or against the named *preset*.

    Existing files are never overwritten; such files are reported as
    ``conflict``.
    """

    root = to_path(directory)
    if not root.is_dir():
        raise DirectoryNotFoundError(f"Directory not found: {root}")
    regex = resolve_pattern(pattern, preset=preset)

    outcomes: List[RenameOutcome] = []
    claimed: set[Path] = set()
    for source in sorted(root.iterdir()):
        if not source.is_file() or source.suffix != ".pdf":
            continue
        LOGGER.debug("Reading filename %s", source.name)
        name = target_name(source.name, regex)
        if name is None:
            outcomes.append(RenameOutcome(source, None, "unmatched"))
            continue

        target = source.with_name(name)
        if target == source:
            outcomes.append(RenameOutcome(source, target, "unchanged"))
            continue
        if target.exists() or target in claimed:
            LOGGER.warning("Not renaming %s: %s already exists", source.name, name)
            outcomes.append(RenameOutcome(source, target, "conflict"))
            continue

        claimed.add(target)
        if dry_run:
            outcomes.append(RenameOutcome(source, target, "planned"))
            continue
        source.rename(target)
        LOGGER.info("Renamed %s to %s", source.name, name)
        outcomes.append(RenameOutcome(source, target, "renamed"))
    return outcomes


__all__ = ["PRESETS", "RenameOutcome", "rename_pdfs", "resolve_pattern", "target_name"]
