"""Backup and restore of data files using a plain-text framing format.

Each source file is written between ``=== BEGIN FILE: <path> ===`` and
``=== END FILE: <path> ===`` marker lines, followed by a blank line.
"""

from __future__ import annotations

import logging
from pathlib import Path

from planner.core.exceptions import BackupError
from planner.repos.csv_store import HEADER

logger = logging.getLogger(__name__)

_BEGIN = "=== BEGIN FILE:"
_END = "=== END FILE:"
_MARKER_TAIL = "==="
_HEADER_PREFIX = HEADER[0] + ","


def _marker(prefix: str, path: Path) -> str:
    return f"{prefix} {path} {_MARKER_TAIL}"


def _marker_path(line: str) -> Path | None:
    _, _, rest = line.partition(":")
    rest = rest.replace(_MARKER_TAIL, "").strip()
    return Path(rest) if rest else None


def create_backup(sources: list[Path], backup_file: Path) -> Path:
    """Write every file in *sources* into *backup_file*; missing sources get an
    empty section. Returns the backup path."""
    try:
        backup_file.parent.mkdir(parents=True, exist_ok=True)
        with backup_file.open("w", encoding="utf-8") as out:
            for source in sources:
                out.write(_marker(_BEGIN, source) + "\n")
                if source.exists():
                    with source.open(encoding="utf-8") as handle:
                        for line in handle:
                            out.write(line.rstrip("\r\n") + "\n")
                else:
                    logger.info("Backup source %s missing, writing empty section", source)
                out.write(_marker(_END, source) + "\n\n")
    except (OSError, UnicodeDecodeError) as exc:
        raise BackupError(f"Backup failed: {exc}", {"path": str(backup_file)}) from exc

    logger.info("Backed up %d file(s) to %s", len(sources), backup_file)
    return backup_file


def restore_backup(backup_file: Path, overwrite: bool = True) -> list[Path]:
    """Recreate the files framed in *backup_file*.

    Overwrite mode truncates each target. Append mode adds to existing targets
    and drops a repeated CSV header line when the target already has content.
    Returns the restored paths in backup order.
    """
    if not backup_file.exists():
        raise BackupError(
            f"Backup file not found at {backup_file}", {"path": str(backup_file)}
        )

    restored: list[Path] = []
    current = None
    target: Path | None = None
    try:
        with backup_file.open(encoding="utf-8") as handle:
            for raw in handle:
                line = raw.strip()

                if line.startswith(_BEGIN):
                    if current is not None:
                        current.close()
                    target = _marker_path(line)
                    if target is None:
                        current = None
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    had_content = target.exists() and target.stat().st_size > 0
                    mode = "w" if overwrite or not had_content else "a"
                    current = target.open(mode, encoding="utf-8")
                    restored.append(target)
                    logger.info(
                        "Restoring %s (%s)", target, "overwrite" if mode == "w" else "append"
                    )
                    continue

                if line.startswith(_END):
                    if current is not None:
                        current.close()
                    current, target = None, None
                    continue

                if current is None or not line:
                    continue
                if (
                    not overwrite
                    and line.startswith(_HEADER_PREFIX)
                    and current.tell() > 0
                ):
                    continue
                current.write(line + "\n")
    except (OSError, UnicodeDecodeError) as exc:
        raise BackupError(f"Restore failed: {exc}", {"path": str(backup_file)}) from exc
    finally:
        if current is not None:
            current.close()

    return restored
