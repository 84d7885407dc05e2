"""Filesystem helpers used by the release flows."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

__all__ = ["atomic_write_text", "copy_matching", "make_unique_dir", "remove_tree", "sha256_file"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def copy_matching(source_root: Path, patterns: Iterable[str], target: Path) -> list[Path]:
    """Copy files matching glob patterns, keeping their relative layout.

    Directories matched by a pattern are skipped; only files are copied.
    Returns the copied destination paths in copy order.
    """
    copied: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        for src in sorted(source_root.glob(pattern)):
            if not src.is_file() or src in seen:
                continue
            seen.add(src)
            dest = target / src.relative_to(source_root)
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dest)
            copied.append(dest)
    return copied


def make_unique_dir(parent: Path, prefix: str) -> Path:
    """Create a fresh directory under parent named ``<prefix>-<random>``."""
    parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=str(parent)))


def remove_tree(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()
