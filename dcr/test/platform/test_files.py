from __future__ import annotations

import hashlib
import os
from pathlib import Path

import pytest

from dcr.platform.files import (
    atomic_write_text,
    copy_matching,
    make_unique_dir,
    remove_tree,
    sha256_file,
)


def test_atomic_write_text_creates_parent_dirs(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "Dockerfile"
    atomic_write_text(path, "FROM debian\n")

    assert path.read_text(encoding="utf-8") == "FROM debian\n"


def test_atomic_write_text_replaces_existing_content(tmp_path: Path) -> None:
    path = tmp_path / "devcontainer.json"
    path.write_text("old", encoding="utf-8")

    atomic_write_text(path, "new")

    assert path.read_text(encoding="utf-8") == "new"


def test_atomic_write_text_cleans_temp_file_on_replace_failure(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    path = tmp_path / "Dockerfile"

    def fail_replace(_src: Path, _dst: Path) -> None:
        raise OSError("replace failed")

    monkeypatch.setattr(os, "replace", fail_replace)

    with pytest.raises(OSError, match="replace failed"):
        atomic_write_text(path, "payload")

    assert list(tmp_path.glob(f".{path.name}.*.tmp")) == []


def test_copy_matching_keeps_layout(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / "containers" / "python" / ".devcontainer").mkdir(parents=True)
    (src / "containers" / "python" / ".devcontainer" / "Dockerfile").write_text("FROM x")
    (src / "script-library").mkdir()
    (src / "script-library" / "common.sh").write_text("#!/bin/sh")
    (src / "package.json").write_text("{}")
    (src / "README.md").write_text("not staged")

    dest = tmp_path / "dest"
    copied = copy_matching(src, ["containers/**/*", "script-library/*", "package.json"], dest)

    assert (dest / "containers" / "python" / ".devcontainer" / "Dockerfile").read_text() == "FROM x"
    assert (dest / "script-library" / "common.sh").is_file()
    assert (dest / "package.json").is_file()
    assert not (dest / "README.md").exists()
    assert len(copied) == 3


def test_copy_matching_copies_overlapping_patterns_once(tmp_path: Path) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "package.json").write_text("{}")

    copied = copy_matching(src, ["package.json", "*.json"], tmp_path / "dest")

    assert copied == [tmp_path / "dest" / "package.json"]


def test_make_unique_dir_creates_distinct_dirs(tmp_path: Path) -> None:
    first = make_unique_dir(tmp_path / "dcr", "1.2.3")
    second = make_unique_dir(tmp_path / "dcr", "1.2.3")

    assert first != second
    assert first.is_dir() and second.is_dir()
    assert first.name.startswith("1.2.3-")


def test_remove_tree_ignores_missing(tmp_path: Path) -> None:
    target = tmp_path / "gone"
    remove_tree(target)
    assert not target.exists()

    (target / "sub").mkdir(parents=True)
    remove_tree(target)
    assert not target.exists()


def test_sha256_file(tmp_path: Path) -> None:
    path = tmp_path / "common.sh"
    path.write_bytes(b"echo hi\n")

    assert sha256_file(path) == hashlib.sha256(b"echo hi\n").hexdigest()
