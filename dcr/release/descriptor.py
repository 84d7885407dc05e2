"""devcontainer.json reading.

The descriptor is JSON with comments: ``//`` and ``/* */`` comments and
trailing commas are allowed. Only the ``context`` key is needed here, but
the whole document is parsed so a broken file is reported early.
"""

from __future__ import annotations

from pathlib import Path

import json5

from dcr.core.result import Err, Ok, Result
from dcr.core.structured import StrDict, as_str_dict, get_str

__all__ = ["DESCRIPTOR_NAME", "build_context", "parse_descriptor"]

DESCRIPTOR_NAME = "devcontainer.json"


def parse_descriptor(raw: str) -> Result[StrDict, str]:
    try:
        data: object = json5.loads(raw)
    except ValueError as e:
        return Err(f"invalid JSON: {e}")
    table = as_str_dict(data)
    if table is None:
        return Err("top level must be an object")
    return Ok(table)


def build_context(descriptor: StrDict, devcontainer_dir: Path) -> Path:
    """Docker build working directory declared by the descriptor.

    ``context`` is relative to the ``.devcontainer`` folder and defaults to it.
    """
    context = get_str(descriptor, "context") or "."
    return (devcontainer_dir / context).resolve()
