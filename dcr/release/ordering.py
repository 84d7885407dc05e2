"""Parent-first ordering of definitions.

Child images are built ``FROM`` their parent's published image, so parents
must be built and pushed first.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum, auto

from dcr.core.config import Catalog
from dcr.core.result import Err, Ok, Result
from dcr.release.errors import CyclicDependency, ReleaseError, UnknownDefinition

__all__ = ["VisitState", "select_definitions", "topo_sort"]


class VisitState(Enum):
    UNVISITED = auto()
    IN_PROGRESS = auto()
    PLACED = auto()


def topo_sort(catalog: Catalog) -> Result[tuple[str, ...], ReleaseError]:
    """Order catalog ids so that every parent precedes its children.

    Siblings keep catalog order. A parent cycle is reported as
    ``CyclicDependency`` with the ids along the cycle.
    """
    state = {definition_id: VisitState.UNVISITED for definition_id in catalog}
    order: list[str] = []
    path: list[str] = []

    def visit(definition_id: str) -> ReleaseError | None:
        match state[definition_id]:
            case VisitState.PLACED:
                return None
            case VisitState.IN_PROGRESS:
                start = path.index(definition_id)
                return CyclicDependency(cycle=(*path[start:], definition_id))
            case VisitState.UNVISITED:
                pass

        state[definition_id] = VisitState.IN_PROGRESS
        path.append(definition_id)

        parent = catalog[definition_id].parent
        if parent is not None:
            if parent not in catalog:
                return UnknownDefinition(definition_id=parent, available=tuple(catalog))
            error = visit(parent)
            if error is not None:
                return error

        path.pop()
        state[definition_id] = VisitState.PLACED
        order.append(definition_id)
        return None

    for definition_id in catalog:
        error = visit(definition_id)
        if error is not None:
            return Err(error)

    return Ok(tuple(order))


def select_definitions(
    order: Sequence[str],
    *,
    explicit: str | None = None,
    allow_list: Sequence[str] = (),
) -> tuple[str, ...]:
    """Definitions a run should process, in build order.

    An explicit target wins; otherwise a non-empty allow-list filters the
    full order.
    """
    if explicit is not None:
        return (explicit,)
    if allow_list:
        wanted = set(allow_list)
        return tuple(d for d in order if d in wanted)
    return tuple(order)
