from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TypeVar

from dcr.core.result import Err, Ok, Result

S = TypeVar("S")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class StepAdvance[S]:
    state: S


@dataclass(frozen=True, slots=True)
class StepFinish:
    pass


StepOutcome = StepAdvance[S] | StepFinish
StepHandler = Callable[[S], Result[StepOutcome[S], E]]
GetStep = Callable[[S], str]
OnAdvance = Callable[[S], None]


FINISH = StepFinish()


def advance[S](state: S) -> StepAdvance[S]:
    return StepAdvance(state=state)


def run_state_machine[S, E](
    *,
    initial_state: S,
    get_step: GetStep[S],
    handlers: Mapping[str, StepHandler[S, E]],
    on_advance: OnAdvance[S] | None = None,
) -> Result[S, tuple[S, E]]:
    """Drive handlers until one finishes or fails.

    Returns the final state, or the state the failing handler ran on
    together with its error.
    """
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            raise AssertionError(f"no handler for step: {step}")

        outcome = handler(current)
        if isinstance(outcome, Err):
            return Err((current, outcome.error))

        if isinstance(outcome.value, StepFinish):
            return Ok(current)

        current = outcome.value.state
        if on_advance is not None:
            on_advance(current)
