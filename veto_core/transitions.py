"""Reveal-then-fade presentation of the step that just completed.

States: IDLE -> SHOWING (dwell) -> FADING_OUT (fade) -> IDLE.

Timing comes from an injected timer with asyncio's `call_later(delay, cb)`
signature (the running loop satisfies it), so tests can drive it manually.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from .timeline import build_row
from .types import ActionKind, Phase

logger = logging.getLogger(__name__)

DEFAULT_DWELL = 2.5
DEFAULT_FADE = 0.6


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Timer(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class LoopTimer:
    """Timer backed by whichever asyncio loop is running at schedule time."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class TransitionPhase(Enum):
    IDLE = "idle"
    SHOWING = "showing"
    FADING_OUT = "fading_out"


@dataclass(frozen=True)
class Transition:
    step_index: int
    kind: ActionKind
    team_index: int
    team_name: str
    option_name: Optional[str]
    side_label: Optional[str]
    headline: str


def describe_step(state: Dict[str, Any], index: int) -> Transition:
    """Headline for a completed step, e.g. 'Alpha banned Ascent'."""
    row = build_row(state, index)
    if row.kind is ActionKind.SIDE:
        headline = f"{row.team_name} chose {row.side_label or 'a side'}"
        if row.option_name:
            headline += f" on {row.option_name}"
    else:
        headline = f"{row.team_name} {row.kind.past_tense} {row.option_name or 'a map'}"
    return Transition(
        step_index=index,
        kind=row.kind,
        team_index=row.team_index,
        team_name=row.team_name,
        option_name=row.option_name,
        side_label=row.side_label,
        headline=headline,
    )


class TransitionSequencer:
    def __init__(self, timer: Timer, dwell: float = DEFAULT_DWELL, fade: float = DEFAULT_FADE):
        self._timer = timer
        self.dwell = dwell
        self.fade = fade
        self.phase = TransitionPhase.IDLE
        self.current: Optional[Transition] = None
        self._last_index: Optional[int] = None
        self._handle: Optional[TimerHandle] = None

    def observe(self, state: Dict[str, Any]) -> Optional[Transition]:
        """Feed a canonical update; returns the transition started, if any.

        The first observed state only sets the baseline. A burst of advances
        shows just the latest completed step.
        """
        idx = state.get("currentStepIndex")
        if not isinstance(idx, int):
            return None

        if state.get("phase") == Phase.COMPLETED:
            # The view navigates away; nothing more is presented.
            self._last_index = idx
            self.stop()
            return None

        if self._last_index is None or idx <= self._last_index:
            if self._last_index is None:
                self._last_index = idx
            return None

        self._last_index = idx
        completed = idx - 1
        steps = state.get("steps") or []
        if completed >= len(steps):
            return None

        self._cancel()
        self.current = describe_step(state, completed)
        self.phase = TransitionPhase.SHOWING
        self._handle = self._timer.call_later(self.dwell, self._begin_fade)
        logger.debug(f"Showing transition for step {completed}: {self.current.headline}")
        return self.current

    def _begin_fade(self) -> None:
        if self.phase is not TransitionPhase.SHOWING:
            return
        self.phase = TransitionPhase.FADING_OUT
        self._handle = self._timer.call_later(self.fade, self._finish)

    def _finish(self) -> None:
        if self.phase is not TransitionPhase.FADING_OUT:
            return
        self.phase = TransitionPhase.IDLE
        self.current = None
        self._handle = None

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def stop(self) -> None:
        self._cancel()
        self.phase = TransitionPhase.IDLE
        self.current = None

    def reset(self) -> None:
        """Forget the baseline (new match)."""
        self.stop()
        self._last_index = None
