"""Local turn gating for captain actions.

The gate mirrors just enough of the authority's rules to disable controls and
avoid pointless requests. It never decides acceptance: a request that passes
here can still be refused by the authority.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional

from .identity import Identity
from .timeline import team_name
from .types import ActionKind, Phase, Side

logger = logging.getLogger(__name__)

TargetKind = Literal["option", "side"]


@dataclass(frozen=True)
class OutgoingAction:
    match_id: str
    team_index: int
    action: ActionKind
    target_id: int  # map id, or side value for side actions
    token: str


@dataclass(frozen=True)
class GateRejection:
    """Local refusal; `message` is None when the click is simply ignored."""

    kind: str
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.message is not None


def _check(state: Optional[Dict[str, Any]], identity: Identity) -> GateRejection | Phase:
    if not state:
        return GateRejection("no_match", "Create or join a match first")
    if not identity.is_captain:
        return GateRejection("not_captain", "Only team captains can make picks/bans")
    if state.get("currentTurnTeam") != identity.team:
        return GateRejection(
            "not_your_turn",
            f"It is currently {team_name(state, state.get('currentTurnTeam'))}'s turn",
        )
    try:
        phase = Phase.from_wire(state.get("phase"))
    except ValueError:
        return GateRejection("match_completed", "Match is already completed")
    if phase is Phase.COMPLETED:
        return GateRejection("match_completed", "Match is already completed")
    return phase


def can_act(state: Optional[Dict[str, Any]], identity: Identity) -> bool:
    """True when the viewer is an on-turn captain in an active phase."""
    return isinstance(_check(state, identity), Phase)


def dispatch(
    state: Optional[Dict[str, Any]],
    identity: Identity,
    target_id: int,
    target_kind: TargetKind = "option",
) -> OutgoingAction | GateRejection:
    """Turn a click into an outgoing action, or reject it locally.

    The action kind always comes from the current phase; the caller only says
    whether a catalog option or a side button was clicked.
    """
    checked = _check(state, identity)
    if isinstance(checked, GateRejection):
        return checked
    phase = checked
    action = phase.action()
    if action is None:
        return GateRejection("match_completed", "Match is already completed")

    if target_kind == "option":
        if action is ActionKind.SIDE:
            logger.debug("Ignoring map click during side selection")
            return GateRejection("ignored")
    elif target_kind == "side":
        if action is not ActionKind.SIDE:
            return GateRejection("wrong_phase", "Sides can only be chosen during side selection")
        if Side.from_wire(target_id) is None:
            return GateRejection("wrong_phase", f"Unknown side {target_id}")
    else:
        raise ValueError(f"unknown target kind {target_kind!r}")

    return OutgoingAction(
        match_id=identity.match_id,
        team_index=identity.team,
        action=action,
        target_id=target_id,
        token=identity.token,
    )


class ActionGate:
    """dispatch() plus a busy latch held while a request is in flight."""

    def __init__(self) -> None:
        self.busy = False

    def can_act(self, state: Optional[Dict[str, Any]], identity: Identity) -> bool:
        return not self.busy and can_act(state, identity)

    def begin(
        self,
        state: Optional[Dict[str, Any]],
        identity: Identity,
        target_id: int,
        target_kind: TargetKind = "option",
    ) -> OutgoingAction | GateRejection:
        if self.busy:
            return GateRejection("busy", "Waiting for the previous action")
        outcome = dispatch(state, identity, target_id, target_kind)
        if isinstance(outcome, OutgoingAction):
            self.busy = True
        return outcome

    def finish(self) -> None:
        self.busy = False
