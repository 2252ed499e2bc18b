"""Match view controller plus the create/join flows.

MatchView owns everything one match page needs: identity, canonical state,
the push channel and the transition sequencer. It is entered with a route
(match id + optional team parameter) and left on navigation away.

Key concepts:
- generation: bumped on every enter/leave; replies and pushes tagged with an
  older generation are dropped so a replaced view is never mutated late
- blocking HTTP runs in a worker thread (asyncio.to_thread); the loop never blocks
- the reconciler is the only source of new canonical state
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from .api import ApiError, MatchApi
from .channel import SyncChannel
from .config import ClientSettings
from .credentials import CredentialStore
from .gate import ActionGate, GateRejection, TargetKind
from .identity import Identity, resolve_identity, spectator
from .reconcile import reconcile
from .timeline import TimelineRow, build_timeline
from .transitions import LoopTimer, Timer, Transition, TransitionSequencer
from .types import Phase, Role, Side

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redirect:
    kind: Literal["spectator", "home", "summary"]
    match_id: Optional[str] = None

    @property
    def path(self) -> str:
        if self.kind == "home":
            return "/"
        elif self.kind == "spectator":
            return f"/match/{self.match_id}"
        elif self.kind == "summary":
            return f"/match/{self.match_id}/summary"
        raise AssertionError(f"unhandled redirect {self.kind!r}")


@dataclass(frozen=True)
class JoinResult:
    match_id: str
    role: Role
    team: Optional[int] = None
    token: Optional[str] = None

    @property
    def path(self) -> str:
        if self.role is Role.CAPTAIN and self.team is not None:
            return f"/match/{self.match_id}/team/{self.team}"
        return f"/match/{self.match_id}"


def create_match(api: MatchApi, team_a: str, team_b: str, series_type: str = "bo1") -> str:
    """Create a match on the authority and return its id."""
    match_id = api.create(team_a, team_b, series_type)
    logger.info(f"Created {series_type} match {match_id}: {team_a} vs {team_b}")
    return match_id


def join_match(
    api: MatchApi,
    store: CredentialStore,
    match_id: str,
    team: Optional[int],
) -> JoinResult:
    """Join as captain of `team` (0/1) or as spectator (None) and persist the grant.

    Raises:
        ApiError: The authority refused (e.g. kind='conflict' when the slot is taken)
    """
    if not match_id:
        raise ValueError("Enter a match ID to join.")
    if team is not None and (isinstance(team, bool) or team not in (0, 1)):
        raise ValueError(f"team must be 0, 1 or None, got {team!r}")
    team_param = "spectator" if team is None else str(team)
    resp = api.join(match_id, team_param)

    joined_id = resp.get("matchId") or match_id
    role = Role(resp.get("role", Role.SPECTATOR.value))
    granted_team = resp.get("team")
    token = resp.get("token")

    if role is Role.CAPTAIN and token and isinstance(granted_team, int):
        store.put(joined_id, granted_team, {"role": role.value, "team": granted_team, "token": token})
        logger.info(f"Joined match {joined_id} as captain of team {granted_team}")
        return JoinResult(joined_id, role, granted_team, token)

    store.put_spectator(joined_id)
    logger.info(f"Joined match {joined_id} as spectator")
    return JoinResult(joined_id, Role.SPECTATOR)


class MatchView:
    def __init__(
        self,
        api: MatchApi,
        store: CredentialStore,
        channel: SyncChannel,
        timer: Timer | None = None,
        settings: ClientSettings | None = None,
    ):
        self.settings = settings or ClientSettings()
        self.api = api
        self.store = store
        self.channel = channel
        self.gate = ActionGate()
        self.sequencer = TransitionSequencer(
            timer or LoopTimer(),
            dwell=self.settings.transition_dwell,
            fade=self.settings.transition_fade,
        )

        self.match_id: Optional[str] = None
        self.identity: Optional[Identity] = None
        self.state: Optional[Dict[str, Any]] = None
        self.timeline: List[TimelineRow] = []
        self.error_message = ""
        self.loading = False
        self.redirect: Optional[Redirect] = None

        self._team_param: Optional[str] = None
        self._generation = 0
        self._pump_task: Optional[asyncio.Task] = None
        # Identifies the request holding the busy latch; only its reply releases it.
        self._inflight: Optional[object] = None

    # Derived views

    @property
    def transition(self) -> Optional[Transition]:
        return self.sequencer.current

    @property
    def busy(self) -> bool:
        return self.gate.busy

    @property
    def connected(self) -> bool:
        return self.channel.is_open and self.channel.match_id == self.match_id

    @property
    def is_my_turn(self) -> bool:
        if self.identity is None:
            return False
        return self.gate.can_act(self.state, self.identity)

    # Lifecycle

    async def enter(self, match_id: str, team_param: Optional[str] = None) -> Optional[Redirect]:
        """Resolve identity, load state, then subscribe to pushes.

        Returns the navigation the caller should perform, if any.
        """
        if self.match_id is not None:
            if (match_id, team_param) != (self.match_id, self._team_param):
                await self.leave()
            else:
                await self._stop_pump()

        self._generation += 1
        gen = self._generation
        self.match_id = match_id
        self._team_param = team_param
        self.error_message = ""
        self.redirect = None

        resolution = resolve_identity(match_id, team_param, self.store)
        self.identity = resolution.identity
        landing = Redirect("spectator", match_id) if resolution.redirect_to_spectator else None

        self.loading = True
        try:
            state = await asyncio.to_thread(self.api.get_state, match_id)
        except ApiError as e:
            if gen != self._generation:
                return None
            logger.warning(f"Initial load error for match {match_id}: {e.message}")
            self.loading = False
            self.error_message = "Failed to load match. Redirecting..."
            self.redirect = Redirect("home")
            return self.redirect
        if gen != self._generation:
            logger.debug(f"Dropping initial state for replaced view of match {match_id}")
            return None
        self.loading = False
        self.apply_payload(state, gen)

        try:
            await self.channel.open(match_id)
        except ConnectionError as e:
            logger.warning(f"Push channel unavailable for match {match_id}, relying on refresh(): {e}")
        else:
            if gen == self._generation:
                self._pump_task = asyncio.create_task(self._pump(gen))

        logger.info(f"Entered match {match_id} as {resolution.identity.role.value}")
        return self.redirect or landing

    async def leave(self) -> None:
        """Tear down the view: close the channel and make in-flight replies inert."""
        self._generation += 1
        await self._stop_pump()
        await self.channel.close()
        self.sequencer.reset()
        self._inflight = None
        self.gate.finish()
        if self.match_id is not None:
            logger.info(f"Left match {self.match_id}")
        self.match_id = None
        self._team_param = None
        self.identity = None
        self.state = None
        self.timeline = []
        self.redirect = None
        self.loading = False

    async def _stop_pump(self) -> None:
        task = self._pump_task
        self._pump_task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Push pump failed while stopping: {e}")
        elif not task.cancelled() and task.exception() is not None:
            logger.warning(f"Push pump had failed: {task.exception()}")

    async def _pump(self, gen: int) -> None:
        async for event in self.channel.events():
            if gen != self._generation:
                break
            if event.kind == "payload" and event.payload is not None:
                self.apply_payload(event.payload, gen)
            elif event.kind in ("closed", "error"):
                logger.info(f"Push channel for match {event.match_id} ended ({event.kind})")

    async def refresh(self) -> bool:
        """Poll the authority for state (fallback while the channel is down)."""
        if self.match_id is None:
            return False
        gen = self._generation
        try:
            state = await asyncio.to_thread(self.api.get_state, self.match_id)
        except ApiError as e:
            if gen == self._generation:
                self.error_message = "Failed to load state"
            logger.warning(f"Refresh failed: {e.message}")
            return False
        return self.apply_payload(state, gen)

    def apply_payload(self, payload: Dict[str, Any], gen: int | None = None) -> bool:
        """Reconcile a push or reply into canonical state; False if discarded."""
        if gen is not None and gen != self._generation:
            logger.debug("Dropping payload for a replaced view")
            return False
        outcome = reconcile(self.state, payload)
        if not outcome.accepted:
            return False
        self.state = outcome.state
        self.timeline = build_timeline(self.state)
        self.sequencer.observe(self.state)
        if self.state.get("phase") == Phase.COMPLETED and self.match_id is not None:
            self.redirect = Redirect("summary", self.match_id)
        return True

    # User input

    async def select_option(self, option_id: int) -> bool:
        return await self._submit(option_id, "option")

    async def select_side(self, side: Side | int) -> bool:
        return await self._submit(int(side), "side")

    async def _submit(self, target_id: int, target_kind: TargetKind) -> bool:
        identity = self.identity or spectator(self.match_id or "")
        outcome = self.gate.begin(self.state, identity, target_id, target_kind)
        if isinstance(outcome, GateRejection):
            if outcome.is_error:
                self.error_message = outcome.message or ""
            return False

        self.error_message = ""
        gen = self._generation
        ticket = object()
        self._inflight = ticket
        try:
            reply = await asyncio.to_thread(
                self.api.apply_action,
                outcome.match_id,
                outcome.team_index,
                outcome.action,
                outcome.target_id,
                outcome.token,
            )
        except ApiError as e:
            logger.warning(f"Action error: {e.message}")
            if gen == self._generation:
                self.error_message = "Action rejected by server"
            return False
        finally:
            if self._inflight is ticket:
                self._inflight = None
                self.gate.finish()
        return self.apply_payload(reply, gen)


__all__ = [
    "JoinResult",
    "MatchView",
    "Redirect",
    "create_match",
    "join_match",
]
