"""Merge authoritative state pushes into the single canonical match state (pure).

This module is the only writer of canonical MatchState. All functions are
deterministic and side-effect free (no I/O, no timers, no network).

Architecture:
- State is a plain dict with the authority's camelCase keys (id, phase, teams, ...)
- A payload carrying `availableMaps` is FULL and replaces the state verbatim
- A payload without `availableMaps` is PARTIAL and is overlaid on the previous state
- reconcile() returns MergeOutcome; merge() returns just the resulting state
- Results are deepcopies so callers can never alias previous/incoming dicts

Retention table for PARTIAL payloads:

    field               source
    ------------------  ---------------------------------------------
    availableMaps       previous (catalog never travels in partials)
    steps               previous (template is fixed at creation)
    teams[i].name       previous (partials may omit stable names)
    teams[i].*          incoming (banned/picked id lists are mutable)
    teams[i] missing    previous (a short teams list keeps the rest)
    everything else     incoming when present and not null, else previous

Ordering:
- currentStepIndex never decreases for the same match; an older push is
  rejected (kind='stale_index') and the previous state is kept unchanged
- a PARTIAL for a different match id is rejected (kind='other_match')
- a PARTIAL whose result arrays do not line up with the template is
  rejected (kind='template_mismatch')
"""
from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .types import CATALOG_FIELD

logger = logging.getLogger(__name__)

# Fields a partial payload can never overwrite.
RETAINED_FIELDS = frozenset({CATALOG_FIELD, "steps"})
# Per-team fields retained from the previous state.
RETAINED_TEAM_FIELDS = frozenset({"name"})


@dataclass
class MergeOutcome:
    """Result of reconciling one incoming payload."""

    state: Dict[str, Any]
    accepted: bool
    reason: str | None = None


def is_full_payload(payload: Dict[str, Any]) -> bool:
    return CATALOG_FIELD in payload and payload.get(CATALOG_FIELD) is not None


def _step_index(state: Dict[str, Any]) -> int | None:
    value = state.get("currentStepIndex")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _is_stale(previous: Dict[str, Any], incoming: Dict[str, Any]) -> bool:
    prev_idx = _step_index(previous)
    new_idx = _step_index(incoming)
    if prev_idx is None or new_idx is None:
        return False
    return new_idx < prev_idx


def _same_match(previous: Dict[str, Any], incoming: Dict[str, Any]) -> bool:
    prev_id = previous.get("id")
    new_id = incoming.get("id")
    return prev_id is None or new_id is None or prev_id == new_id


def _merge_teams(
    previous: List[Dict[str, Any]] | None, incoming: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Take mutable per-team fields from incoming, stable names from previous.

    Teams past the end of `incoming` are kept from previous unchanged.
    """
    previous = previous or []
    merged: List[Dict[str, Any]] = []
    for i in range(max(len(previous), len(incoming))):
        prev_team = previous[i] if i < len(previous) and isinstance(previous[i], dict) else {}
        if i >= len(incoming):
            merged.append(deepcopy(prev_team))
            continue
        team = incoming[i]
        new_team = deepcopy(team) if isinstance(team, dict) else {}
        for key in RETAINED_TEAM_FIELDS:
            if prev_team.get(key):
                new_team[key] = prev_team[key]
        merged.append(new_team)
    return merged


def _template_mismatch(state: Dict[str, Any]) -> bool:
    steps = state.get("steps")
    if not isinstance(steps, list):
        return False
    n = len(steps)
    for key in ("stepMapIds", "stepSideVals"):
        arr = state.get(key)
        if isinstance(arr, list) and len(arr) != n:
            return True
    idx = _step_index(state)
    return idx is not None and idx > n


def reconcile(
    previous: Optional[Dict[str, Any]], incoming: Dict[str, Any]
) -> MergeOutcome:
    """Merge one payload into the previous canonical state.

    Args:
        previous: Current canonical state, or None before the first payload
        incoming: Validated full or partial payload (not mutated)

    Returns:
        MergeOutcome with the new state (deepcopy), accepted flag and reason
    """
    if previous is None:
        return MergeOutcome(state=deepcopy(incoming), accepted=True)

    if _same_match(previous, incoming) and _is_stale(previous, incoming):
        logger.debug(
            f"Discarding out-of-order payload: step {incoming.get('currentStepIndex')} "
            f"< rendered {previous.get('currentStepIndex')}"
        )
        return MergeOutcome(state=deepcopy(previous), accepted=False, reason="stale_index")

    if is_full_payload(incoming):
        return MergeOutcome(state=deepcopy(incoming), accepted=True)

    if not _same_match(previous, incoming):
        logger.debug(
            f"Discarding partial payload for match {incoming.get('id')} "
            f"over state of match {previous.get('id')}"
        )
        return MergeOutcome(state=deepcopy(previous), accepted=False, reason="other_match")

    new_state: Dict[str, Any] = deepcopy(previous)
    for key, value in incoming.items():
        if key in RETAINED_FIELDS or value is None:
            continue
        if key == "teams" and isinstance(value, list):
            new_state["teams"] = _merge_teams(previous.get("teams"), value)
            continue
        new_state[key] = deepcopy(value)

    if _template_mismatch(new_state):
        logger.warning("Discarding partial payload whose step arrays do not match the template")
        return MergeOutcome(state=deepcopy(previous), accepted=False, reason="template_mismatch")

    return MergeOutcome(state=new_state, accepted=True)


def merge(previous: Optional[Dict[str, Any]], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Return the canonical state after applying `incoming` (see reconcile())."""
    return reconcile(previous, incoming).state
