"""Ordered, display-ready veto timeline derived from the step template."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .types import UNSET_MAP_ID, ActionKind, Side


@dataclass(frozen=True)
class TimelineRow:
    index: int
    kind: ActionKind
    team_index: int
    team_name: str
    option_id: Optional[int]
    option_name: Optional[str]
    option_image: Optional[str]
    side_label: Optional[str]
    is_current: bool
    is_done: bool


def catalog_entry(state: Dict[str, Any], option_id: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(option_id, int) or option_id == UNSET_MAP_ID:
        return None
    for entry in state.get("availableMaps") or []:
        if isinstance(entry, dict) and entry.get("id") == option_id:
            return entry
    return None


def entry_image(entry: Optional[Dict[str, Any]]) -> Optional[str]:
    if not entry:
        return None
    return entry.get("mapImgUrl") or entry.get("previewUrl") or None


def team_name(state: Dict[str, Any], idx: Any) -> str:
    teams = state.get("teams") or []
    if isinstance(idx, int) and 0 <= idx < len(teams) and isinstance(teams[idx], dict):
        name = teams[idx].get("name")
        if name:
            return name
    return f"Team {idx}"


def _at(values: Any, i: int) -> Any:
    if isinstance(values, list) and i < len(values):
        return values[i]
    return None


def build_row(state: Dict[str, Any], i: int) -> TimelineRow:
    step = state["steps"][i]
    kind = ActionKind.from_wire(step.get("action"))
    team = step.get("teamIndex")

    option_id = _at(state.get("stepMapIds"), i)
    is_done = isinstance(option_id, int) and option_id != UNSET_MAP_ID
    entry = catalog_entry(state, option_id)

    side_label = None
    if kind is ActionKind.SIDE:
        side = Side.from_wire(_at(state.get("stepSideVals"), i))
        side_label = side.label if side is not None else None

    return TimelineRow(
        index=i,
        kind=kind,
        team_index=team,
        team_name=team_name(state, team),
        option_id=option_id if is_done else None,
        option_name=entry.get("name") if entry else None,
        option_image=entry_image(entry),
        side_label=side_label,
        is_current=state.get("currentStepIndex") == i,
        is_done=is_done,
    )


def build_timeline(state: Optional[Dict[str, Any]]) -> List[TimelineRow]:
    """One row per template step; empty when there is no template."""
    if not state or not state.get("steps"):
        return []
    return [build_row(state, i) for i in range(len(state["steps"]))]
