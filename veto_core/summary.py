"""Read-only helpers for match and summary views (map state, sides, result cards)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .timeline import catalog_entry, entry_image, team_name
from .types import UNSET_MAP_ID, ActionKind, Phase, Side

TEAM_A = 0
TEAM_B = 1


@dataclass(frozen=True)
class MapCard:
    map_id: int
    map_name: str
    image_url: str
    selected_by: str
    side_summary: str


def phase_label(state: Optional[Dict[str, Any]]) -> str:
    if not state:
        return ""
    try:
        return Phase.from_wire(state.get("phase")).label
    except ValueError:
        return f"Phase {state.get('phase')}"


def current_team_name(state: Optional[Dict[str, Any]]) -> str:
    if not state:
        return ""
    return team_name(state, state.get("currentTurnTeam"))


def option_name(state: Optional[Dict[str, Any]], option_id: int) -> str:
    if not state or not option_id:
        return ""
    entry = catalog_entry(state, option_id)
    return entry["name"] if entry else f"Map {option_id}"


def is_banned(state: Optional[Dict[str, Any]], option_id: int) -> bool:
    if not state:
        return False
    return any(option_id in (t.get("bannedMapIds") or []) for t in state.get("teams") or [])


def is_picked(state: Optional[Dict[str, Any]], option_id: int) -> bool:
    if not state:
        return False
    return any(option_id in (t.get("pickedMapIds") or []) for t in state.get("teams") or [])


def is_decider(state: Optional[Dict[str, Any]], option_id: int) -> bool:
    """Only revealed once the match is completed."""
    if not state:
        return False
    return state.get("phase") == Phase.COMPLETED and state.get("deciderMapId") == option_id


def _decider_sides(state: Dict[str, Any]) -> Optional[tuple[int, Side]]:
    picker = state.get("deciderSidePickerTeam")
    side = Side.from_wire(state.get("deciderSide"))
    if picker not in (TEAM_A, TEAM_B) or side is None:
        return None
    return picker, side


def attacking_team_name(state: Optional[Dict[str, Any]]) -> str:
    if not state:
        return "TBD"
    resolved = _decider_sides(state)
    if resolved is None:
        return "TBD"
    picker, side = resolved
    other = TEAM_B if picker == TEAM_A else TEAM_A
    return team_name(state, picker if side is Side.ATTACK else other)


def defending_team_name(state: Optional[Dict[str, Any]]) -> str:
    if not state:
        return "TBD"
    resolved = _decider_sides(state)
    if resolved is None:
        return "TBD"
    picker, side = resolved
    other = TEAM_B if picker == TEAM_A else TEAM_A
    return team_name(state, picker if side is Side.DEFENSE else other)


def side_summary(state: Optional[Dict[str, Any]], option_id: int) -> str:
    """Who starts on which side for a map, e.g. 'Beta STARTS ON ATK'."""
    if not state or not state.get("steps"):
        return "TBD"

    if option_id != UNSET_MAP_ID and state.get("deciderMapId") == option_id:
        resolved = _decider_sides(state)
        if resolved is not None:
            picker, side = resolved
            return f"{team_name(state, picker)} STARTS ON {side.short_label}"

    step_maps = state.get("stepMapIds") or []
    step_sides = state.get("stepSideVals") or []
    for i, step in enumerate(state["steps"]):
        if step.get("action") != ActionKind.SIDE:
            continue
        if i >= len(step_maps) or step_maps[i] != option_id:
            continue
        side = Side.from_wire(step_sides[i] if i < len(step_sides) else None)
        if side is None:
            continue
        return f"{team_name(state, step.get('teamIndex'))} STARTS ON {side.short_label}"

    return "SIDE INFO MISSING"


def _card(state: Dict[str, Any], map_id: int, selected_by: str) -> Optional[MapCard]:
    entry = catalog_entry(state, map_id)
    if entry is None:
        return None
    return MapCard(
        map_id=map_id,
        map_name=entry.get("name") or f"Map {map_id}",
        image_url=entry_image(entry) or "",
        selected_by=selected_by,
        side_summary=side_summary(state, map_id),
    )


def map_cards(state: Optional[Dict[str, Any]]) -> List[MapCard]:
    """Result cards in play order: team A pick, team B pick, decider."""
    if not state:
        return []
    cards: List[MapCard] = []
    teams = state.get("teams") or []
    for idx in (TEAM_A, TEAM_B):
        if idx >= len(teams):
            continue
        picked = teams[idx].get("pickedMapIds") or []
        if picked:
            card = _card(state, picked[0], team_name(state, idx))
            if card is not None:
                cards.append(card)
    decider = state.get("deciderMapId")
    if isinstance(decider, int) and decider != UNSET_MAP_ID:
        card = _card(state, decider, "Decider")
        if card is not None:
            cards.append(card)
    return cards
