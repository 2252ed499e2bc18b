"""Type definitions for match state payloads and the closed code enumerations."""
from __future__ import annotations

from enum import Enum, IntEnum
from typing import List, Optional, TypedDict


class Phase(IntEnum):
    """Match phase as emitted by the authority (ordinal, never decreases)."""

    BAN = 0
    PICK = 1
    SIDE = 2
    COMPLETED = 3

    @classmethod
    def from_wire(cls, value: object) -> "Phase":
        if isinstance(value, bool):
            raise ValueError(f"invalid phase code: {value!r}")
        try:
            return cls(int(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValueError(f"invalid phase code: {value!r}")

    @property
    def label(self) -> str:
        if self is Phase.BAN:
            return "Ban Phase"
        elif self is Phase.PICK:
            return "Pick Phase"
        elif self is Phase.SIDE:
            return "Side Selection"
        elif self is Phase.COMPLETED:
            return "Completed"
        raise AssertionError(f"unhandled phase {self!r}")

    def action(self) -> Optional["ActionKind"]:
        """Action kind a captain performs in this phase (None once completed)."""
        if self is Phase.BAN:
            return ActionKind.BAN
        elif self is Phase.PICK:
            return ActionKind.PICK
        elif self is Phase.SIDE:
            return ActionKind.SIDE
        elif self is Phase.COMPLETED:
            return None
        raise AssertionError(f"unhandled phase {self!r}")


class ActionKind(IntEnum):
    """Step template action (matches the authority's enum order)."""

    BAN = 0
    PICK = 1
    SIDE = 2

    @classmethod
    def from_wire(cls, value: object) -> "ActionKind":
        if isinstance(value, bool):
            raise ValueError(f"invalid action code: {value!r}")
        try:
            return cls(int(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            raise ValueError(f"invalid action code: {value!r}")

    @property
    def wire_name(self) -> str:
        """Name used in the `action` query parameter of apply-action."""
        if self is ActionKind.BAN:
            return "ban"
        elif self is ActionKind.PICK:
            return "pick"
        elif self is ActionKind.SIDE:
            return "side"
        raise AssertionError(f"unhandled action {self!r}")

    @property
    def past_tense(self) -> str:
        if self is ActionKind.BAN:
            return "banned"
        elif self is ActionKind.PICK:
            return "picked"
        elif self is ActionKind.SIDE:
            return "chose"
        raise AssertionError(f"unhandled action {self!r}")


class Side(IntEnum):
    ATTACK = 0
    DEFENSE = 1

    @classmethod
    def from_wire(cls, value: object) -> Optional["Side"]:
        """Resolve a stored side value; -1 and anything unknown mean unset."""
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def label(self) -> str:
        if self is Side.ATTACK:
            return "Attack"
        elif self is Side.DEFENSE:
            return "Defense"
        raise AssertionError(f"unhandled side {self!r}")

    @property
    def short_label(self) -> str:
        if self is Side.ATTACK:
            return "ATK"
        elif self is Side.DEFENSE:
            return "DEF"
        raise AssertionError(f"unhandled side {self!r}")


class Role(str, Enum):
    CAPTAIN = "captain"
    SPECTATOR = "spectator"


class MapInfo(TypedDict, total=False):
    """A catalog entry (one selectable map)."""
    id: int
    name: str
    previewUrl: Optional[str]
    mapImgUrl: Optional[str]


class TeamState(TypedDict, total=False):
    name: str
    bannedMapIds: List[int]
    pickedMapIds: List[int]


class StepTemplate(TypedDict):
    action: int  # ActionKind code
    teamIndex: int


class MatchState(TypedDict, total=False):
    """
    TypedDict representing the canonical match state as pushed by the authority.

    All fields are optional (total=False) because partial payloads omit
    stable fields; a full payload carries `availableMaps`.
    """
    id: str
    phase: int  # Phase code
    currentTurnTeam: int
    currentStepIndex: int
    captainTaken: List[bool]
    seriesType: str  # 'bo1' | 'bo3'
    teams: List[TeamState]
    availableMaps: List[MapInfo]

    # Decider map (0 = unset) and its side choice (-1 = unset)
    deciderMapId: int
    deciderSide: int
    deciderSidePickerTeam: int

    # Fixed step template and its parallel result arrays
    steps: List[StepTemplate]
    stepMapIds: List[int]  # 0 = unfilled
    stepSideVals: List[int]  # -1 = unfilled, 0 atk, 1 def


class StoredCredential(TypedDict, total=False):
    """Persisted captain/spectator record for one (match, team)."""
    role: str
    team: int
    token: str


class JoinResponse(TypedDict, total=False):
    matchId: str
    role: str
    team: Optional[int]
    token: Optional[str]


UNSET_MAP_ID = 0
UNSET_SIDE = -1
CATALOG_FIELD = "availableMaps"
