"""
Input validation schemas using Pydantic v2
Validates match state payloads, stored credentials and authority replies
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

# ==================== STATE PAYLOAD ====================


class MapInfoPayload(BaseModel):
    """One catalog entry"""

    id: int = Field(..., ge=0, description="Map id (0 is reserved for unset)")
    name: str = Field(..., max_length=255)
    previewUrl: Optional[str] = None
    mapImgUrl: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class TeamPayload(BaseModel):
    """Per-team state; name may be omitted by partial pushes"""

    name: Optional[str] = Field(None, max_length=255)
    bannedMapIds: List[int] = Field(default_factory=list)
    pickedMapIds: List[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class StepPayload(BaseModel):
    """One entry of the fixed step template"""

    action: int = Field(..., ge=0, le=2, description="0 Ban, 1 Pick, 2 Side")
    teamIndex: int = Field(..., ge=0, le=1)

    model_config = ConfigDict(extra="allow")


class MatchStatePayload(BaseModel):
    """State push or reply; every field is optional so partial pushes validate"""

    id: Optional[str] = Field(None, min_length=1, max_length=128)
    phase: Optional[int] = Field(None, ge=0, le=3, description="0 Ban .. 3 Completed")
    currentTurnTeam: Optional[int] = Field(None, ge=0, le=1)
    currentStepIndex: Optional[int] = Field(None, ge=0)
    captainTaken: Optional[List[bool]] = None
    seriesType: Optional[str] = None

    teams: Optional[List[TeamPayload]] = Field(None, max_length=2)
    availableMaps: Optional[List[MapInfoPayload]] = None

    deciderMapId: Optional[int] = Field(None, ge=0)
    deciderSide: Optional[int] = Field(None, ge=-1, le=1)
    deciderSidePickerTeam: Optional[int] = Field(None, ge=-1, le=1)

    steps: Optional[List[StepPayload]] = None
    stepMapIds: Optional[List[int]] = None
    stepSideVals: Optional[List[int]] = None

    @field_validator("seriesType")
    @classmethod
    def validate_series_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in {"bo1", "bo3"}:
            raise ValueError(f"seriesType must be 'bo1' or 'bo3', got {v}")
        return v

    @model_validator(mode="after")
    def validate_parallel_arrays(self) -> Self:
        """Result arrays must line up with the step template"""
        if self.stepMapIds is not None and self.stepSideVals is not None:
            if len(self.stepMapIds) != len(self.stepSideVals):
                raise ValueError("stepMapIds and stepSideVals must have the same length")

        if self.steps is not None:
            n = len(self.steps)
            if self.stepMapIds is not None and len(self.stepMapIds) != n:
                raise ValueError("stepMapIds length must equal steps length")
            if self.stepSideVals is not None and len(self.stepSideVals) != n:
                raise ValueError("stepSideVals length must equal steps length")
            if self.currentStepIndex is not None and self.currentStepIndex > n:
                raise ValueError(
                    f"currentStepIndex {self.currentStepIndex} exceeds step count {n}"
                )
        return self

    model_config = ConfigDict(extra="allow")


# ==================== CREDENTIALS / REPLIES ====================


class StoredCredentialModel(BaseModel):
    """Persisted credential record (`match_<id>_team_<team>_auth`)"""

    role: Optional[Literal["captain", "spectator"]] = None
    team: Optional[int] = None
    token: Optional[str] = Field(None, max_length=512)

    @field_validator("team", mode="before")
    @classmethod
    def drop_non_numeric_team(cls, v: Any) -> Optional[int]:
        """A non-numeric stored team falls back to the route team"""
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v

    model_config = ConfigDict(extra="ignore")


class JoinResponseModel(BaseModel):
    matchId: str = Field(..., min_length=1)
    role: Literal["captain", "spectator"]
    team: Optional[int] = Field(None, ge=0, le=1)
    token: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class CreateResponseModel(BaseModel):
    matchId: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="allow")


def validate_state_payload(data: Any) -> Dict[str, Any]:
    """
    Validate a state payload and return it unchanged

    Raises:
        ValueError: If the payload is not a well-formed (full or partial) state
    """
    if not isinstance(data, dict):
        raise ValueError(f"state payload must be an object, got {type(data).__name__}")
    try:
        MatchStatePayload.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid state payload: {e}")
    return data


class PayloadSanitizer:
    """Utility class for decoding push-channel frames"""

    MAX_FRAME_BYTES = 1_000_000

    @staticmethod
    def parse_message(raw: str | bytes) -> Dict[str, Any]:
        """
        Decode one push frame into a validated state dict

        Raises:
            ValueError: If the frame is oversized, not JSON or not a state payload
        """
        if isinstance(raw, bytes):
            if len(raw) > PayloadSanitizer.MAX_FRAME_BYTES:
                raise ValueError("frame too large")
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ValueError(f"frame is not utf-8: {e}")
        elif len(raw) > PayloadSanitizer.MAX_FRAME_BYTES:
            raise ValueError("frame too large")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"frame is not JSON: {e}")
        return validate_state_payload(data)

    @staticmethod
    def parse_credential(raw: str) -> Optional[Dict[str, Any]]:
        """Decode a stored credential; corrupt content yields None"""
        try:
            data = json.loads(raw)
            return StoredCredentialModel.model_validate(data).model_dump(exclude_none=True)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Discarding malformed stored credential: {e}")
            return None


# ==================== EXPORT ====================

__all__ = [
    "MapInfoPayload",
    "TeamPayload",
    "StepPayload",
    "MatchStatePayload",
    "StoredCredentialModel",
    "JoinResponseModel",
    "CreateResponseModel",
    "PayloadSanitizer",
    "validate_state_payload",
]
