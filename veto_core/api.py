"""Request/response client for the remote match authority.

Every endpoint is a GET under `<api_base_url>/match/...`; query parameter names
are the authority's contract. Failures of any kind surface as ApiError; there
is no automatic retry.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from .config import ClientSettings
from .types import ActionKind, JoinResponse, MatchState
from .validation import CreateResponseModel, JoinResponseModel, validate_state_payload

logger = logging.getLogger(__name__)

SERIES_TYPES = ("bo1", "bo3")
JOIN_TEAMS = ("0", "1", "spectator")

_STATUS_KINDS = {
    401: "unauthorized",
    403: "unauthorized",
    404: "not_found",
    409: "conflict",
}


class ApiError(Exception):
    """A create/join/get-state/apply-action call failed."""

    def __init__(self, kind: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind!r}, status_code={self.status_code!r}, message={self.message!r})"


class MatchApi:
    def __init__(
        self,
        settings: ClientSettings | None = None,
        session: requests.Session | None = None,
    ):
        self.settings = settings or ClientSettings()
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any], *, what: str) -> Any:
        url = f"{self.settings.api_base_url}{path}"
        try:
            r = self.session.get(url, params=params, timeout=self.settings.request_timeout)
        except requests.RequestException as e:
            logger.warning(f"{what} request failed: {e}")
            raise ApiError("network", f"Failed to {what}: server unreachable") from e

        if r.status_code >= 400:
            kind = _STATUS_KINDS.get(r.status_code, "http")
            detail = (r.text or "").strip()[:200]
            logger.warning(f"{what} rejected with HTTP {r.status_code}: {detail}")
            raise ApiError(kind, f"Failed to {what}" + (f": {detail}" if detail else ""), r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise ApiError("invalid_response", f"Failed to {what}: response is not JSON", r.status_code) from e

    def create(self, team_a: str, team_b: str, series_type: str) -> str:
        """Create a match and return its id."""
        if series_type not in SERIES_TYPES:
            raise ValueError(f"series_type must be one of {SERIES_TYPES}, got {series_type}")
        data = self._get(
            "/match/create",
            {"teamA": team_a, "teamB": team_b, "series": series_type},
            what="create match",
        )
        try:
            return CreateResponseModel.model_validate(data).matchId
        except PydanticValidationError as e:
            raise ApiError("invalid_response", f"Failed to create match: {e}") from e

    def get_state(self, match_id: str) -> MatchState:
        data = self._get("/match/state", {"id": match_id}, what="load match")
        return self._state_from(data, what="load match")

    def join(self, match_id: str, team: str, token: Optional[str] = None) -> JoinResponse:
        if team not in JOIN_TEAMS:
            raise ValueError(f"team must be one of {JOIN_TEAMS}, got {team}")
        params: Dict[str, Any] = {"id": match_id, "team": team}
        if token:
            params["token"] = token
        data = self._get("/match/join", params, what="join match")
        try:
            model = JoinResponseModel.model_validate(data)
        except PydanticValidationError as e:
            raise ApiError("invalid_response", f"Failed to join match: {e}") from e
        return model.model_dump(exclude_none=True)  # type: ignore[return-value]

    def apply_action(
        self,
        match_id: str,
        team_index: int,
        action: ActionKind,
        option_id: int,
        token: str,
    ) -> MatchState:
        """Send a ban/pick/side action; `option_id` is the side value for side actions."""
        data = self._get(
            "/match/action",
            {
                "id": match_id,
                "team": team_index,
                "action": action.wire_name,
                "map": option_id,
                "token": token,
            },
            what=f"{action.wire_name}",
        )
        return self._state_from(data, what=action.wire_name)

    @staticmethod
    def _state_from(data: Any, *, what: str) -> MatchState:
        try:
            return validate_state_payload(data)  # type: ignore[return-value]
        except ValueError as e:
            raise ApiError("invalid_response", f"Failed to {what}: {e}") from e
