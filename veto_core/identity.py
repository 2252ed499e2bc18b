"""Resolve who the viewer is (captain of a team, or spectator) for one match view."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .credentials import CredentialStore
from .types import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    match_id: str
    role: Role
    team: Optional[int] = None
    token: Optional[str] = None

    @property
    def is_captain(self) -> bool:
        """Captain with a usable token (a role alone is not enough to act)."""
        return self.role is Role.CAPTAIN and self.team is not None and bool(self.token)


@dataclass(frozen=True)
class IdentityResolution:
    identity: Identity
    # Captain-style URL without a stored credential: show the spectator URL instead.
    redirect_to_spectator: bool = False


def spectator(match_id: str) -> Identity:
    return Identity(match_id=match_id, role=Role.SPECTATOR)


def _parse_team(team_param: str) -> Optional[int]:
    try:
        return int(str(team_param).strip(), 10)
    except ValueError:
        return None


def resolve_identity(
    match_id: str, team_param: Optional[str], store: CredentialStore
) -> IdentityResolution:
    """Derive the viewer's role from the route and the stored credential.

    Steps:
        1. No team parameter -> spectator
        2. Unparseable team parameter -> team unknown
        3. No stored record for (match, raw team param) -> spectator + redirect
        4. Stored record -> its role (captain by default), its team if numeric
           else the route team, its token
    """
    if team_param is None:
        return IdentityResolution(spectator(match_id))

    route_team = _parse_team(team_param)
    stored = store.get(match_id, team_param)
    if stored is None:
        logger.info(f"No credential for match {match_id} team {team_param}; viewing as spectator")
        return IdentityResolution(spectator(match_id), redirect_to_spectator=True)

    role = Role(stored.get("role") or Role.CAPTAIN.value)
    if role is Role.SPECTATOR:
        return IdentityResolution(spectator(match_id))

    stored_team = stored.get("team")
    team = stored_team if isinstance(stored_team, int) else route_team
    identity = Identity(
        match_id=match_id,
        role=role,
        team=team,
        token=stored.get("token") or None,
    )
    logger.info(f"Resolved captain of team {team} for match {match_id}")
    return IdentityResolution(identity)
