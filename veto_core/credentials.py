"""Credential store adapter over a client-side key-value capability.

Layout (shared with the join flow):
- captain record:   match_<id>_team_<team>_auth -> {"role", "team", "token"}
- spectator record: match_<id>_spectator        -> {"role": "spectator"}

Absence of a record is normal and means "spectator". Corrupt records are
treated as absent; nothing here may raise on bad stored content.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .config import ClientSettings
from .types import Role, StoredCredential
from .validation import PayloadSanitizer

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """In-process store, used for tests and throwaway sessions."""

    def __init__(self, initial: Dict[str, str] | None = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)


class JsonFileKeyValueStore:
    """All items in a single JSON object file; unreadable files read as empty."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning(f"Cannot read credential file {self.path}: {e}")
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Credential file {self.path} is corrupt, ignoring: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def _save(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".creds-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._save(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._save(items)


def captain_key(match_id: str, team: Any) -> str:
    return f"match_{match_id}_team_{team}_auth"


def spectator_key(match_id: str) -> str:
    return f"match_{match_id}_spectator"


class CredentialStore:
    """Typed get/put over a KeyValueStore."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "CredentialStore":
        """File-backed when `credentials_path` is configured, else in-memory."""
        if settings.credentials_path:
            return cls(JsonFileKeyValueStore(settings.credentials_path))
        return cls(MemoryKeyValueStore())

    def get(self, match_id: str, team: Any = None) -> Optional[StoredCredential]:
        """Read the record for (match, team); team None reads the spectator record.

        `team` is used verbatim in the key (the raw route parameter).
        """
        key = spectator_key(match_id) if team is None else captain_key(match_id, team)
        try:
            raw = self._kv.get_item(key)
        except Exception as e:
            logger.warning(f"Credential lookup failed for {key}: {e}")
            return None
        if raw is None:
            return None
        parsed = PayloadSanitizer.parse_credential(raw)
        if parsed is None:
            return None
        return parsed  # type: ignore[return-value]

    def put(self, match_id: str, team: int, credential: StoredCredential) -> None:
        record: Dict[str, Any] = {
            "role": credential.get("role", Role.CAPTAIN.value),
            "team": credential.get("team", team),
        }
        if credential.get("token"):
            record["token"] = credential["token"]
        self._kv.set_item(captain_key(match_id, team), json.dumps(record))
        logger.debug(f"Stored captain credential for match {match_id} team {team}")

    def put_spectator(self, match_id: str) -> None:
        self._kv.set_item(spectator_key(match_id), json.dumps({"role": Role.SPECTATOR.value}))

    def forget(self, match_id: str, team: Any = None) -> None:
        key = spectator_key(match_id) if team is None else captain_key(match_id, team)
        self._kv.remove_item(key)
