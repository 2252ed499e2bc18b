"""In-memory stand-ins for the remote authority, the websocket and the clock."""
from __future__ import annotations

import asyncio
import json
import uuid
from copy import deepcopy
from typing import Any, Callable, Dict, List, Optional

from websockets.exceptions import ConnectionClosed

from veto_core.api import ApiError
from veto_core.types import ActionKind, Phase

MAPS = [
    {"id": 1, "name": "Ascent", "mapImgUrl": "/img/ascent.png"},
    {"id": 2, "name": "Bind", "previewUrl": "/vid/bind.mp4"},
    {"id": 3, "name": "Haven"},
    {"id": 4, "name": "Split"},
    {"id": 5, "name": "Lotus"},
    {"id": 6, "name": "Sunset"},
    {"id": 7, "name": "Icebox"},
]

B, P, S = ActionKind.BAN, ActionKind.PICK, ActionKind.SIDE

TEMPLATES = {
    "bo1": [(B, 0), (B, 1), (B, 0), (B, 1), (B, 0), (B, 1), (S, 1)],
    "bo3": [(B, 0), (B, 1), (P, 0), (S, 1), (P, 1), (S, 0), (B, 0), (B, 1), (S, 0)],
}


def _phase_for(steps: List[Dict[str, int]], idx: int) -> int:
    if idx >= len(steps):
        return int(Phase.COMPLETED)
    action = steps[idx]["action"]
    return int({B: Phase.BAN, P: Phase.PICK, S: Phase.SIDE}[ActionKind(action)])


def make_state(series: str = "bo1", match_id: str = "m1", names=("Alpha", "Beta"), **overrides) -> Dict[str, Any]:
    steps = [{"action": int(a), "teamIndex": t} for a, t in TEMPLATES[series]]
    state = {
        "id": match_id,
        "phase": int(Phase.BAN),
        "currentTurnTeam": steps[0]["teamIndex"],
        "currentStepIndex": 0,
        "captainTaken": [False, False],
        "seriesType": series,
        "teams": [
            {"name": names[0], "bannedMapIds": [], "pickedMapIds": []},
            {"name": names[1], "bannedMapIds": [], "pickedMapIds": []},
        ],
        "availableMaps": deepcopy(MAPS),
        "deciderMapId": 0,
        "deciderSide": -1,
        "deciderSidePickerTeam": -1,
        "steps": steps,
        "stepMapIds": [0] * len(steps),
        "stepSideVals": [-1] * len(steps),
    }
    state.update(overrides)
    return state


def partial_of(state: Dict[str, Any]) -> Dict[str, Any]:
    """What a small push looks like: no catalog, no template, no team names."""
    out = {k: deepcopy(v) for k, v in state.items() if k not in ("availableMaps", "steps")}
    out["teams"] = [
        {"bannedMapIds": list(t["bannedMapIds"]), "pickedMapIds": list(t["pickedMapIds"])}
        for t in state["teams"]
    ]
    return out


class FakeAuthority:
    """Minimal authority: owns matches, issues tokens, enforces turn order."""

    def __init__(self):
        self.matches: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[tuple[str, int], str] = {}
        self.calls: List[tuple] = []
        self.fail_next: Optional[ApiError] = None

    def _maybe_fail(self) -> None:
        if self.fail_next is not None:
            err, self.fail_next = self.fail_next, None
            raise err

    def _match(self, match_id: str) -> Dict[str, Any]:
        if match_id not in self.matches:
            raise ApiError("not_found", "Failed to load match", 404)
        return self.matches[match_id]

    def create(self, team_a: str, team_b: str, series_type: str) -> str:
        self.calls.append(("create", team_a, team_b, series_type))
        self._maybe_fail()
        match_id = uuid.uuid4().hex[:8]
        self.matches[match_id] = make_state(series_type, match_id, (team_a, team_b))
        return match_id

    def get_state(self, match_id: str) -> Dict[str, Any]:
        self.calls.append(("get_state", match_id))
        self._maybe_fail()
        return deepcopy(self._match(match_id))

    def join(self, match_id: str, team: str, token: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(("join", match_id, team))
        self._maybe_fail()
        m = self._match(match_id)
        if team == "spectator":
            return {"matchId": match_id, "role": "spectator"}
        idx = int(team)
        if m["captainTaken"][idx]:
            raise ApiError("conflict", "Failed to join match: captain slot taken", 409)
        m["captainTaken"][idx] = True
        self.tokens[(match_id, idx)] = uuid.uuid4().hex
        return {"matchId": match_id, "role": "captain", "team": idx, "token": self.tokens[(match_id, idx)]}

    def apply_action(self, match_id, team_index, action, option_id, token) -> Dict[str, Any]:
        self.calls.append(("apply_action", match_id, team_index, ActionKind(action), option_id))
        self._maybe_fail()
        m = self._match(match_id)
        if self.tokens.get((match_id, team_index)) != token:
            raise ApiError("unauthorized", "Failed to act: bad token", 401)
        idx = m["currentStepIndex"]
        if idx >= len(m["steps"]):
            raise ApiError("http", "Failed to act: match completed", 400)
        step = m["steps"][idx]
        if step["teamIndex"] != team_index or step["action"] != int(action):
            raise ApiError("http", "Failed to act: not your turn", 400)

        team = m["teams"][team_index]
        if action == ActionKind.SIDE:
            prev = m["steps"][idx - 1] if idx > 0 else None
            if prev is not None and prev["action"] == int(P):
                map_id = m["stepMapIds"][idx - 1]
            else:
                map_id = m["deciderMapId"]
                m["deciderSide"] = option_id
                m["deciderSidePickerTeam"] = team_index
            m["stepMapIds"][idx] = map_id
            m["stepSideVals"][idx] = option_id
        else:
            used = {i for t in m["teams"] for i in t["bannedMapIds"] + t["pickedMapIds"]}
            if option_id in used or option_id not in {mp["id"] for mp in m["availableMaps"]}:
                raise ApiError("http", "Failed to act: map unavailable", 400)
            key = "bannedMapIds" if action == ActionKind.BAN else "pickedMapIds"
            team[key].append(option_id)
            m["stepMapIds"][idx] = option_id
            used.add(option_id)
            remaining = [mp["id"] for mp in m["availableMaps"] if mp["id"] not in used]
            if len(remaining) == 1 and not m["deciderMapId"]:
                m["deciderMapId"] = remaining[0]

        idx += 1
        m["currentStepIndex"] = idx
        m["phase"] = _phase_for(m["steps"], idx)
        if idx < len(m["steps"]):
            m["currentTurnTeam"] = m["steps"][idx]["teamIndex"]
        return deepcopy(m)


class FakeConnection:
    """Async-iterable websocket stand-in fed through push()/drop()."""

    def __init__(self):
        self.sent: List[Any] = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    async def send(self, message: Any) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._queue.put_nowait(None)

    def push(self, frame: Any) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._queue.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server going away."""
        self._queue.put_nowait(ConnectionClosed(None, None))

    def fail(self, exc: BaseException) -> None:
        """Make the next receive raise `exc`."""
        self._queue.put_nowait(exc)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeConnector:
    def __init__(self, fail: Optional[BaseException] = None):
        self.connections: List[FakeConnection] = []
        self.urls: List[str] = []
        self.fail = fail

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.fail is not None:
            raise self.fail
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


class GatedConnector(FakeConnector):
    """Connector that holds every connect until release() is called."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    def release(self) -> None:
        self.gate.set()

    async def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        await self.gate.wait()
        conn = FakeConnection()
        self.connections.append(conn)
        return conn


class _Handle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimer:
    """call_later() recorder; advance() fires due callbacks in order."""

    def __init__(self):
        self.now = 0.0
        self._pending: List[tuple[float, _Handle, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle()
        self._pending.append((self.now + delay, handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, h, _ in self._pending if not h.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [p for p in self._pending if p[0] <= target and not p[1].cancelled]
            if not due:
                break
            due.sort(key=lambda p: p[0])
            when, handle, cb = due[0]
            self._pending.remove(due[0])
            self.now = when
            cb()
        self.now = target
        self._pending = [p for p in self._pending if not p[1].cancelled]
