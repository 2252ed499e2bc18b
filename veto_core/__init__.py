from .api import ApiError, MatchApi
from .channel import ChannelEvent, SyncChannel
from .config import ClientSettings, load_settings
from .credentials import (
    CredentialStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
)
from .gate import ActionGate, GateRejection, OutgoingAction, can_act, dispatch
from .identity import Identity, IdentityResolution, resolve_identity
from .reconcile import MergeOutcome, is_full_payload, merge, reconcile
from .session import JoinResult, MatchView, Redirect, create_match, join_match
from .timeline import TimelineRow, build_timeline
from .transitions import Transition, TransitionPhase, TransitionSequencer, describe_step
from .types import ActionKind, MatchState, Phase, Role, Side, StoredCredential
from .validation import MatchStatePayload, PayloadSanitizer, validate_state_payload

__all__ = [
    "ActionGate",
    "ActionKind",
    "ApiError",
    "ChannelEvent",
    "ClientSettings",
    "CredentialStore",
    "GateRejection",
    "Identity",
    "IdentityResolution",
    "JoinResult",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MatchApi",
    "MatchState",
    "MatchStatePayload",
    "MatchView",
    "MemoryKeyValueStore",
    "MergeOutcome",
    "OutgoingAction",
    "PayloadSanitizer",
    "Phase",
    "Redirect",
    "Role",
    "Side",
    "StoredCredential",
    "SyncChannel",
    "TimelineRow",
    "Transition",
    "TransitionPhase",
    "TransitionSequencer",
    "build_timeline",
    "can_act",
    "create_match",
    "describe_step",
    "dispatch",
    "is_full_payload",
    "join_match",
    "load_settings",
    "merge",
    "reconcile",
    "resolve_identity",
    "validate_state_payload",
]
