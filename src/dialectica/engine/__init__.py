"""Deterministic, headless rules engine for Dialectica.

IMPORTANT: This package must never import the network layer or do I/O.
"""

from .actions import (
    Attack,
    CancelCast,
    Command,
    ConfirmSelection,
    DiscoverPick,
    EndTurn,
    PlayCard,
    RecurrencePick,
    RevealClose,
    SearchPick,
    SelectMinion,
    StartMatch,
    SyncState,
    UseSpecial,
)
from .match import Engine, build_deck, new_match, replay
from .state import MatchConfig, MatchSnapshot
from .types import CardDatabase, CardDefinition, CardKind, Keyword, Rarity

__all__ = [
    "Attack",
    "CancelCast",
    "CardDatabase",
    "CardDefinition",
    "CardKind",
    "Command",
    "ConfirmSelection",
    "DiscoverPick",
    "EndTurn",
    "Engine",
    "Keyword",
    "MatchConfig",
    "MatchSnapshot",
    "PlayCard",
    "Rarity",
    "RecurrencePick",
    "RevealClose",
    "SearchPick",
    "SelectMinion",
    "StartMatch",
    "SyncState",
    "UseSpecial",
    "build_deck",
    "new_match",
    "replay",
]
