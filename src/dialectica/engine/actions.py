from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .state import MatchSnapshot


@dataclass(frozen=True)
class StartMatch:
    seed: int
    deck0: tuple[str, ...] | None = None
    deck1: tuple[str, ...] | None = None
    names: tuple[str, str] = ("Player", "Opponent")
    avatars: tuple[str, str] = ("default", "default")


@dataclass(frozen=True)
class EndTurn:
    player: int


@dataclass(frozen=True)
class PlayCard:
    player: int
    card_instance_id: str


@dataclass(frozen=True)
class Attack:
    player: int
    attacker_instance_ids: tuple[str, ...]
    target_instance_id: str | None = None


@dataclass(frozen=True)
class UseSpecial:
    player: int
    unit_instance_id: str


@dataclass(frozen=True)
class SelectMinion:
    player: int
    minion_instance_id: str
    toggle: bool = False


@dataclass(frozen=True)
class ConfirmSelection:
    player: int


@dataclass(frozen=True)
class DiscoverPick:
    player: int
    card_instance_id: str


@dataclass(frozen=True)
class SearchPick:
    player: int
    card_instance_id: str


@dataclass(frozen=True)
class RecurrencePick:
    player: int
    card_instance_id: str


@dataclass(frozen=True)
class RevealClose:
    player: int


@dataclass(frozen=True)
class CancelCast:
    player: int


@dataclass(frozen=True)
class SyncState:
    snapshot: "MatchSnapshot"


Command = (
    StartMatch
    | EndTurn
    | PlayCard
    | Attack
    | UseSpecial
    | SelectMinion
    | ConfirmSelection
    | DiscoverPick
    | SearchPick
    | RecurrencePick
    | RevealClose
    | CancelCast
    | SyncState
)

# Commands a seated player issues; the host re-stamps their seat on arrival.
SEATED_COMMANDS = (
    EndTurn,
    PlayCard,
    Attack,
    UseSpecial,
    SelectMinion,
    ConfirmSelection,
    DiscoverPick,
    SearchPick,
    RecurrencePick,
    RevealClose,
    CancelCast,
)
