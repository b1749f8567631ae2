from __future__ import annotations

import random
from dataclasses import dataclass, field

from .types import CardDefinition, CardKind, InteractionMode


@dataclass(frozen=True)
class MatchConfig:
    starting_life: int = 80
    starting_hand: int = 4
    second_seat_extra_cards: int = 1
    hand_limit: int = 10
    board_slots: int = 7
    max_mana: int = 12
    low_cost_tiers: tuple[int, ...] = (1, 2, 3)


@dataclass
class CardInstance:
    instance_id: str
    card: CardDefinition

    @property
    def card_id(self) -> str:
        return self.card.id

    @property
    def cost(self) -> int:
        return self.card.cost

    @property
    def kind(self) -> CardKind:
        return self.card.kind


@dataclass
class PendingTransform:
    trigger_turn: int
    attack: int
    health: int
    name: str
    description: str


@dataclass
class BoardUnit(CardInstance):
    name: str
    description: str
    attack: int
    health: int
    max_health: int
    schools: tuple[str, ...] = ()
    traits: tuple[str, ...] = ()
    ability: str | None = None
    ready: bool = False
    has_acted: bool = False
    used_special: bool = False
    special_exhausted: bool = False
    turn_played: int | None = None
    silenced_until_turn: int | None = None
    untargetable_until_turn: int | None = None
    pending_transform: PendingTransform | None = None
    synergy_bonus: int = 0
    synergy_breakdown: dict[str, int] = field(default_factory=dict)
    extra_attacks: int = 0
    original_owner: int | None = None
    return_pending: bool = False

    @property
    def base_attack(self) -> int:
        """Attack with the synergy bonus taken out."""
        return self.attack - self.synergy_bonus

    def set_base_attack(self, value: int) -> None:
        self.attack = value + self.synergy_bonus

    def can_act(self) -> bool:
        return self.ready and not self.has_acted

    def is_silenced(self, turn: int) -> bool:
        return self.silenced_until_turn is not None and self.silenced_until_turn > turn

    def is_untargetable(self, turn: int) -> bool:
        return self.untargetable_until_turn is not None and self.untargetable_until_turn > turn

    def to_instance(self) -> CardInstance:
        return CardInstance(instance_id=self.instance_id, card=self.card)


@dataclass
class PlayerState:
    seat: int
    name: str
    avatar_id: str = "default"
    life: int = 0
    max_life: int = 0
    mana: int = 0
    max_mana: int = 0
    locked_mana: int = 0
    turn_mana_locked: int = 0
    turn_mana_bonus: int = 0
    deck: list[CardInstance] = field(default_factory=list)
    hand: list[CardInstance] = field(default_factory=list)
    board: list[BoardUnit] = field(default_factory=list)
    discard: list[CardInstance] = field(default_factory=list)
    permanent: CardInstance | None = None
    synergy_block_turns: int = 0
    attack_block_turns: int = 0
    protection_turns: int = 0
    attack_bonus: int = 0
    attack_bonus_turn: int | None = None

    def find_hand(self, instance_id: str) -> CardInstance | None:
        for c in self.hand:
            if c.instance_id == instance_id:
                return c
        return None

    def find_unit(self, instance_id: str) -> BoardUnit | None:
        for u in self.board:
            if u.instance_id == instance_id:
                return u
        return None


@dataclass
class Interaction:
    """The single pending follow-up choice of a match.

    ``pending_card`` is the staged spell that opened the mode (None when a
    unit's summon effect or activated special opened it), ``source_id`` the
    unit whose special is being used, ``candidates`` the cards on offer for
    card-pick modes and ``selected`` the unit ids picked so far.
    """

    mode: InteractionMode
    owner: int
    pending_card: CardInstance | None = None
    source_id: str | None = None
    candidates: list[CardInstance] = field(default_factory=list)
    selected: list[str] = field(default_factory=list)


@dataclass
class VisualEvent:
    id: int
    type: str
    player: int
    card_id: str | None = None


@dataclass
class MatchSnapshot:
    players: list[PlayerState]
    seed: int = 0
    started: bool = False
    turn: int = 0
    active: int = 0
    game_over: bool = False
    winner: int | None = None
    log: list[str] = field(default_factory=list)
    interaction: Interaction | None = None
    rng_counter: int = 0
    next_instance: int = 0
    seq: int = 0
    event_counter: int = 0
    last_event: VisualEvent | None = None
    # Every event emitted by the most recent accepted command, oldest first.
    events: list[VisualEvent] = field(default_factory=list)

    @staticmethod
    def lobby() -> "MatchSnapshot":
        return MatchSnapshot(players=[PlayerState(seat=0, name="Player"), PlayerState(seat=1, name="Opponent")])

    def opponent(self, seat: int) -> int:
        return 1 - seat

    @property
    def active_player(self) -> PlayerState:
        return self.players[self.active]

    @property
    def enemy_player(self) -> PlayerState:
        return self.players[self.opponent(self.active)]

    def next_rng(self) -> random.Random:
        """A fresh RNG derived from (seed, counter); advancing the counter keeps replays exact."""
        rng = random.Random(f"{self.seed}:{self.rng_counter}")
        self.rng_counter += 1
        return rng

    def mint_id(self, card_id: str) -> str:
        self.next_instance += 1
        return f"{card_id}#{self.next_instance}"

    def emit(self, event_type: str, player: int, card_id: str | None = None) -> None:
        self.event_counter += 1
        self.last_event = VisualEvent(id=self.event_counter, type=event_type, player=player, card_id=card_id)
        self.events.append(self.last_event)

    def find_unit(self, instance_id: str) -> tuple[int, BoardUnit] | None:
        for ps in self.players:
            u = ps.find_unit(instance_id)
            if u is not None:
                return ps.seat, u
        return None


def make_unit(card: CardDefinition, instance_id: str, turn: int) -> BoardUnit:
    return BoardUnit(
        instance_id=instance_id,
        card=card,
        name=card.name,
        description=card.description,
        attack=card.attack,
        health=card.health,
        max_health=card.health,
        schools=card.schools,
        traits=card.traits,
        ability=card.ability.name if card.ability is not None else None,
        ready="Haste" in card.keywords,
        turn_played=turn,
        untargetable_until_turn=turn + card.untargetable_turns if card.untargetable_turns else None,
    )
