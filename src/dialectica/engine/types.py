from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

CardKind = Literal["unit", "spell", "permanent"]
Rarity = Literal["common", "rare", "epic", "legendary"]
Keyword = Literal["Haste"]

RARITY_ORDER: tuple[Rarity, ...] = ("common", "rare", "epic", "legendary")

SideTarget = Literal["self", "enemy"]

InteractionMode = Literal[
    "fortify",
    "empower",
    "sacrifice",
    "judgement",
    "will_to_power",
    "chair_paradox",
    "existential_leap",
    "discover",
    "search",
    "recurrence",
    "reveal",
]


@dataclass(frozen=True)
class DamageEffect:
    type: Literal["damage"]
    amount: int
    target: SideTarget


@dataclass(frozen=True)
class HealEffect:
    type: Literal["heal"]
    amount: int


@dataclass(frozen=True)
class DrawEffect:
    type: Literal["draw"]
    count: int


@dataclass(frozen=True)
class ManaEffect:
    """Positive amount on ``self`` grants mana now; on ``enemy`` it locks mana next turn."""

    type: Literal["mana"]
    amount: int
    target: SideTarget


@dataclass(frozen=True)
class SynergyBlockEffect:
    type: Literal["synergy_block"]
    duration: int


@dataclass(frozen=True)
class SilenceEffect:
    type: Literal["silence"]
    duration: int
    trait: str | None = None


@dataclass(frozen=True)
class AttackBlockEffect:
    type: Literal["attack_block"]
    duration: int


@dataclass(frozen=True)
class ProtectEffect:
    type: Literal["protect"]
    duration: int


@dataclass(frozen=True)
class AttackBonusEffect:
    type: Literal["attack_bonus"]
    amount: int


@dataclass(frozen=True)
class BoardClearEffect:
    type: Literal["board_clear"]


@dataclass(frozen=True)
class SwapLifeEffect:
    type: Literal["swap_life"]


@dataclass(frozen=True)
class StealEffect:
    type: Literal["steal"]
    temporary: bool


@dataclass(frozen=True)
class HealUnitsEffect:
    type: Literal["heal_units"]
    amount: int


@dataclass(frozen=True)
class DestroySchoolEffect:
    type: Literal["destroy_school"]
    school: str


@dataclass(frozen=True)
class InteractionEffect:
    """Opens a targeting/interaction mode that needs a follow-up command."""

    type: Literal["interaction"]
    mode: InteractionMode
    count: int = 3


Effect = (
    DamageEffect
    | HealEffect
    | DrawEffect
    | ManaEffect
    | SynergyBlockEffect
    | SilenceEffect
    | AttackBlockEffect
    | ProtectEffect
    | AttackBonusEffect
    | BoardClearEffect
    | SwapLifeEffect
    | StealEffect
    | HealUnitsEffect
    | DestroySchoolEffect
    | InteractionEffect
)


@dataclass(frozen=True)
class AbilitySpec:
    name: str
    tags: tuple[str, ...] = ()
    count: int = 1


@dataclass(frozen=True)
class PermanentBonus:
    school: str
    damage: int


@dataclass(frozen=True)
class CardDefinition:
    id: str
    name: str
    kind: CardKind
    rarity: Rarity
    cost: int
    description: str
    schools: tuple[str, ...] = ()
    traits: tuple[str, ...] = ()
    keywords: tuple[Keyword, ...] = ()
    effects: tuple[Effect, ...] = ()
    attack: int = 0
    health: int = 0
    ability: AbilitySpec | None = None
    bonus: PermanentBonus | None = None
    untargetable_turns: int = 0
    token: bool = False


@dataclass(frozen=True)
class CardDatabase:
    """Immutable card catalog used by the engine."""

    cards: dict[str, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]

    def __contains__(self, card_id: object) -> bool:
        return card_id in self.cards

    def all_ids(self) -> Sequence[str]:
        return list(self.cards.keys())

    def deck_ids(self) -> list[str]:
        """Every collectible (non-token) card once, in catalog order."""
        return [c.id for c in self.cards.values() if not c.token]
