"""Lookup tables for named card abilities.

Card templates name their ability; the dispatcher resolves it here once
instead of matching on card ids. On-play abilities search zones inline,
activated abilities open a targeting mode from a unit already on the board.
"""

from __future__ import annotations

from typing import Callable

from .state import MatchConfig, MatchSnapshot
from .types import RARITY_ORDER, AbilitySpec, InteractionMode
from .zones import add_to_hand


def _legendary_draw(state: MatchSnapshot, spec: AbilitySpec, config: MatchConfig) -> None:
    me = state.active_player
    if not me.deck:
        state.log.append(f"{me.name}'s deck is empty.")
        return
    top = max(RARITY_ORDER.index(c.card.rarity) for c in me.deck)
    pool = [c for c in me.deck if RARITY_ORDER.index(c.card.rarity) == top]
    card = state.next_rng().choice(pool)
    me.deck.remove(card)
    add_to_hand(me, card, config)
    state.log.append(f"{me.name} drew the {card.card.rarity} {card.card.name}.")


def _tag_search(state: MatchSnapshot, spec: AbilitySpec, config: MatchConfig) -> None:
    me = state.active_player
    matches = [c for c in me.deck if any(t in c.card.schools for t in spec.tags)]
    if not matches:
        state.log.append(f"{me.name} found no {' or '.join(spec.tags)} cards.")
        return
    rng = state.next_rng()
    picked = rng.sample(matches, min(spec.count, len(matches)))
    taken = 0
    for card in picked:
        if len(me.hand) >= config.hand_limit:
            break
        me.deck.remove(card)
        me.hand.append(card)
        taken += 1
    rng.shuffle(me.deck)
    state.log.append(f"{me.name} searched their deck and took {taken} card(s).")


def _double_strike(state: MatchSnapshot, spec: AbilitySpec, config: MatchConfig) -> None:
    me = state.active_player
    if not me.board:
        state.log.append(f"{me.name} has no unit to inspire.")
        return
    unit = min(me.board, key=lambda u: u.cost)
    unit.extra_attacks += spec.count
    state.log.append(f"{unit.name} may attack {spec.count} extra time(s) this turn.")


ON_PLAY: dict[str, Callable[[MatchSnapshot, AbilitySpec, MatchConfig], None]] = {
    "legendary_draw": _legendary_draw,
    "tag_search": _tag_search,
    "double_strike": _double_strike,
}

ACTIVATED: dict[str, InteractionMode] = {
    "will_to_power": "will_to_power",
    "chair_paradox": "chair_paradox",
    "existential_leap": "existential_leap",
}
