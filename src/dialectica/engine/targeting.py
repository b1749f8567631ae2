"""Pending interactions: cards and specials that need a follow-up choice.

While ``MatchSnapshot.interaction`` is set, ordinary play is locked and the
owner's unit selections and card picks are read as answers to the open mode.
Every resolution clears the interaction, sends the staged spell to its
owner's discard and writes exactly one log line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

from .actions import (
    CancelCast,
    ConfirmSelection,
    DiscoverPick,
    RecurrencePick,
    RevealClose,
    SearchPick,
    SelectMinion,
)
from .state import (
    BoardUnit,
    CardInstance,
    Interaction,
    MatchConfig,
    MatchSnapshot,
    PendingTransform,
    make_unit,
)
from .types import CardDatabase, InteractionMode
from .zones import add_to_hand, buff_unit, bury_dead, damage_unit, discard_seat

HUSK_CARD_ID = "inert_husk"

InputKind = Literal["unit", "card", "view"]
Side = Literal["friendly", "enemy", "any"]


@dataclass(frozen=True)
class ModeSpec:
    input: InputKind
    refundable: bool
    prompt: str
    side: Side | None = None
    picks: int = 1


MODES: dict[InteractionMode, ModeSpec] = {
    "fortify": ModeSpec("unit", True, "Choose up to 3 of your units for +1/+1.", side="friendly", picks=3),
    "empower": ModeSpec("unit", True, "Choose one of your units for +3/+3.", side="friendly"),
    "sacrifice": ModeSpec("unit", True, "Choose one of your units to sacrifice.", side="friendly"),
    "judgement": ModeSpec("unit", True, "Choose any unit to judge.", side="any"),
    "will_to_power": ModeSpec("unit", True, "Choose an enemy unit to break.", side="enemy"),
    "chair_paradox": ModeSpec("unit", True, "Choose an enemy unit to turn into matter.", side="enemy"),
    "existential_leap": ModeSpec("unit", True, "Choose one of your units to transform.", side="friendly"),
    "discover": ModeSpec("card", False, "Pick one of the revealed cards."),
    "search": ModeSpec("card", True, "Pick any card from your deck."),
    "recurrence": ModeSpec("card", True, "Pick a unit from your discard pile."),
    "reveal": ModeSpec("view", False, "Look at your opponent's next cards."),
}

SACRIFICE_DAMAGE = 4
JUDGEMENT_DAMAGE = 8
JUDGEMENT_BLESSING = 4
WILL_TO_POWER_PENALTY = 3
LEAP_ATTACK = 8
LEAP_HEALTH = 6
LEAP_DELAY = 2


def _side_units(state: MatchSnapshot, owner: int, side: Side | None) -> list[BoardUnit]:
    if side == "friendly":
        return list(state.players[owner].board)
    if side == "enemy":
        return list(state.players[state.opponent(owner)].board)
    return list(state.players[owner].board) + list(state.players[state.opponent(owner)].board)


def interaction_available(state: MatchSnapshot, mode: InteractionMode, owner: int | None = None) -> bool:
    """Whether opening ``mode`` now would offer at least one choice."""
    seat = state.active if owner is None else owner
    spec = MODES[mode]
    ps = state.players[seat]
    if spec.input == "unit":
        return bool(_side_units(state, seat, spec.side))
    if mode in ("discover", "search"):
        return bool(ps.deck)
    if mode == "recurrence":
        return any(c.kind == "unit" for c in ps.discard)
    if mode == "reveal":
        return bool(state.players[state.opponent(seat)].deck)
    return False


def open_interaction(
    state: MatchSnapshot, mode: InteractionMode, count: int = 3, source_id: str | None = None
) -> Interaction | None:
    me = state.active_player
    if not interaction_available(state, mode):
        state.log.append(f"{me.name} has nothing to choose from.")
        return None

    candidates: list[CardInstance] = []
    if mode == "discover":
        # Cards leave the deck while they are on offer.
        for _ in range(min(count, len(me.deck))):
            candidates.append(me.deck.pop())
    elif mode == "reveal":
        enemy_deck = state.enemy_player.deck
        candidates = [CardInstance(c.instance_id, c.card) for c in reversed(enemy_deck[-count:])]
    elif mode == "recurrence":
        candidates = [CardInstance(c.instance_id, c.card) for c in me.discard if c.kind == "unit"]

    state.log.append(MODES[mode].prompt)
    return Interaction(mode=mode, owner=state.active, source_id=source_id, candidates=candidates)


def _finish(state: MatchSnapshot, message: str) -> None:
    it = state.interaction
    assert it is not None
    if it.pending_card is not None:
        state.players[it.owner].discard.append(it.pending_card)
    state.interaction = None
    state.log.append(message)
    state.emit("INTERACTION_RESOLVED", it.owner, it.pending_card.card_id if it.pending_card else None)


def _return_candidates(state: MatchSnapshot, it: Interaction, keep: str | None = None) -> None:
    ps = state.players[it.owner]
    rng = state.next_rng()
    for card in it.candidates:
        if card.instance_id == keep:
            continue
        ps.deck.insert(rng.randint(0, len(ps.deck)), card)


def _exhaust_source(state: MatchSnapshot, it: Interaction) -> None:
    if it.source_id is None:
        return
    source = state.players[it.owner].find_unit(it.source_id)
    if source is not None:
        source.used_special = True
        source.has_acted = True
        source.special_exhausted = True


def _replace_with_husk(state: MatchSnapshot, seat: int, target: BoardUnit, cards: CardDatabase) -> BoardUnit:
    husk = make_unit(cards.get(HUSK_CARD_ID), state.mint_id(HUSK_CARD_ID), state.turn)
    husk.ready = False
    husk.has_acted = True
    ps = state.players[seat]
    ps.board = [husk if u.instance_id == target.instance_id else u for u in ps.board]
    state.players[discard_seat(seat, target)].discard.append(target.to_instance())
    return husk


# -- unit-target resolutions -------------------------------------------------


def _resolve_fortify(state: MatchSnapshot, it: Interaction) -> None:
    units = [state.players[it.owner].find_unit(i) for i in it.selected]
    chosen = [u for u in units if u is not None]
    for unit in chosen:
        buff_unit(unit, 1, 1)
    names = ", ".join(u.name for u in chosen)
    _finish(state, f"{state.players[it.owner].name} fortified {names} (+1/+1).")


def _pick_fortify(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
    spec = MODES[it.mode]
    if unit.instance_id in it.selected:
        if not cmd.toggle:
            return f"{unit.name} is already selected."
        it.selected.remove(unit.instance_id)
        state.log.append(f"Deselected {unit.name} ({len(it.selected)}/{spec.picks}).")
        return None
    it.selected.append(unit.instance_id)
    if len(it.selected) >= spec.picks:
        _resolve_fortify(state, it)
    else:
        state.log.append(f"Selected {unit.name} ({len(it.selected)}/{spec.picks}).")
    return None


def _pick_empower(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
    buff_unit(unit, 3, 3)
    _finish(state, f"{state.players[it.owner].name} empowered {unit.name} (+3/+3).")
    return None


def _pick_sacrifice(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
    me = state.players[it.owner]
    enemy = state.players[state.opponent(it.owner)]
    me.board = [u for u in me.board if u.instance_id != unit.instance_id]
    state.players[discard_seat(seat, unit)].discard.append(unit.to_instance())
    for target in enemy.board:
        damage_unit(enemy, target, SACRIFICE_DAMAGE)
    fallen = bury_dead(state)
    msg = f"{me.name} sacrificed {unit.name}, dealing {SACRIFICE_DAMAGE} damage to every enemy unit"
    msg += f" and defeating {', '.join(fallen)}." if fallen else "."
    _finish(state, msg)
    return None


def _pick_judgement(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
    me = state.players[it.owner]
    if "Religion" in unit.schools:
        unit.health += JUDGEMENT_BLESSING
        unit.max_health += JUDGEMENT_BLESSING
        _finish(state, f"{me.name} blessed {unit.name} (+{JUDGEMENT_BLESSING} health).")
        return None
    damage_unit(state.players[seat], unit, JUDGEMENT_DAMAGE)
    fallen = bury_dead(state)
    msg = f"{me.name} condemned {unit.name} ({JUDGEMENT_DAMAGE} damage)"
    msg += " and it was defeated." if fallen else "."
    _finish(state, msg)
    return None


def _make_picker(cards: CardDatabase) -> dict[InteractionMode, Callable[..., str | None]]:
    def will_to_power(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
        _exhaust_source(state, it)
        remaining = unit.health - WILL_TO_POWER_PENALTY
        if remaining <= 0:
            _replace_with_husk(state, seat, unit, cards)
            _finish(state, f"{unit.name} was shattered into inert matter!")
            return None
        unit.set_base_attack(max(0, unit.base_attack - WILL_TO_POWER_PENALTY))
        unit.health = remaining
        unit.max_health = remaining
        old_name = unit.name
        unit.name = "The Last Man"
        unit.description = "A contemptible creature that seeks only comfort."
        unit.ability = None
        unit.has_acted = True
        _finish(state, f"{old_name} became the Last Man!")
        return None

    def chair_paradox(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
        _exhaust_source(state, it)
        _replace_with_husk(state, seat, unit, cards)
        _finish(state, f"{unit.name} was turned into chair-like matter!")
        return None

    def existential_leap(state: MatchSnapshot, it: Interaction, seat: int, unit: BoardUnit, cmd: SelectMinion) -> str | None:
        _exhaust_source(state, it)
        unit.pending_transform = PendingTransform(
            trigger_turn=state.turn + LEAP_DELAY,
            attack=LEAP_ATTACK,
            health=LEAP_HEALTH,
            name=f"{unit.name} (Unbound)",
            description="Existence has defined its essence.",
        )
        _finish(state, f"{unit.name} will transform at the start of its owner's next turn.")
        return None

    return {
        "fortify": _pick_fortify,
        "empower": _pick_empower,
        "sacrifice": _pick_sacrifice,
        "judgement": _pick_judgement,
        "will_to_power": will_to_power,
        "chair_paradox": chair_paradox,
        "existential_leap": existential_leap,
    }


def _check_owner(state: MatchSnapshot, player: int) -> str | None:
    it = state.interaction
    if it is None:
        return "Nothing is waiting for a choice."
    if it.owner != player:
        return "It is not your choice to make."
    return None


def select_minion(state: MatchSnapshot, cmd: SelectMinion, cards: CardDatabase, config: MatchConfig) -> str | None:
    if state.interaction is None:
        return "Nothing to target right now."
    err = _check_owner(state, cmd.player)
    if err:
        return err
    it = state.interaction
    spec = MODES[it.mode]
    if spec.input != "unit":
        return "Pick a card or cancel first."
    candidates = {u.instance_id: u for u in _side_units(state, it.owner, spec.side)}
    unit = candidates.get(cmd.minion_instance_id)
    if unit is None:
        side = {"friendly": "one of your units", "enemy": "an enemy unit"}.get(spec.side or "", "a unit")
        return f"Choose {side}."
    found = state.find_unit(unit.instance_id)
    assert found is not None
    seat = found[0]
    return _make_picker(cards)[it.mode](state, it, seat, unit, cmd)


def confirm_selection(state: MatchSnapshot, cmd: ConfirmSelection, cards: CardDatabase, config: MatchConfig) -> str | None:
    err = _check_owner(state, cmd.player)
    if err:
        return err
    it = state.interaction
    assert it is not None
    if it.mode != "fortify":
        return "There is no selection to confirm."
    if not it.selected:
        return "Select at least one unit first."
    _resolve_fortify(state, it)
    return None


def _expect_mode(state: MatchSnapshot, player: int, mode: InteractionMode) -> str | None:
    err = _check_owner(state, player)
    if err:
        return err
    assert state.interaction is not None
    if state.interaction.mode != mode:
        return f"That choice does not answer the open {state.interaction.mode} prompt."
    return None


def discover_pick(state: MatchSnapshot, cmd: DiscoverPick, cards: CardDatabase, config: MatchConfig) -> str | None:
    err = _expect_mode(state, cmd.player, "discover")
    if err:
        return err
    it = state.interaction
    assert it is not None
    chosen = next((c for c in it.candidates if c.instance_id == cmd.card_instance_id), None)
    if chosen is None:
        return "That card is not on offer."
    ps = state.players[it.owner]
    kept = add_to_hand(ps, chosen, config)
    _return_candidates(state, it, keep=chosen.instance_id)
    suffix = "" if kept else " It burned from a full hand."
    _finish(state, f"{ps.name} chose {chosen.card.name}.{suffix}")
    return None


def search_pick(state: MatchSnapshot, cmd: SearchPick, cards: CardDatabase, config: MatchConfig) -> str | None:
    err = _expect_mode(state, cmd.player, "search")
    if err:
        return err
    it = state.interaction
    assert it is not None
    ps = state.players[it.owner]
    chosen = next((c for c in ps.deck if c.instance_id == cmd.card_instance_id), None)
    if chosen is None:
        return "That card is not in your deck."
    ps.deck.remove(chosen)
    add_to_hand(ps, chosen, config)
    _finish(state, f"{ps.name} took {chosen.card.name} from their deck.")
    return None


def recurrence_pick(state: MatchSnapshot, cmd: RecurrencePick, cards: CardDatabase, config: MatchConfig) -> str | None:
    err = _expect_mode(state, cmd.player, "recurrence")
    if err:
        return err
    it = state.interaction
    assert it is not None
    ps = state.players[it.owner]
    chosen = next((c for c in ps.discard if c.instance_id == cmd.card_instance_id and c.kind == "unit"), None)
    if chosen is None:
        return "That unit is not in your discard pile."
    ps.discard.remove(chosen)
    add_to_hand(ps, chosen, config)
    _finish(state, f"{ps.name} brought {chosen.card.name} back!")
    return None


def reveal_close(state: MatchSnapshot, cmd: RevealClose, cards: CardDatabase, config: MatchConfig) -> str | None:
    err = _expect_mode(state, cmd.player, "reveal")
    if err:
        return err
    _finish(state, f"{state.players[cmd.player].name} stopped watching.")
    return None


def cancel_cast(state: MatchSnapshot, cmd: CancelCast, cards: CardDatabase, config: MatchConfig) -> str | None:
    err = _check_owner(state, cmd.player)
    if err:
        return err
    it = state.interaction
    assert it is not None
    ps = state.players[it.owner]
    spec = MODES[it.mode]
    if it.mode == "discover":
        _return_candidates(state, it)
    card = it.pending_card
    if card is None:
        msg = f"{ps.name} cancelled the selection."
    elif spec.refundable:
        ps.hand.append(card)
        ps.mana += card.cost
        msg = f"{ps.name} cancelled {card.card.name}; {card.cost} mana refunded."
    else:
        ps.discard.append(card)
        msg = f"{ps.name} abandoned {card.card.name}."
    state.interaction = None
    state.log.append(msg)
    return None
