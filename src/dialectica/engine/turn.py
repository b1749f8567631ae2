from __future__ import annotations

from .actions import EndTurn
from .state import MatchConfig, MatchSnapshot, PlayerState
from .zones import draw_card


def _return_stolen(state: MatchSnapshot, ender: PlayerState, config: MatchConfig) -> None:
    returning = [u for u in ender.board if u.return_pending]
    if not returning:
        return
    ender.board = [u for u in ender.board if not u.return_pending]
    for unit in returning:
        owner_seat = unit.original_owner if unit.original_owner is not None else state.opponent(ender.seat)
        owner = state.players[owner_seat]
        unit.original_owner = None
        unit.return_pending = False
        unit.ready = False
        if len(owner.board) >= config.board_slots:
            owner.discard.append(unit.to_instance())
            state.log.append(f"{unit.name} found no room and was discarded.")
        else:
            owner.board.append(unit)
            state.log.append(f"{unit.name} returned to {owner.name}.")


def _run_transformations(state: MatchSnapshot, ps: PlayerState) -> None:
    for unit in ps.board:
        pt = unit.pending_transform
        if pt is None or state.turn < pt.trigger_turn:
            continue
        unit.set_base_attack(pt.attack)
        unit.health = pt.health
        unit.max_health = pt.health
        unit.name = pt.name
        unit.description = pt.description
        unit.pending_transform = None
        state.log.append(f"{unit.name} has transformed!")


def _start_turn(state: MatchSnapshot, ps: PlayerState, config: MatchConfig) -> None:
    _run_transformations(state, ps)

    # Mana curve: +1 per turn up to the cap, minus whatever the enemy locked.
    ps.max_mana = min(config.max_mana, ps.max_mana + 1)
    ps.mana = max(0, ps.max_mana - ps.locked_mana)
    ps.turn_mana_locked = ps.locked_mana
    ps.turn_mana_bonus = 0
    ps.locked_mana = 0

    for unit in ps.board:
        unit.ready = True
        unit.has_acted = False
        unit.used_special = False
        unit.extra_attacks = 0
        if unit.silenced_until_turn is not None and unit.silenced_until_turn <= state.turn:
            unit.silenced_until_turn = None

    ps.protection_turns = max(0, ps.protection_turns - 1)

    _, burned = draw_card(ps, config)
    if burned:
        state.log.append(f"{ps.name}'s hand is full; the drawn card burned.")


def end_turn(state: MatchSnapshot, cmd: EndTurn, config: MatchConfig) -> str | None:
    ender = state.active_player
    if len(ender.hand) >= config.hand_limit:
        return "Your hand is full! Play a card first."

    _return_stolen(state, ender, config)

    # Blocks tick down when their victim ends a turn, so they cover that turn's attacks.
    ender.synergy_block_turns = max(0, ender.synergy_block_turns - 1)
    ender.attack_block_turns = max(0, ender.attack_block_turns - 1)
    ender.attack_bonus = 0
    ender.attack_bonus_turn = None

    state.active = state.opponent(state.active)
    state.turn += 1
    nxt = state.active_player
    _start_turn(state, nxt, config)

    msg = f"Turn {state.turn}: {nxt.name} to play."
    if nxt.turn_mana_locked:
        msg += f" {nxt.turn_mana_locked} mana locked."
    state.log.append(msg)
    state.emit("TURN_STARTED", nxt.seat)
    return None
