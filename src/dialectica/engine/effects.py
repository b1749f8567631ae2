from __future__ import annotations

from .state import Interaction, MatchConfig, MatchSnapshot
from .targeting import open_interaction
from .types import (
    AttackBlockEffect,
    AttackBonusEffect,
    BoardClearEffect,
    DamageEffect,
    DestroySchoolEffect,
    DrawEffect,
    Effect,
    HealEffect,
    HealUnitsEffect,
    InteractionEffect,
    ManaEffect,
    ProtectEffect,
    SilenceEffect,
    StealEffect,
    SwapLifeEffect,
    SynergyBlockEffect,
)
from .zones import damage_player, draw_card, heal_player, heal_unit, remove_unit


def process_effect(
    state: MatchSnapshot, effect: Effect, config: MatchConfig, reserved_slots: int = 0
) -> Interaction | None:
    """Apply one data-declared effect for the active player against the enemy.

    Works on the dispatcher's private copy of the snapshot. Returns the
    interaction the effect opened, if any; the caller stages it.
    ``reserved_slots`` board slots are held back for a unit being summoned.
    """
    me = state.active_player
    enemy = state.enemy_player

    if isinstance(effect, DamageEffect):
        if effect.target == "enemy":
            damage_player(enemy, effect.amount)
            state.log.append(f"{me.name} dealt {effect.amount} damage to {enemy.name}!")
        else:
            damage_player(me, effect.amount)
            state.log.append(f"{me.name} suffered {effect.amount} damage.")

    elif isinstance(effect, HealEffect):
        healed = heal_player(me, effect.amount)
        state.log.append(f"{me.name} restored {healed} life.")

    elif isinstance(effect, DrawEffect):
        burned = 0
        for _ in range(max(0, effect.count)):
            card, was_burned = draw_card(me, config)
            if card is not None and was_burned:
                burned += 1
        msg = f"{me.name} drew {effect.count} card(s)."
        if burned:
            msg += f" {burned} burned from a full hand."
        state.log.append(msg)

    elif isinstance(effect, ManaEffect):
        if effect.target == "self":
            me.mana += effect.amount
            me.turn_mana_bonus += effect.amount
            state.log.append(f"{me.name} gained {effect.amount} mana.")
        else:
            enemy.locked_mana += effect.amount
            state.log.append(f"{me.name} locked {effect.amount} of {enemy.name}'s mana for next turn!")

    elif isinstance(effect, SynergyBlockEffect):
        enemy.synergy_block_turns += effect.duration
        state.log.append(f"{me.name} blocked {enemy.name}'s synergies for {effect.duration} turn(s)!")

    elif isinstance(effect, SilenceEffect):
        # A duration counts enemy turns.
        until = state.turn + 2 * effect.duration
        for unit in enemy.board:
            if effect.trait is None or effect.trait in unit.traits:
                unit.silenced_until_turn = until
        which = f"{effect.trait} " if effect.trait else ""
        state.log.append(f"{me.name} silenced all enemy {which}units for {effect.duration} turn(s)!")

    elif isinstance(effect, AttackBlockEffect):
        enemy.attack_block_turns += effect.duration
        state.log.append(f"{enemy.name} cannot attack units for {effect.duration} turn(s).")

    elif isinstance(effect, ProtectEffect):
        me.protection_turns += effect.duration
        state.log.append(f"{me.name}'s units cannot fall below 1 health for {effect.duration} turn(s).")

    elif isinstance(effect, AttackBonusEffect):
        me.attack_bonus = effect.amount
        me.attack_bonus_turn = state.turn
        state.log.append(f"{me.name}'s attacks deal +{effect.amount} damage this turn.")

    elif isinstance(effect, BoardClearEffect):
        for ps in state.players:
            for unit in list(ps.board):
                remove_unit(state, ps.seat, unit)
        state.log.append(f"{me.name} cleared the entire battlefield!")

    elif isinstance(effect, SwapLifeEffect):
        me.life, enemy.life = enemy.life, me.life
        state.log.append(f"{me.name} swapped life totals with {enemy.name}!")

    elif isinstance(effect, StealEffect):
        _steal_cheapest(state, effect, config.board_slots - reserved_slots)

    elif isinstance(effect, HealUnitsEffect):
        for unit in me.board:
            heal_unit(unit, effect.amount)
        state.log.append(f"{me.name} healed all their units by {effect.amount}.")

    elif isinstance(effect, DestroySchoolEffect):
        doomed = [u for u in enemy.board if effect.school in u.schools]
        for unit in doomed:
            remove_unit(state, enemy.seat, unit)
        state.log.append(f"{me.name} destroyed {len(doomed)} enemy {effect.school} unit(s).")

    elif isinstance(effect, InteractionEffect):
        return open_interaction(state, effect.mode, effect.count)

    return None


def _steal_cheapest(state: MatchSnapshot, effect: StealEffect, room: int) -> None:
    me = state.active_player
    enemy = state.enemy_player
    if not enemy.board or len(me.board) >= room:
        state.log.append(f"{me.name} found nothing to steal.")
        return
    stolen = min(enemy.board, key=lambda u: u.cost)
    enemy.board = [u for u in enemy.board if u.instance_id != stolen.instance_id]
    if effect.temporary:
        stolen.original_owner = enemy.seat
        stolen.return_pending = True
        stolen.ready = True
        stolen.has_acted = False
        state.log.append(f"{me.name} took control of {stolen.name} until the end of the turn!")
    else:
        stolen.original_owner = None
        stolen.return_pending = False
        stolen.ready = False
        state.log.append(f"{me.name} stole {stolen.name} for good!")
    me.board.append(stolen)
