from __future__ import annotations

from .state import BoardUnit, CardInstance, MatchConfig, MatchSnapshot, PlayerState


def draw_card(ps: PlayerState, config: MatchConfig) -> tuple[CardInstance | None, bool]:
    """Draw the top card. Returns (card, burned); burned cards go straight to discard."""
    if not ps.deck:
        return None, False
    card = ps.deck.pop()
    if len(ps.hand) >= config.hand_limit:
        ps.discard.append(card)
        return card, True
    ps.hand.append(card)
    return card, False


def add_to_hand(ps: PlayerState, card: CardInstance, config: MatchConfig) -> bool:
    if len(ps.hand) >= config.hand_limit:
        ps.discard.append(card)
        return False
    ps.hand.append(card)
    return True


def damage_player(ps: PlayerState, amount: int) -> None:
    if amount <= 0:
        return
    ps.life -= amount


def heal_player(ps: PlayerState, amount: int) -> int:
    if amount <= 0:
        return 0
    before = ps.life
    ps.life = min(ps.max_life, ps.life + amount)
    return ps.life - before


def damage_unit(owner: PlayerState, unit: BoardUnit, amount: int, *, protect: bool = True) -> int:
    """Deal damage to a unit; unless ``protect`` is off, the owner's protection keeps it at 1 health."""
    if amount <= 0:
        return 0
    before = unit.health
    unit.health -= amount
    if protect and owner.protection_turns > 0 and before >= 1 and unit.health < 1:
        unit.health = 1
    return before - unit.health


def heal_unit(unit: BoardUnit, amount: int) -> int:
    if amount <= 0:
        return 0
    before = unit.health
    unit.health = min(unit.max_health, unit.health + amount)
    return unit.health - before


def buff_unit(unit: BoardUnit, attack: int, health: int) -> None:
    unit.set_base_attack(unit.base_attack + attack)
    unit.health += health
    unit.max_health += health


def discard_seat(seat: int, unit: BoardUnit) -> int:
    return unit.original_owner if unit.original_owner is not None else seat


def remove_unit(state: MatchSnapshot, seat: int, unit: BoardUnit) -> None:
    ps = state.players[seat]
    ps.board = [u for u in ps.board if u.instance_id != unit.instance_id]
    state.players[discard_seat(seat, unit)].discard.append(unit.to_instance())


def bury_dead(state: MatchSnapshot) -> list[str]:
    """Move every unit at 0 health or less to its owner's discard; returns their names."""
    names: list[str] = []
    for ps in state.players:
        for unit in [u for u in ps.board if u.health <= 0]:
            remove_unit(state, ps.seat, unit)
            names.append(unit.name)
    return names


def check_winner(state: MatchSnapshot, attacker: int) -> None:
    if state.game_over:
        return
    dead = [ps.seat for ps in state.players if ps.life <= 0]
    if not dead:
        return
    state.game_over = True
    if len(dead) == 2:
        state.winner = attacker
    else:
        state.winner = state.opponent(dead[0])
    state.log.append(f"{state.players[state.winner].name} wins the match!")
    state.emit("GAME_OVER", state.winner)
