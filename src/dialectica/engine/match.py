from __future__ import annotations

import copy
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .abilities import ACTIVATED, ON_PLAY
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
from .effects import process_effect
from .state import (
    BoardUnit,
    CardInstance,
    Interaction,
    MatchConfig,
    MatchSnapshot,
    PlayerState,
    make_unit,
)
from .synergy import refresh_synergies
from .targeting import (
    MODES,
    cancel_cast,
    confirm_selection,
    discover_pick,
    interaction_available,
    open_interaction,
    recurrence_pick,
    reveal_close,
    search_pick,
    select_minion,
)
from .turn import end_turn
from .types import CardDatabase, CardDefinition, InteractionEffect
from .zones import bury_dead, check_winner, damage_player, damage_unit, draw_card

# Commands that belong to the active player's normal flow and are locked while a choice is open.
_TURN_COMMANDS = (EndTurn, PlayCard, Attack, UseSpecial)


def build_deck(cards: CardDatabase, card_ids: Sequence[str] | None) -> tuple[bool, list[CardDefinition]]:
    """Resolve a deck specification into templates.

    ``None`` means one copy of every collectible card. Custom lists must be
    non-empty, known, collectible and free of duplicates; otherwise the
    result is ``(False, [])`` and nothing is built.
    """
    if card_ids is None:
        return True, [cards.get(cid) for cid in cards.deck_ids()]
    if not card_ids or len(set(card_ids)) != len(card_ids):
        return False, []
    out: list[CardDefinition] = []
    for cid in card_ids:
        if cid not in cards or cards.get(cid).token:
            return False, []
        out.append(cards.get(cid))
    return True, out


def _guarantee_low_cost_unit(state: MatchSnapshot, ps: PlayerState, config: MatchConfig) -> None:
    for tier in config.low_cost_tiers:
        if any(c.kind == "unit" and c.cost <= tier for c in ps.hand):
            return
        idx = next((i for i, c in enumerate(ps.deck) if c.kind == "unit" and c.cost <= tier), None)
        if idx is None or not ps.hand:
            continue
        slot = state.next_rng().randrange(len(ps.hand))
        ps.hand[slot], ps.deck[idx] = ps.deck[idx], ps.hand[slot]
        return


@dataclass(frozen=True)
class Engine:
    """The deterministic transition function of a match.

    ``apply`` never mutates its input and never raises for a bad command:
    a rejected command yields the same snapshot plus one log line.
    """

    cards: CardDatabase
    config: MatchConfig = field(default_factory=MatchConfig)

    def apply(self, snapshot: MatchSnapshot, command: Command) -> MatchSnapshot:
        if isinstance(command, SyncState):
            return copy.deepcopy(command.snapshot)
        if isinstance(command, StartMatch):
            started = self._start_match(command)
            if isinstance(started, str):
                return self._reject(snapshot, started)
            refresh_synergies(started)
            return started

        error = self._precheck(snapshot, command)
        state = snapshot
        if error is None:
            state = copy.deepcopy(snapshot)
            state.events = []
            handler = _HANDLERS.get(type(command))
            error = handler(self, state, command) if handler is not None else "Unknown command."
        if error is not None:
            return self._reject(snapshot, error)

        state.seq += 1
        check_winner(state, attacker=state.active)
        refresh_synergies(state)
        return state

    def _reject(self, snapshot: MatchSnapshot, message: str) -> MatchSnapshot:
        out = copy.deepcopy(snapshot)
        out.log.append(message)
        refresh_synergies(out)
        return out

    def _precheck(self, state: MatchSnapshot, command: Command) -> str | None:
        if not state.started:
            return "The match has not started."
        if state.game_over:
            return "The match is over."
        if isinstance(command, _TURN_COMMANDS):
            if command.player != state.active:
                return "It is not your turn."
            if state.interaction is not None:
                return f"Finish your choice first: {MODES[state.interaction.mode].prompt}"
        return None

    # -- StartMatch -------------------------------------------------------

    def _start_match(self, cmd: StartMatch) -> MatchSnapshot | str:
        cfg = self.config
        state = MatchSnapshot(
            players=[
                PlayerState(seat=0, name=cmd.names[0], avatar_id=cmd.avatars[0]),
                PlayerState(seat=1, name=cmd.names[1], avatar_id=cmd.avatars[1]),
            ],
            seed=cmd.seed,
            started=True,
            turn=1,
            active=0,
        )
        for ps, spec in zip(state.players, (cmd.deck0, cmd.deck1)):
            ok, templates = build_deck(self.cards, spec)
            if not ok:
                return f"{ps.name}'s deck list is invalid."
            deck = [CardInstance(instance_id=state.mint_id(d.id), card=d) for d in templates]
            state.next_rng().shuffle(deck)
            ps.deck = deck
            ps.life = ps.max_life = cfg.starting_life

        for seat, ps in enumerate(state.players):
            for _ in range(cfg.starting_hand + (cfg.second_seat_extra_cards if seat == 1 else 0)):
                draw_card(ps, cfg)

        first = state.players[0]
        _guarantee_low_cost_unit(state, first, cfg)
        first.mana = first.max_mana = 1
        state.log.append("Match started! May the best philosopher win.")
        state.emit("MATCH_STARTED", 0)
        return state

    # -- PlayCard -----------------------------------------------------------

    def _play_card(self, state: MatchSnapshot, cmd: PlayCard) -> str | None:
        me = state.active_player
        card = me.find_hand(cmd.card_instance_id)
        if card is None:
            return "That card is not in your hand."
        d = card.card
        if d.cost > me.mana:
            return "Not enough mana!"
        if d.kind == "unit" and len(me.board) >= self.config.board_slots:
            return "Your board is full."
        if d.kind == "spell":
            for eff in d.effects:
                if isinstance(eff, InteractionEffect) and not interaction_available(state, eff.mode):
                    return f"{d.name} has no valid choices right now."

        # The card leaves the hand before anything resolves, so it can't be cast twice.
        me.mana -= d.cost
        me.hand = [c for c in me.hand if c.instance_id != card.instance_id]
        state.log.append(f"{me.name} played {d.name}.")
        state.emit("CARD_PLAYED", me.seat, d.id)

        if d.kind == "permanent":
            if me.permanent is not None:
                me.discard.append(me.permanent)
            me.permanent = card
            return None

        interaction = self._resolve_card(state, d)

        if d.kind == "unit":
            if len(me.board) >= self.config.board_slots:
                me.discard.append(card)
                state.log.append(f"There was no room left for {d.name}.")
            else:
                me.board.append(make_unit(d, card.instance_id, state.turn))
            state.interaction = interaction
        elif interaction is not None:
            interaction.pending_card = card
            state.interaction = interaction
        else:
            me.discard.append(card)

        bury_dead(state)
        return None

    def _resolve_card(self, state: MatchSnapshot, d: CardDefinition) -> Interaction | None:
        """Run a card's generic effects, then its named on-play ability."""
        for eff in d.effects:
            interaction = process_effect(state, eff, self.config, reserved_slots=1 if d.kind == "unit" else 0)
            if interaction is not None:
                return interaction
        if d.ability is not None and d.ability.name in ON_PLAY:
            ON_PLAY[d.ability.name](state, d.ability, self.config)
        return None

    # -- Attack -------------------------------------------------------------

    def _attack_value(self, state: MatchSnapshot, ps: PlayerState, unit: BoardUnit) -> int:
        value = unit.attack
        if ps.permanent is not None and ps.permanent.card.bonus is not None:
            if ps.permanent.card.bonus.school in unit.schools:
                value += ps.permanent.card.bonus.damage
        if ps.attack_bonus_turn == state.turn:
            value += ps.attack_bonus
        return value

    def _attack(self, state: MatchSnapshot, cmd: Attack) -> str | None:
        me = state.active_player
        enemy = state.enemy_player
        if not cmd.attacker_instance_ids:
            return "Choose at least one attacker."

        ready: list[BoardUnit] = []
        for iid in dict.fromkeys(cmd.attacker_instance_ids):
            unit = me.find_unit(iid)
            if unit is not None and unit.can_act():
                ready.append(unit)
        if not ready:
            return "None of those units can attack right now."

        attackers = [u for u in ready if not u.is_silenced(state.turn)]
        silenced = [u for u in ready if u.is_silenced(state.turn)]
        if not attackers:
            return f"{', '.join(u.name for u in silenced)} cannot attack while silenced!"

        target: BoardUnit | None = None
        if cmd.target_instance_id is not None:
            target = enemy.find_unit(cmd.target_instance_id)
            if target is None:
                return "That target is not on the enemy board."
            if me.attack_block_turns > 0:
                return "Attacks on units are forbidden this turn."
            if target.is_untargetable(state.turn):
                return f"{target.name} is hiding and cannot be attacked yet!"

        if silenced:
            state.log.append(f"{', '.join(u.name for u in silenced)} stayed silent.")
        total = sum(self._attack_value(state, me, u) for u in attackers)
        names = ", ".join(u.name for u in attackers)

        if target is None:
            damage_player(enemy, total)
            state.log.append(f"{names} attacked {enemy.name} for {total} damage!")
        else:
            counter = target.attack
            damage_unit(enemy, target, total)
            # Only the first attacker takes counter-damage, and protection only guards defenders.
            damage_unit(me, attackers[0], counter, protect=False)
            fallen = bury_dead(state)
            msg = f"{names} attacked {target.name} for {total} damage."
            if fallen:
                msg += f" Defeated: {', '.join(fallen)}."
            state.log.append(msg)

        for unit in attackers:
            if unit.extra_attacks > 0:
                unit.extra_attacks -= 1
            else:
                unit.has_acted = True
        # Listed silenced units spend their action too.
        for unit in silenced:
            unit.has_acted = True
        state.emit("ATTACK", me.seat)
        return None

    # -- UseSpecial -----------------------------------------------------------

    def _use_special(self, state: MatchSnapshot, cmd: UseSpecial) -> str | None:
        me = state.active_player
        unit = me.find_unit(cmd.unit_instance_id)
        if unit is None:
            return "That unit is not on your board."
        mode = ACTIVATED.get(unit.ability) if unit.ability else None
        if mode is None:
            return f"{unit.name} has no special ability."
        if unit.used_special or unit.special_exhausted:
            return f"{unit.name} has already used its special ability."
        if not unit.can_act():
            return f"{unit.name} is not ready yet."
        if unit.is_silenced(state.turn):
            return f"{unit.name} is silenced."
        if not interaction_available(state, mode):
            return f"{unit.name} has no valid targets."
        state.interaction = open_interaction(state, mode, source_id=unit.instance_id)
        state.emit("SPECIAL", me.seat, unit.card_id)
        return None

    def _end_turn(self, state: MatchSnapshot, cmd: EndTurn) -> str | None:
        return end_turn(state, cmd, self.config)


def _delegate(fn: Callable[..., str | None]) -> Callable[[Engine, MatchSnapshot, Command], str | None]:
    def handler(engine: Engine, state: MatchSnapshot, cmd: Command) -> str | None:
        return fn(state, cmd, engine.cards, engine.config)

    return handler


_HANDLERS: dict[type, Callable[[Engine, MatchSnapshot, Command], str | None]] = {
    EndTurn: Engine._end_turn,
    PlayCard: Engine._play_card,
    Attack: Engine._attack,
    UseSpecial: Engine._use_special,
    SelectMinion: _delegate(select_minion),
    ConfirmSelection: _delegate(confirm_selection),
    DiscoverPick: _delegate(discover_pick),
    SearchPick: _delegate(search_pick),
    RecurrencePick: _delegate(recurrence_pick),
    RevealClose: _delegate(reveal_close),
    CancelCast: _delegate(cancel_cast),
}


def new_match(engine: Engine, seed: int, deck0: Sequence[str] | None = None, deck1: Sequence[str] | None = None) -> MatchSnapshot:
    start = StartMatch(
        seed=seed,
        deck0=tuple(deck0) if deck0 is not None else None,
        deck1=tuple(deck1) if deck1 is not None else None,
    )
    return engine.apply(MatchSnapshot.lobby(), start)


def replay(engine: Engine, commands: Iterable[Command], snapshot: MatchSnapshot | None = None) -> MatchSnapshot:
    state = snapshot if snapshot is not None else MatchSnapshot.lobby()
    for cmd in commands:
        state = engine.apply(state, cmd)
    return state
