from __future__ import annotations

from dialectica.engine.actions import (
    Attack,
    CancelCast,
    ConfirmSelection,
    DiscoverPick,
    EndTurn,
    PlayCard,
    RecurrencePick,
    RevealClose,
    SearchPick,
    SelectMinion,
    UseSpecial,
)
from dialectica.engine.match import Engine, new_match
from dialectica.engine.serialize import snapshot_to_dict
from dialectica.engine.state import BoardUnit, CardInstance, MatchSnapshot, make_unit
from dialectica.engine.types import RARITY_ORDER
from dialectica.paths import get_paths
from dialectica.services.content import ContentService


def _load_cards():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_cards_db()


def _setup(seed: int = 1):
    cards = _load_cards()
    engine = Engine(cards)
    return cards, engine, new_match(engine, seed)


def _give(state: MatchSnapshot, seat: int, card_id: str, cards) -> CardInstance:
    card = CardInstance(instance_id=state.mint_id(card_id), card=cards.get(card_id))
    state.players[seat].hand.append(card)
    return card


def _place(state: MatchSnapshot, seat: int, card_id: str, cards, ready: bool = True) -> BoardUnit:
    unit = make_unit(cards.get(card_id), state.mint_id(card_id), state.turn)
    unit.ready = ready
    state.players[seat].board.append(unit)
    return unit


def _zone_total(state: MatchSnapshot, seat: int) -> int:
    ps = state.players[seat]
    total = len(ps.deck) + len(ps.hand) + len(ps.board) + len(ps.discard)
    return total + (1 if ps.permanent is not None else 0)


def test_fresh_match_and_first_end_turn() -> None:
    cards, engine, state = _setup(seed=7)
    p0, p1 = state.players

    assert state.started and state.turn == 1 and state.active == 0
    assert (p0.life, p0.max_life) == (80, 80)
    assert (p0.mana, p0.max_mana) == (1, 1)
    assert (p1.mana, p1.max_mana) == (0, 0)
    assert len(p0.hand) == 4
    assert len(p1.hand) == 5
    assert any(c.kind == "unit" and c.cost <= 1 for c in p0.hand)

    after = engine.apply(state, EndTurn(player=0))
    assert after.active == 1
    assert after.turn == 2
    assert (after.players[1].mana, after.players[1].max_mana) == (1, 1)
    assert len(after.players[1].hand) == 6
    assert after.seq == state.seq + 1


def test_damage_spell_spends_mana_and_lands_in_discard() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 2
    spell = _give(state, 0, "wu_wei", cards)
    enemy_life = state.players[1].life

    after = engine.apply(state, PlayCard(player=0, card_instance_id=spell.instance_id))

    assert after.players[0].mana == 0
    assert after.players[1].life == enemy_life - 5
    assert spell.instance_id in [c.instance_id for c in after.players[0].discard]
    assert spell.instance_id not in [c.instance_id for c in after.players[0].hand]
    # the input snapshot is untouched
    assert state.players[0].mana == 2
    assert state.players[1].life == enemy_life


def test_rejected_command_only_appends_one_log_line() -> None:
    cards, engine, state = _setup()
    before = snapshot_to_dict(state)

    after = engine.apply(state, EndTurn(player=1))

    assert after.log[-1] == "It is not your turn."
    assert len(after.log) == len(state.log) + 1
    got = snapshot_to_dict(after)
    got["log"] = got["log"][:-1]  # type: ignore[index]
    assert got == before


def test_unaffordable_card_is_rejected() -> None:
    cards, engine, state = _setup()
    kant = _give(state, 0, "kant", cards)
    after = engine.apply(state, PlayCard(player=0, card_instance_id=kant.instance_id))
    assert after.log[-1] == "Not enough mana!"
    assert after.players[0].find_hand(kant.instance_id) is not None
    assert after.players[0].mana == 1


def test_shared_school_units_gain_synergy_through_play() -> None:
    cards, engine, state = _setup()
    socrates = _place(state, 0, "socrates", cards)
    pyrrho = _give(state, 0, "pyrrho", cards)

    after = engine.apply(state, PlayCard(player=0, card_instance_id=pyrrho.instance_id))

    board = {u.card_id: u for u in after.players[0].board}
    assert board["socrates"].synergy_bonus == 1
    assert board["socrates"].attack == 3
    assert board["pyrrho"].attack == 2
    assert board["pyrrho"].synergy_breakdown == {"Skepticism": 1}
    assert socrates.attack == 2


def test_protection_keeps_unit_at_one_health() -> None:
    cards, engine, state = _setup()
    state.players[1].protection_turns = 1
    target = _place(state, 1, "confucius", cards)
    attacker = _place(state, 0, "plato", cards)

    after = engine.apply(state, Attack(player=0, attacker_instance_ids=(attacker.instance_id,), target_instance_id=target.instance_id))

    survivor = after.players[1].find_unit(target.instance_id)
    assert survivor is not None
    assert survivor.health == 1
    plato = after.players[0].find_unit(attacker.instance_id)
    assert plato is not None and plato.health == 3


def test_only_first_attacker_takes_counter_damage() -> None:
    cards, engine, state = _setup()
    mill = _place(state, 0, "mill", cards)
    confucius = _place(state, 0, "confucius", cards)
    aquinas = _place(state, 1, "aquinas", cards)

    after = engine.apply(
        state,
        Attack(
            player=0,
            attacker_instance_ids=(mill.instance_id, confucius.instance_id),
            target_instance_id=aquinas.instance_id,
        ),
    )

    me = after.players[0]
    assert after.players[1].find_unit(aquinas.instance_id).health == 1  # type: ignore[union-attr]
    assert me.find_unit(mill.instance_id).health == 1  # type: ignore[union-attr]
    assert me.find_unit(confucius.instance_id).health == 3  # type: ignore[union-attr]
    assert all(u.has_acted for u in me.board)


def test_direct_attack_and_lethal_ends_the_match() -> None:
    cards, engine, state = _setup()
    state.players[1].life = 3
    sun_tzu = _place(state, 0, "sun_tzu", cards)

    after = engine.apply(state, Attack(player=0, attacker_instance_ids=(sun_tzu.instance_id,)))

    assert after.players[1].life == -1
    assert after.game_over and after.winner == 0
    blocked = engine.apply(after, EndTurn(player=0))
    assert blocked.log[-1] == "The match is over."


def test_haste_unit_can_attack_the_turn_it_is_played() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 3
    beauvoir = _give(state, 0, "beauvoir", cards)

    played = engine.apply(state, PlayCard(player=0, card_instance_id=beauvoir.instance_id))
    attacked = engine.apply(played, Attack(player=0, attacker_instance_ids=(beauvoir.instance_id,)))

    assert attacked.players[1].life == 77


def test_new_unit_without_haste_cannot_attack() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 2
    confucius = _give(state, 0, "confucius", cards)

    played = engine.apply(state, PlayCard(player=0, card_instance_id=confucius.instance_id))
    attacked = engine.apply(played, Attack(player=0, attacker_instance_ids=(confucius.instance_id,)))

    assert attacked.log[-1] == "None of those units can attack right now."
    assert attacked.players[1].life == 80


def test_untargetable_unit_cannot_be_attacked_yet() -> None:
    cards, engine, state = _setup()
    diogenes = _place(state, 1, "diogenes", cards)
    plato = _place(state, 0, "plato", cards)

    after = engine.apply(
        state,
        Attack(player=0, attacker_instance_ids=(plato.instance_id,), target_instance_id=diogenes.instance_id),
    )

    assert "cannot be attacked" in after.log[-1]
    assert after.players[1].find_unit(diogenes.instance_id).health == 2  # type: ignore[union-attr]


def test_end_turn_rejected_with_full_hand() -> None:
    cards, engine, state = _setup()
    while len(state.players[0].hand) < 10:
        _give(state, 0, "cogito", cards)

    after = engine.apply(state, EndTurn(player=0))

    assert after.log[-1] == "Your hand is full! Play a card first."
    assert after.active == 0
    assert after.seq == state.seq


def test_card_totals_are_conserved_across_turns() -> None:
    cards, engine, state = _setup(seed=3)
    expected = len(cards.deck_ids())
    for _ in range(6):
        assert _zone_total(state, 0) == expected
        assert _zone_total(state, 1) == expected
        state = engine.apply(state, EndTurn(player=state.active))
    assert state.turn == 7
    assert all(p.mana >= 0 for p in state.players)


def test_mana_lock_reduces_next_turn_mana() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 2
    dogma = _give(state, 0, "dogmatism", cards)

    played = engine.apply(state, PlayCard(player=0, card_instance_id=dogma.instance_id))
    after = engine.apply(played, EndTurn(player=0))

    p1 = after.players[1]
    assert p1.max_mana == 1
    assert p1.mana == 0
    assert p1.turn_mana_locked == 2
    assert p1.locked_mana == 0


def test_cancel_refunds_refundable_spell() -> None:
    cards, engine, state = _setup()
    _place(state, 0, "confucius", cards)
    state.players[0].mana = 4
    epiphany = _give(state, 0, "epiphany", cards)

    staged = engine.apply(state, PlayCard(player=0, card_instance_id=epiphany.instance_id))
    assert staged.interaction is not None and staged.interaction.mode == "empower"
    assert staged.players[0].mana == 0
    locked = engine.apply(staged, EndTurn(player=0))
    assert locked.active == 0 and locked.log[-1].startswith("Finish your choice first")

    cancelled = engine.apply(staged, CancelCast(player=0))
    assert cancelled.interaction is None
    assert cancelled.players[0].mana == 4
    assert cancelled.players[0].find_hand(epiphany.instance_id) is not None


def test_cancel_discover_discards_without_refund() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 2
    deck_size = len(state.players[0].deck)
    contemplation = _give(state, 0, "contemplation", cards)

    staged = engine.apply(state, PlayCard(player=0, card_instance_id=contemplation.instance_id))
    assert staged.interaction is not None
    assert len(staged.interaction.candidates) == 3
    assert len(staged.players[0].deck) == deck_size - 3

    cancelled = engine.apply(staged, CancelCast(player=0))
    me = cancelled.players[0]
    assert cancelled.interaction is None
    assert me.mana == 0
    assert len(me.deck) == deck_size
    assert contemplation.instance_id in [c.instance_id for c in me.discard]


def test_discover_pick_takes_one_card_and_returns_the_rest() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 2
    deck_size = len(state.players[0].deck)
    hand_size = len(state.players[0].hand)
    contemplation = _give(state, 0, "contemplation", cards)

    staged = engine.apply(state, PlayCard(player=0, card_instance_id=contemplation.instance_id))
    assert staged.interaction is not None
    choice = staged.interaction.candidates[0]
    picked = engine.apply(staged, DiscoverPick(player=0, card_instance_id=choice.instance_id))

    me = picked.players[0]
    assert picked.interaction is None
    assert me.find_hand(choice.instance_id) is not None
    assert len(me.hand) == hand_size + 1
    assert len(me.deck) == deck_size - 1
    assert contemplation.instance_id in [c.instance_id for c in me.discard]


def test_reveal_from_unit_shows_enemy_top_cards() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 4
    foucault = _give(state, 0, "foucault", cards)
    top_three = [c.instance_id for c in reversed(state.players[1].deck[-3:])]

    staged = engine.apply(state, PlayCard(player=0, card_instance_id=foucault.instance_id))
    assert staged.interaction is not None and staged.interaction.mode == "reveal"
    assert [c.instance_id for c in staged.interaction.candidates] == top_three
    assert staged.players[0].find_unit(foucault.instance_id) is not None

    closed = engine.apply(staged, RevealClose(player=0))
    assert closed.interaction is None
    assert closed.players[1].deck == staged.players[1].deck


def test_fortify_toggle_and_confirm() -> None:
    cards, engine, state = _setup()
    a = _place(state, 0, "confucius", cards)
    b = _place(state, 0, "laozi", cards)
    state.players[0].mana = 3
    contract = _give(state, 0, "social_contract", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=contract.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=a.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=b.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=a.instance_id, toggle=True))
    assert s.interaction is not None and s.interaction.selected == [b.instance_id]

    s = engine.apply(s, ConfirmSelection(player=0))
    me = s.players[0]
    assert s.interaction is None
    assert me.find_unit(a.instance_id).health == 3  # type: ignore[union-attr]
    laozi = me.find_unit(b.instance_id)
    assert laozi is not None and (laozi.attack, laozi.health, laozi.max_health) == (2, 5, 5)


def test_sacrifice_damages_every_enemy_unit() -> None:
    cards, engine, state = _setup()
    victim = _place(state, 0, "confucius", cards)
    _place(state, 1, "laozi", cards)
    _place(state, 1, "pyrrho", cards)
    state.players[0].mana = 3
    trolley = _give(state, 0, "trolley_problem", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=trolley.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=victim.instance_id))

    assert s.interaction is None
    assert s.players[0].board == []
    assert s.players[1].board == []
    discard_ids = {c.card_id for c in s.players[0].discard}
    assert {"confucius", "trolley_problem"} <= discard_ids


def test_judgement_blesses_religion_units() -> None:
    cards, engine, state = _setup()
    aquinas = _place(state, 1, "aquinas", cards)
    state.players[0].mana = 4
    proof = _give(state, 0, "ontological_proof", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=proof.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=aquinas.instance_id))

    judged = s.players[1].find_unit(aquinas.instance_id)
    assert judged is not None and judged.health == 10


def test_will_to_power_leaves_the_last_man_or_matter() -> None:
    cards, engine, state = _setup()
    nietzsche = _place(state, 0, "nietzsche", cards)
    laozi = _place(state, 1, "laozi", cards)

    s = engine.apply(state, UseSpecial(player=0, unit_instance_id=nietzsche.instance_id))
    assert s.interaction is not None and s.interaction.mode == "will_to_power"
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=laozi.instance_id))

    weakened = s.players[1].find_unit(laozi.instance_id)
    assert weakened is not None
    assert (weakened.name, weakened.attack, weakened.health) == ("The Last Man", 0, 1)
    assert s.players[0].find_unit(nietzsche.instance_id).special_exhausted  # type: ignore[union-attr]

    again = engine.apply(s, UseSpecial(player=0, unit_instance_id=nietzsche.instance_id))
    assert "already used" in again.log[-1]


def test_chair_paradox_replaces_target_with_husk() -> None:
    cards, engine, state = _setup()
    inwagen = _place(state, 0, "van_inwagen", cards)
    plato = _place(state, 1, "plato", cards)

    s = engine.apply(state, UseSpecial(player=0, unit_instance_id=inwagen.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=plato.instance_id))

    enemy = s.players[1]
    assert [u.card_id for u in enemy.board] == ["inert_husk"]
    assert plato.instance_id in [c.instance_id for c in enemy.discard]


def test_existential_leap_transforms_two_turns_later() -> None:
    cards, engine, state = _setup()
    sartre = _place(state, 0, "sartre", cards)
    confucius = _place(state, 0, "confucius", cards)

    s = engine.apply(state, UseSpecial(player=0, unit_instance_id=sartre.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=confucius.instance_id))
    pending = s.players[0].find_unit(confucius.instance_id)
    assert pending is not None and pending.pending_transform is not None
    assert pending.pending_transform.trigger_turn == 3

    s = engine.apply(s, EndTurn(player=0))
    assert s.players[0].find_unit(confucius.instance_id).pending_transform is not None  # type: ignore[union-attr]
    s = engine.apply(s, EndTurn(player=1))

    changed = s.players[0].find_unit(confucius.instance_id)
    assert changed is not None
    assert (changed.attack, changed.health, changed.max_health) == (8, 6, 6)
    assert changed.name == "Confucius (Unbound)"
    assert changed.pending_transform is None


def test_stolen_unit_returns_at_end_of_turn() -> None:
    cards, engine, state = _setup()
    confucius = _place(state, 1, "confucius", cards)
    state.players[0].mana = 5
    persuasion = _give(state, 0, "persuasion", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=persuasion.instance_id))
    stolen = s.players[0].find_unit(confucius.instance_id)
    assert stolen is not None and stolen.return_pending and stolen.original_owner == 1
    s = engine.apply(s, Attack(player=0, attacker_instance_ids=(confucius.instance_id,)))
    assert s.players[1].life == 78

    s = engine.apply(s, EndTurn(player=0))
    assert s.players[0].find_unit(confucius.instance_id) is None
    back = s.players[1].find_unit(confucius.instance_id)
    assert back is not None and not back.return_pending and back.original_owner is None


def test_attack_block_forbids_attacking_units_for_a_turn() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 6
    kant = _give(state, 0, "kant", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=kant.instance_id))
    s = engine.apply(s, EndTurn(player=0))
    assert s.players[1].attack_block_turns == 1
    raider = _place(s, 1, "mill", cards)

    vetoed = engine.apply(s, Attack(player=1, attacker_instance_ids=(raider.instance_id,), target_instance_id=kant.instance_id))
    assert vetoed.log[-1] == "Attacks on units are forbidden this turn."

    direct = engine.apply(s, Attack(player=1, attacker_instance_ids=(raider.instance_id,)))
    assert direct.players[0].life == 77

    ended = engine.apply(direct, EndTurn(player=1))
    assert ended.players[1].attack_block_turns == 0


def test_silence_by_trait_mutes_only_matching_units() -> None:
    cards, engine, state = _setup()
    confucius = _place(state, 1, "confucius", cards)
    hypatia = _place(state, 1, "hypatia", cards)
    state.players[0].mana = 3
    diotima = _give(state, 0, "diotima", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=diotima.instance_id))
    assert s.players[1].find_unit(confucius.instance_id).silenced_until_turn == 3  # type: ignore[union-attr]
    assert s.players[1].find_unit(hypatia.instance_id).silenced_until_turn is None  # type: ignore[union-attr]

    s = engine.apply(s, EndTurn(player=0))
    alone = engine.apply(s, Attack(player=1, attacker_instance_ids=(confucius.instance_id,)))
    assert "silenced" in alone.log[-1]

    both = engine.apply(s, Attack(player=1, attacker_instance_ids=(confucius.instance_id, hypatia.instance_id)))
    assert both.players[0].life == 78
    # the silenced unit stayed out of the fight but still spent its action
    assert not both.players[1].find_unit(confucius.instance_id).can_act()  # type: ignore[union-attr]
    assert "stayed silent" in both.log[-2]


def test_permanent_bonus_adds_damage_for_its_school() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 4
    tractatus = _give(state, 0, "tractatus", cards)
    hypatia = _place(state, 0, "hypatia", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=tractatus.instance_id))
    assert s.players[0].permanent is not None
    s = engine.apply(s, Attack(player=0, attacker_instance_ids=(hypatia.instance_id,)))

    assert s.players[1].life == 76


def test_board_clear_removes_every_unit_already_in_play() -> None:
    cards, engine, state = _setup()
    _place(state, 0, "confucius", cards)
    _place(state, 1, "laozi", cards)
    state.players[0].mana = 5
    wittgenstein = _give(state, 0, "wittgenstein", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=wittgenstein.instance_id))

    assert [u.card_id for u in s.players[0].board] == ["wittgenstein"]
    assert s.players[1].board == []


def test_counter_damage_ignores_the_attackers_protection() -> None:
    cards, engine, state = _setup()
    state.players[0].protection_turns = 1
    pyrrho = _place(state, 0, "pyrrho", cards)
    aquinas = _place(state, 1, "aquinas", cards)

    after = engine.apply(
        state, Attack(player=0, attacker_instance_ids=(pyrrho.instance_id,), target_instance_id=aquinas.instance_id)
    )

    assert after.players[0].find_unit(pyrrho.instance_id) is None
    assert pyrrho.instance_id in [c.instance_id for c in after.players[0].discard]
    assert after.players[1].find_unit(aquinas.instance_id).health == 5  # type: ignore[union-attr]


def test_three_attackers_only_the_first_takes_counter_damage() -> None:
    cards, engine, state = _setup()
    mill = _place(state, 0, "mill", cards)
    confucius = _place(state, 0, "confucius", cards)
    laozi = _place(state, 0, "laozi", cards)
    aquinas = _place(state, 1, "aquinas", cards)

    after = engine.apply(
        state,
        Attack(
            player=0,
            attacker_instance_ids=(mill.instance_id, confucius.instance_id, laozi.instance_id),
            target_instance_id=aquinas.instance_id,
        ),
    )

    me = after.players[0]
    assert after.players[1].find_unit(aquinas.instance_id) is None
    assert me.find_unit(mill.instance_id).health == 1  # type: ignore[union-attr]
    assert me.find_unit(confucius.instance_id).health == 3  # type: ignore[union-attr]
    assert me.find_unit(laozi.instance_id).health == 4  # type: ignore[union-attr]
    assert all(u.has_acted for u in me.board)


def test_marx_steals_the_cheapest_enemy_unit_for_good() -> None:
    cards, engine, state = _setup()
    diogenes = _place(state, 1, "diogenes", cards)
    _place(state, 1, "plato", cards)
    state.players[0].mana = 6
    marx = _give(state, 0, "marx", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=marx.instance_id))

    stolen = s.players[0].find_unit(diogenes.instance_id)
    assert stolen is not None
    assert stolen.original_owner is None and not stolen.return_pending and not stolen.ready
    assert s.players[0].find_unit(marx.instance_id) is not None
    assert [u.card_id for u in s.players[1].board] == ["plato"]

    s = engine.apply(s, EndTurn(player=0))
    assert s.players[0].find_unit(diogenes.instance_id) is not None


def test_summoned_thief_keeps_its_own_board_slot() -> None:
    cards, engine, state = _setup()
    for cid in ("confucius", "laozi", "hypatia", "seneca", "epicurus", "socrates"):
        _place(state, 0, cid, cards)
    diogenes = _place(state, 1, "diogenes", cards)
    state.players[0].mana = 6
    marx = _give(state, 0, "marx", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=marx.instance_id))

    me = s.players[0]
    assert len(me.board) == 7
    assert me.find_unit(marx.instance_id) is not None
    assert marx.instance_id not in [c.instance_id for c in me.discard]
    assert s.players[1].find_unit(diogenes.instance_id) is not None
    assert any("found nothing to steal" in line for line in s.log)


def test_swap_life_trades_totals() -> None:
    cards, engine, state = _setup()
    state.players[0].life = 20
    state.players[0].mana = 6
    revolt = _give(state, 0, "absurd_revolt", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=revolt.instance_id))

    assert (s.players[0].life, s.players[1].life) == (80, 20)
    assert not s.game_over


def test_synergy_block_lasts_through_the_victims_turns() -> None:
    cards, engine, state = _setup()
    confucius = _place(state, 1, "confucius", cards)
    socrates = _place(state, 1, "socrates", cards)
    state.players[0].mana = 3
    deconstruction = _give(state, 0, "deconstruction", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=deconstruction.instance_id))
    enemy = s.players[1]
    assert enemy.synergy_block_turns == 2
    assert [u.synergy_bonus for u in enemy.board] == [0, 0]
    assert enemy.find_unit(confucius.instance_id).attack == 2  # type: ignore[union-attr]

    s = engine.apply(s, EndTurn(player=0))
    s = engine.apply(s, EndTurn(player=1))
    assert s.players[1].synergy_block_turns == 1
    assert [u.synergy_bonus for u in s.players[1].board] == [0, 0]

    s = engine.apply(s, EndTurn(player=0))
    s = engine.apply(s, EndTurn(player=1))
    assert s.players[1].synergy_block_turns == 0
    assert s.players[1].find_unit(socrates.instance_id).synergy_bonus == 1  # type: ignore[union-attr]


def test_empower_adds_three_and_three() -> None:
    cards, engine, state = _setup()
    confucius = _place(state, 0, "confucius", cards)
    state.players[0].mana = 4
    epiphany = _give(state, 0, "epiphany", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=epiphany.instance_id))
    s = engine.apply(s, SelectMinion(player=0, minion_instance_id=confucius.instance_id))

    assert s.interaction is None
    unit = s.players[0].find_unit(confucius.instance_id)
    assert unit is not None and (unit.attack, unit.health, unit.max_health) == (5, 6, 6)
    assert epiphany.instance_id in [c.instance_id for c in s.players[0].discard]


def test_search_pick_takes_any_card_from_the_deck() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 3
    deck_size = len(state.players[0].deck)
    hermeneutics = _give(state, 0, "hermeneutics", cards)

    staged = engine.apply(state, PlayCard(player=0, card_instance_id=hermeneutics.instance_id))
    assert staged.interaction is not None and staged.interaction.mode == "search"

    missing = engine.apply(staged, SearchPick(player=0, card_instance_id="nothing#0"))
    assert missing.log[-1] == "That card is not in your deck."
    assert missing.interaction is not None

    wanted = staged.players[0].deck[0]
    s = engine.apply(staged, SearchPick(player=0, card_instance_id=wanted.instance_id))
    me = s.players[0]
    assert s.interaction is None
    assert me.find_hand(wanted.instance_id) is not None
    assert len(me.deck) == deck_size - 1
    assert hermeneutics.instance_id in [c.instance_id for c in me.discard]


def test_recurrence_returns_a_unit_from_discard() -> None:
    cards, engine, state = _setup()
    fallen = CardInstance(instance_id=state.mint_id("plato"), card=cards.get("plato"))
    state.players[0].discard.append(fallen)
    state.players[0].mana = 4
    recurrence = _give(state, 0, "eternal_recurrence", cards)

    staged = engine.apply(state, PlayCard(player=0, card_instance_id=recurrence.instance_id))
    assert staged.interaction is not None
    assert [c.instance_id for c in staged.interaction.candidates] == [fallen.instance_id]

    s = engine.apply(staged, RecurrencePick(player=0, card_instance_id=fallen.instance_id))
    me = s.players[0]
    assert s.interaction is None
    assert me.find_hand(fallen.instance_id) is not None
    assert [c.instance_id for c in me.discard] == [recurrence.instance_id]


def test_library_draws_from_the_rarest_cards_left() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 3
    library = _give(state, 0, "library_of_alexandria", cards)
    best = max(RARITY_ORDER.index(c.card.rarity) for c in state.players[0].deck)
    held = {c.instance_id for c in state.players[0].hand}

    s = engine.apply(state, PlayCard(player=0, card_instance_id=library.instance_id))

    drawn = [c for c in s.players[0].hand if c.instance_id not in held]
    assert len(drawn) == 1
    assert RARITY_ORDER.index(drawn[0].card.rarity) == best
    assert len(s.players[0].deck) == len(state.players[0].deck) - 1


def test_syllogism_searches_for_its_schools() -> None:
    cards, engine, state = _setup()
    state.players[0].mana = 3
    syllogism = _give(state, 0, "syllogism", cards)
    matching = {c.instance_id for c in state.players[0].deck if {"Logic", "Rationalism"} & set(c.card.schools)}
    held = {c.instance_id for c in state.players[0].hand}

    s = engine.apply(state, PlayCard(player=0, card_instance_id=syllogism.instance_id))

    drawn = {c.instance_id for c in s.players[0].hand if c.instance_id not in held}
    assert len(drawn) == min(2, len(matching))
    assert drawn <= matching
    assert not drawn & {c.instance_id for c in s.players[0].deck}


def test_double_strike_spends_a_charge_before_the_action() -> None:
    cards, engine, state = _setup()
    pyrrho = _place(state, 0, "pyrrho", cards)
    state.players[0].mana = 2
    maieutics = _give(state, 0, "maieutics", cards)

    s = engine.apply(state, PlayCard(player=0, card_instance_id=maieutics.instance_id))
    assert s.players[0].find_unit(pyrrho.instance_id).extra_attacks == 1  # type: ignore[union-attr]

    s = engine.apply(s, Attack(player=0, attacker_instance_ids=(pyrrho.instance_id,)))
    unit = s.players[0].find_unit(pyrrho.instance_id)
    assert unit is not None and unit.extra_attacks == 0 and not unit.has_acted
    assert s.players[1].life == 79

    s = engine.apply(s, Attack(player=0, attacker_instance_ids=(pyrrho.instance_id,)))
    assert s.players[1].life == 78
    assert s.players[0].find_unit(pyrrho.instance_id).has_acted  # type: ignore[union-attr]

    s = engine.apply(s, Attack(player=0, attacker_instance_ids=(pyrrho.instance_id,)))
    assert s.log[-1] == "None of those units can attack right now."
