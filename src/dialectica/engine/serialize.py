"""Canonical JSON-safe dicts for snapshots and commands.

Cards travel as ``{"instance_id", "card_id"}``; both peers load the same
static catalog, so templates are looked up again on the way in.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

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
from .state import (
    BoardUnit,
    CardInstance,
    Interaction,
    MatchSnapshot,
    PendingTransform,
    PlayerState,
    VisualEvent,
)
from .types import CardDatabase


class SerializationError(ValueError):
    pass


def _card_to_dict(c: CardInstance) -> dict[str, object]:
    return {"instance_id": c.instance_id, "card_id": c.card_id}


def _card_from_dict(d: Mapping[str, Any], cards: CardDatabase) -> CardInstance:
    try:
        return CardInstance(instance_id=str(d["instance_id"]), card=cards.get(str(d["card_id"])))
    except KeyError as e:
        raise SerializationError(f"Unknown or malformed card: {d!r}") from e


def _unit_to_dict(u: BoardUnit) -> dict[str, object]:
    pt = u.pending_transform
    return {
        "instance_id": u.instance_id,
        "card_id": u.card_id,
        "name": u.name,
        "description": u.description,
        "attack": u.attack,
        "health": u.health,
        "max_health": u.max_health,
        "schools": list(u.schools),
        "traits": list(u.traits),
        "ability": u.ability,
        "ready": u.ready,
        "has_acted": u.has_acted,
        "used_special": u.used_special,
        "special_exhausted": u.special_exhausted,
        "turn_played": u.turn_played,
        "silenced_until_turn": u.silenced_until_turn,
        "untargetable_until_turn": u.untargetable_until_turn,
        "pending_transform": None
        if pt is None
        else {
            "trigger_turn": pt.trigger_turn,
            "attack": pt.attack,
            "health": pt.health,
            "name": pt.name,
            "description": pt.description,
        },
        "synergy_bonus": u.synergy_bonus,
        "synergy_breakdown": dict(sorted(u.synergy_breakdown.items())),
        "extra_attacks": u.extra_attacks,
        "original_owner": u.original_owner,
        "return_pending": u.return_pending,
    }


def _unit_from_dict(d: Mapping[str, Any], cards: CardDatabase) -> BoardUnit:
    base = _card_from_dict(d, cards)
    raw_pt = d.get("pending_transform")
    pt = None
    if isinstance(raw_pt, Mapping):
        pt = PendingTransform(
            trigger_turn=int(raw_pt["trigger_turn"]),
            attack=int(raw_pt["attack"]),
            health=int(raw_pt["health"]),
            name=str(raw_pt["name"]),
            description=str(raw_pt["description"]),
        )
    return BoardUnit(
        instance_id=base.instance_id,
        card=base.card,
        name=str(d["name"]),
        description=str(d.get("description", "")),
        attack=int(d["attack"]),
        health=int(d["health"]),
        max_health=int(d["max_health"]),
        schools=tuple(d.get("schools", [])),
        traits=tuple(d.get("traits", [])),
        ability=d.get("ability"),
        ready=bool(d.get("ready", False)),
        has_acted=bool(d.get("has_acted", False)),
        used_special=bool(d.get("used_special", False)),
        special_exhausted=bool(d.get("special_exhausted", False)),
        turn_played=d.get("turn_played"),
        silenced_until_turn=d.get("silenced_until_turn"),
        untargetable_until_turn=d.get("untargetable_until_turn"),
        pending_transform=pt,
        synergy_bonus=int(d.get("synergy_bonus", 0)),
        synergy_breakdown={str(k): int(v) for k, v in dict(d.get("synergy_breakdown", {})).items()},
        extra_attacks=int(d.get("extra_attacks", 0)),
        original_owner=d.get("original_owner"),
        return_pending=bool(d.get("return_pending", False)),
    )


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "seat": p.seat,
        "name": p.name,
        "avatar_id": p.avatar_id,
        "life": p.life,
        "max_life": p.max_life,
        "mana": p.mana,
        "max_mana": p.max_mana,
        "locked_mana": p.locked_mana,
        "turn_mana_locked": p.turn_mana_locked,
        "turn_mana_bonus": p.turn_mana_bonus,
        "deck": [_card_to_dict(c) for c in p.deck],
        "hand": [_card_to_dict(c) for c in p.hand],
        "board": [_unit_to_dict(u) for u in p.board],
        "discard": [_card_to_dict(c) for c in p.discard],
        "permanent": _card_to_dict(p.permanent) if p.permanent is not None else None,
        "synergy_block_turns": p.synergy_block_turns,
        "attack_block_turns": p.attack_block_turns,
        "protection_turns": p.protection_turns,
        "attack_bonus": p.attack_bonus,
        "attack_bonus_turn": p.attack_bonus_turn,
    }


def _player_from_dict(d: Mapping[str, Any], cards: CardDatabase) -> PlayerState:
    raw_perm = d.get("permanent")
    return PlayerState(
        seat=int(d["seat"]),
        name=str(d["name"]),
        avatar_id=str(d.get("avatar_id", "default")),
        life=int(d["life"]),
        max_life=int(d["max_life"]),
        mana=int(d["mana"]),
        max_mana=int(d["max_mana"]),
        locked_mana=int(d.get("locked_mana", 0)),
        turn_mana_locked=int(d.get("turn_mana_locked", 0)),
        turn_mana_bonus=int(d.get("turn_mana_bonus", 0)),
        deck=[_card_from_dict(c, cards) for c in d.get("deck", [])],
        hand=[_card_from_dict(c, cards) for c in d.get("hand", [])],
        board=[_unit_from_dict(u, cards) for u in d.get("board", [])],
        discard=[_card_from_dict(c, cards) for c in d.get("discard", [])],
        permanent=_card_from_dict(raw_perm, cards) if isinstance(raw_perm, Mapping) else None,
        synergy_block_turns=int(d.get("synergy_block_turns", 0)),
        attack_block_turns=int(d.get("attack_block_turns", 0)),
        protection_turns=int(d.get("protection_turns", 0)),
        attack_bonus=int(d.get("attack_bonus", 0)),
        attack_bonus_turn=d.get("attack_bonus_turn"),
    )


def _interaction_to_dict(it: Interaction | None) -> dict[str, object] | None:
    if it is None:
        return None
    return {
        "mode": it.mode,
        "owner": it.owner,
        "pending_card": _card_to_dict(it.pending_card) if it.pending_card is not None else None,
        "source_id": it.source_id,
        "candidates": [_card_to_dict(c) for c in it.candidates],
        "selected": list(it.selected),
    }


def _interaction_from_dict(d: Mapping[str, Any] | None, cards: CardDatabase) -> Interaction | None:
    if d is None:
        return None
    raw_pending = d.get("pending_card")
    return Interaction(
        mode=d["mode"],
        owner=int(d["owner"]),
        pending_card=_card_from_dict(raw_pending, cards) if isinstance(raw_pending, Mapping) else None,
        source_id=d.get("source_id"),
        candidates=[_card_from_dict(c, cards) for c in d.get("candidates", [])],
        selected=[str(s) for s in d.get("selected", [])],
    )


def _event_to_dict(ev: VisualEvent) -> dict[str, object]:
    return {"id": ev.id, "type": ev.type, "player": ev.player, "card_id": ev.card_id}


def _event_from_dict(d: Mapping[str, Any]) -> VisualEvent:
    return VisualEvent(id=int(d["id"]), type=str(d["type"]), player=int(d["player"]), card_id=d.get("card_id"))


def snapshot_to_dict(state: MatchSnapshot) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the match."""
    ev = state.last_event
    return {
        "seed": state.seed,
        "started": state.started,
        "turn": state.turn,
        "active": state.active,
        "game_over": state.game_over,
        "winner": state.winner,
        "players": [_player_to_dict(p) for p in state.players],
        "log": list(state.log),
        "interaction": _interaction_to_dict(state.interaction),
        "rng_counter": state.rng_counter,
        "next_instance": state.next_instance,
        "seq": state.seq,
        "event_counter": state.event_counter,
        "last_event": None if ev is None else _event_to_dict(ev),
        "events": [_event_to_dict(e) for e in state.events],
    }


def snapshot_from_dict(d: Mapping[str, Any], cards: CardDatabase) -> MatchSnapshot:
    try:
        raw_ev = d.get("last_event")
        ev = _event_from_dict(raw_ev) if isinstance(raw_ev, Mapping) else None
        return MatchSnapshot(
            players=[_player_from_dict(p, cards) for p in d["players"]],
            seed=int(d.get("seed", 0)),
            started=bool(d.get("started", False)),
            turn=int(d.get("turn", 0)),
            active=int(d.get("active", 0)),
            game_over=bool(d.get("game_over", False)),
            winner=d.get("winner"),
            log=[str(line) for line in d.get("log", [])],
            interaction=_interaction_from_dict(d.get("interaction"), cards),
            rng_counter=int(d.get("rng_counter", 0)),
            next_instance=int(d.get("next_instance", 0)),
            seq=int(d.get("seq", 0)),
            event_counter=int(d.get("event_counter", 0)),
            last_event=ev,
            events=[_event_from_dict(e) for e in d.get("events", [])],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Malformed snapshot: {e}") from e


_COMMAND_KINDS: dict[str, type] = {
    "StartMatch": StartMatch,
    "EndTurn": EndTurn,
    "PlayCard": PlayCard,
    "Attack": Attack,
    "UseSpecial": UseSpecial,
    "SelectMinion": SelectMinion,
    "ConfirmSelection": ConfirmSelection,
    "DiscoverPick": DiscoverPick,
    "SearchPick": SearchPick,
    "RecurrencePick": RecurrencePick,
    "RevealClose": RevealClose,
    "CancelCast": CancelCast,
    "SyncState": SyncState,
}


def command_to_dict(c: Command) -> dict[str, object]:
    if isinstance(c, StartMatch):
        return {
            "kind": "StartMatch",
            "seed": c.seed,
            "deck0": list(c.deck0) if c.deck0 is not None else None,
            "deck1": list(c.deck1) if c.deck1 is not None else None,
            "names": list(c.names),
            "avatars": list(c.avatars),
        }
    if isinstance(c, SyncState):
        return {"kind": "SyncState", "snapshot": snapshot_to_dict(c.snapshot)}
    if isinstance(c, Attack):
        return {
            "kind": "Attack",
            "player": c.player,
            "attacker_instance_ids": list(c.attacker_instance_ids),
            "target_instance_id": c.target_instance_id,
        }
    out: dict[str, object] = {"kind": type(c).__name__}
    out.update(vars(c))
    return out


def command_from_dict(d: Mapping[str, Any], cards: CardDatabase | None = None) -> Command:
    kind = d.get("kind")
    if not isinstance(kind, str) or kind not in _COMMAND_KINDS:
        raise SerializationError(f"Unknown command kind: {kind!r}")
    try:
        if kind == "StartMatch":
            deck0 = d.get("deck0")
            deck1 = d.get("deck1")
            names = d.get("names") or ["Player", "Opponent"]
            avatars = d.get("avatars") or ["default", "default"]
            return StartMatch(
                seed=int(d["seed"]),
                deck0=tuple(deck0) if deck0 is not None else None,
                deck1=tuple(deck1) if deck1 is not None else None,
                names=(str(names[0]), str(names[1])),
                avatars=(str(avatars[0]), str(avatars[1])),
            )
        if kind == "SyncState":
            if cards is None:
                raise SerializationError("SyncState needs the card catalog to decode.")
            return SyncState(snapshot=snapshot_from_dict(d["snapshot"], cards))
        if kind == "Attack":
            return Attack(
                player=int(d["player"]),
                attacker_instance_ids=tuple(str(i) for i in d["attacker_instance_ids"]),
                target_instance_id=d.get("target_instance_id"),
            )
        fields = {k: v for k, v in d.items() if k != "kind"}
        return _COMMAND_KINDS[kind](**fields)
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Malformed {kind} command: {e}") from e
