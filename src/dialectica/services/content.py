from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from dialectica.engine.types import (
    AbilitySpec,
    AttackBlockEffect,
    AttackBonusEffect,
    BoardClearEffect,
    CardDatabase,
    CardDefinition,
    DamageEffect,
    DestroySchoolEffect,
    DrawEffect,
    Effect,
    HealEffect,
    HealUnitsEffect,
    InteractionEffect,
    Keyword,
    ManaEffect,
    PermanentBonus,
    ProtectEffect,
    SilenceEffect,
    StealEffect,
    SwapLifeEffect,
    SynergyBlockEffect,
)

log = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _str_tuple(raw: object, key: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ContentError(f"{key} must be a list")
    return tuple(item for item in raw if isinstance(item, str))


def _parse_keywords(raw: object) -> tuple[Keyword, ...]:
    # trust schema for allowed values
    return _str_tuple(raw, "keywords")  # type: ignore[return-value]


def _parse_effect(raw: Mapping[str, object]) -> Effect:
    t = raw.get("type")
    if not isinstance(t, str):
        raise ContentError("Effect missing type")
    if t == "damage":
        return DamageEffect(type="damage", amount=_require_int(raw, "amount"), target=_require_str(raw, "target"))  # type: ignore[arg-type]
    if t == "heal":
        return HealEffect(type="heal", amount=_require_int(raw, "amount"))
    if t == "draw":
        return DrawEffect(type="draw", count=_require_int(raw, "count"))
    if t == "mana":
        return ManaEffect(type="mana", amount=_require_int(raw, "amount"), target=_require_str(raw, "target"))  # type: ignore[arg-type]
    if t == "synergy_block":
        return SynergyBlockEffect(type="synergy_block", duration=_require_int(raw, "duration"))
    if t == "silence":
        trait = raw.get("trait")
        return SilenceEffect(
            type="silence",
            duration=_require_int(raw, "duration"),
            trait=trait if isinstance(trait, str) else None,
        )
    if t == "attack_block":
        return AttackBlockEffect(type="attack_block", duration=_require_int(raw, "duration"))
    if t == "protect":
        return ProtectEffect(type="protect", duration=_require_int(raw, "duration"))
    if t == "attack_bonus":
        return AttackBonusEffect(type="attack_bonus", amount=_require_int(raw, "amount"))
    if t == "board_clear":
        return BoardClearEffect(type="board_clear")
    if t == "swap_life":
        return SwapLifeEffect(type="swap_life")
    if t == "steal":
        return StealEffect(type="steal", temporary=bool(raw.get("temporary", False)))
    if t == "heal_units":
        return HealUnitsEffect(type="heal_units", amount=_require_int(raw, "amount"))
    if t == "destroy_school":
        return DestroySchoolEffect(type="destroy_school", school=_require_str(raw, "school"))
    if t == "interaction":
        count = raw.get("count", 3)
        return InteractionEffect(
            type="interaction",
            mode=_require_str(raw, "mode"),  # type: ignore[arg-type]
            count=count if isinstance(count, int) else 3,
        )
    raise ContentError(f"Unknown effect type: {t}")


def _parse_ability(raw: object) -> AbilitySpec | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ContentError("ability must be an object")
    count = raw.get("count", 1)
    return AbilitySpec(
        name=_require_str(raw, "name"),
        tags=_str_tuple(raw.get("tags"), "ability.tags"),
        count=count if isinstance(count, int) else 1,
    )


def _parse_bonus(raw: object) -> PermanentBonus | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ContentError("bonus must be an object")
    return PermanentBonus(school=_require_str(raw, "school"), damage=_require_int(raw, "damage"))


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir
        self._message_validator: Draft202012Validator | None = None

    def load_cards_db(self) -> CardDatabase:
        cards_path = self._data_dir / "cards.json"
        raw = _load_json(cards_path)
        schema = _load_json(self._schema_dir / "cards.schema.json")
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[str, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card_id = _require_str(item, "id")
            if card_id in cards:
                raise ContentError(f"Duplicate card id: {card_id}")
            effects_raw = item.get("effects", [])
            effects: list[Effect] = []
            if isinstance(effects_raw, list):
                for eff in effects_raw:
                    if isinstance(eff, dict):
                        effects.append(_parse_effect(eff))
            card = CardDefinition(
                id=card_id,
                name=_require_str(item, "name"),
                kind=_require_str(item, "kind"),  # type: ignore[arg-type]
                rarity=_require_str(item, "rarity"),  # type: ignore[arg-type]
                cost=_require_int(item, "cost"),
                description=_require_str(item, "description"),
                schools=_str_tuple(item.get("schools"), "schools"),
                traits=_str_tuple(item.get("traits"), "traits"),
                keywords=_parse_keywords(item.get("keywords", [])),
                effects=tuple(effects),
                attack=int(item.get("attack", 0)),
                health=int(item.get("health", 0)),
                ability=_parse_ability(item.get("ability")),
                bonus=_parse_bonus(item.get("bonus")),
                untargetable_turns=int(item.get("untargetable_turns", 0)),
                token=bool(item.get("token", False)),
            )
            cards[card.id] = card
        log.debug("Loaded %d cards from %s", len(cards), cards_path)
        return CardDatabase(cards=cards)

    def validate_message(self, message: object) -> None:
        """Raise ContentError unless ``message`` is a well-formed wire message."""
        if self._message_validator is None:
            schema = _load_json(self._schema_dir / "messages.schema.json")
            self._message_validator = Draft202012Validator(schema)
        errors = sorted(self._message_validator.iter_errors(message), key=lambda e: list(e.path))
        if errors:
            loc = "/".join(str(p) for p in errors[0].absolute_path)
            raise ContentError(f"Invalid message at {loc or '<root>'}: {errors[0].message}")

    def import_deck(self, path: Path, cards: CardDatabase | None = None) -> tuple[bool, list[str]]:
        """Read a ``{"cardIds": [...]}`` deck file.

        Returns ``(False, [])`` for unreadable files, malformed lists,
        duplicates or, when ``cards`` is given, ids the catalog does not know.
        """
        try:
            raw = _load_json(path)
        except ContentError as e:
            log.warning("Deck import failed: %s", e)
            return False, []
        ids = raw.get("cardIds") if isinstance(raw, dict) else None
        if not isinstance(ids, list) or not ids or not all(isinstance(i, str) for i in ids):
            log.warning("Deck file %s has no usable cardIds list", path)
            return False, []
        if len(set(ids)) != len(ids):
            log.warning("Deck file %s contains duplicate cards", path)
            return False, []
        if cards is not None:
            unknown = [i for i in ids if i not in cards or cards.get(i).token]
            if unknown:
                log.warning("Deck file %s names unknown cards: %s", path, ", ".join(unknown))
                return False, []
        return True, list(ids)

    def export_deck(self, path: Path, card_ids: list[str]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"cardIds": list(card_ids)}, indent=2) + "\n", encoding="utf-8")

    def validate_all(self) -> CardDatabase:
        # Load is validation (schema + parse); the message schema must at least be a valid schema.
        db = self.load_cards_db()
        if "inert_husk" not in db:
            raise ContentError("cards.json must define the inert_husk token")
        try:
            Draft202012Validator.check_schema(_load_json(self._schema_dir / "messages.schema.json"))
        except SchemaError as e:
            raise ContentError(f"messages.schema.json is not a valid schema: {e.message}") from e
        return db
