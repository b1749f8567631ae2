"""Wire messages: ``{"type": ..., "payload": ...}`` JSON text frames.

Every inbound frame is checked against ``messages.schema.json`` before its
payload is turned back into engine objects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Literal, Sequence

from dialectica.engine.actions import Command
from dialectica.engine.serialize import SerializationError, command_from_dict, command_to_dict, snapshot_from_dict, snapshot_to_dict
from dialectica.engine.state import MatchSnapshot
from dialectica.engine.types import CardDatabase
from dialectica.services.content import ContentError, ContentService

from .errors import ProtocolError

MessageType = Literal["HANDSHAKE", "GAME_STATE", "ACTION"]


@dataclass(frozen=True)
class Handshake:
    deck_card_ids: tuple[str, ...] | None
    player_name: str
    avatar_id: str


@dataclass(frozen=True)
class GameState:
    snapshot: MatchSnapshot
    seq: int


@dataclass(frozen=True)
class ActionMessage:
    command: Command


Message = Handshake | GameState | ActionMessage


class MessageCodec:
    def __init__(self, content: ContentService, cards: CardDatabase) -> None:
        self._content = content
        self._cards = cards

    def handshake(self, deck_card_ids: Sequence[str] | None, player_name: str, avatar_id: str) -> str:
        return self._encode(
            "HANDSHAKE",
            {
                "deckCardIds": list(deck_card_ids) if deck_card_ids is not None else None,
                "playerName": player_name,
                "avatarId": avatar_id,
            },
        )

    def game_state(self, snapshot: MatchSnapshot) -> str:
        return self._encode("GAME_STATE", {"snapshot": snapshot_to_dict(snapshot), "seq": snapshot.seq})

    def action(self, command: Command) -> str:
        return self._encode("ACTION", {"command": command_to_dict(command)})

    def _encode(self, msg_type: MessageType, payload: dict[str, object]) -> str:
        return json.dumps({"type": msg_type, "payload": payload}, ensure_ascii=False)

    def decode(self, raw: str | bytes) -> Message:
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProtocolError(f"Frame is not JSON: {e}") from e
        try:
            self._content.validate_message(data)
        except ContentError as e:
            raise ProtocolError(str(e)) from e

        payload = data["payload"]
        try:
            if data["type"] == "HANDSHAKE":
                ids = payload["deckCardIds"]
                return Handshake(
                    deck_card_ids=tuple(ids) if ids is not None else None,
                    player_name=payload["playerName"],
                    avatar_id=payload["avatarId"],
                )
            if data["type"] == "GAME_STATE":
                return GameState(snapshot=snapshot_from_dict(payload["snapshot"], self._cards), seq=payload["seq"])
            return ActionMessage(command=command_from_dict(payload["command"], self._cards))
        except SerializationError as e:
            raise ProtocolError(str(e)) from e
