"""Host-authoritative replication.

The host runs the only engine that applies rules. After every command,
local or remote, it broadcasts the full snapshot. The client never runs a
rule: it forwards commands and replaces its snapshot with whatever the host
sent, reacting to each visual event at most once.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Callable, Sequence

from dialectica.engine.actions import SEATED_COMMANDS, Command, StartMatch, SyncState
from dialectica.engine.match import Engine, build_deck
from dialectica.engine.state import MatchSnapshot, VisualEvent
from dialectica.services.journal import MatchJournal

from .errors import ConnectionClosed, NetworkError, ProtocolError
from .messages import ActionMessage, GameState, Handshake, MessageCodec
from .transport import Transport

log = logging.getLogger(__name__)

HOST_SEAT = 0
CLIENT_SEAT = 1

StateCallback = Callable[[MatchSnapshot], None]
ErrorCallback = Callable[[NetworkError], None]


def _stamp(command: Command, seat: int) -> Command:
    if not isinstance(command, SEATED_COMMANDS):
        raise ProtocolError(f"{type(command).__name__} cannot be sent by a player")
    return dataclasses.replace(command, player=seat)


class HostSession:
    def __init__(
        self,
        engine: Engine,
        codec: MessageCodec,
        transport: Transport,
        *,
        seed: int,
        deck_ids: Sequence[str] | None = None,
        player_name: str = "Host",
        avatar_id: str = "default",
        journal: MatchJournal | None = None,
        on_state: StateCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.engine = engine
        self.codec = codec
        self.transport = transport
        self.seed = seed
        self.deck_ids = tuple(deck_ids) if deck_ids is not None else None
        self.player_name = player_name
        self.avatar_id = avatar_id
        self.journal = journal
        self.on_state = on_state
        self.on_error = on_error
        self.snapshot = MatchSnapshot.lobby()
        self._lock = asyncio.Lock()

    async def start(self) -> MatchSnapshot:
        """Wait for the client's handshake, then start the match and broadcast it."""
        msg = self.codec.decode(await self.transport.recv())
        if not isinstance(msg, Handshake):
            raise ProtocolError("Expected a HANDSHAKE before anything else")
        client_deck = msg.deck_card_ids
        if client_deck is not None and not build_deck(self.engine.cards, client_deck)[0]:
            log.warning("%s sent an invalid deck; using the default deck", msg.player_name)
            client_deck = None
        log.info("%s joined the match", msg.player_name)
        start = StartMatch(
            seed=self.seed,
            deck0=self.deck_ids,
            deck1=client_deck,
            names=(self.player_name, msg.player_name),
            avatars=(self.avatar_id, msg.avatar_id),
        )
        await self._apply(start)
        return self.snapshot

    async def submit(self, command: Command) -> MatchSnapshot:
        """Apply a command from the local player (always seat 0)."""
        await self._apply(_stamp(command, HOST_SEAT))
        return self.snapshot

    async def handle_next(self) -> MatchSnapshot:
        """Receive one ACTION from the client and apply it as seat 1."""
        msg = self.codec.decode(await self.transport.recv())
        if not isinstance(msg, ActionMessage):
            raise ProtocolError(f"Expected an ACTION, got {type(msg).__name__}")
        await self._apply(_stamp(msg.command, CLIENT_SEAT))
        return self.snapshot

    async def run(self) -> None:
        """Serve client commands until the connection closes."""
        while True:
            try:
                await self.handle_next()
            except ConnectionClosed as e:
                log.info("Client left: %s", e)
                self._report(e)
                return
            except ProtocolError as e:
                log.warning("Ignoring bad frame from client: %s", e)
                self._report(e)

    async def _apply(self, command: Command) -> None:
        # One command at a time, in arrival order.
        async with self._lock:
            before = self.snapshot.seq
            self.snapshot = self.engine.apply(self.snapshot, command)
            if self.journal is not None and (isinstance(command, StartMatch) or self.snapshot.seq != before):
                self.journal.record(command, self.snapshot.seq)
            # Rejections are broadcast too: their log line is the client's feedback.
            await self.transport.send(self.codec.game_state(self.snapshot))
        if self.on_state is not None:
            self.on_state(self.snapshot)

    def _report(self, error: NetworkError) -> None:
        if self.on_error is not None:
            self.on_error(error)

    async def close(self) -> None:
        await self.transport.close()


class ClientSession:
    def __init__(
        self,
        engine: Engine,
        codec: MessageCodec,
        transport: Transport,
        *,
        deck_ids: Sequence[str] | None = None,
        player_name: str = "Guest",
        avatar_id: str = "default",
        on_state: StateCallback | None = None,
        on_event: Callable[[VisualEvent], None] | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.engine = engine
        self.codec = codec
        self.transport = transport
        self.deck_ids = tuple(deck_ids) if deck_ids is not None else None
        self.player_name = player_name
        self.avatar_id = avatar_id
        self.on_state = on_state
        self.on_event = on_event
        self.on_error = on_error
        self.snapshot = MatchSnapshot.lobby()
        # Highlighting only; never sent to the host.
        self.selection: list[str] = []
        self._last_event_id = 0

    async def join(self) -> None:
        await self.transport.send(self.codec.handshake(self.deck_ids, self.player_name, self.avatar_id))

    async def send(self, command: Command) -> None:
        await self.transport.send(self.codec.action(_stamp(command, CLIENT_SEAT)))

    async def receive(self) -> MatchSnapshot:
        """Wait for the next GAME_STATE and adopt it."""
        msg = self.codec.decode(await self.transport.recv())
        if not isinstance(msg, GameState):
            raise ProtocolError(f"Expected GAME_STATE, got {type(msg).__name__}")
        self.snapshot = self.engine.apply(self.snapshot, SyncState(snapshot=msg.snapshot))
        self._prune_selection()
        self._react()
        if self.on_state is not None:
            self.on_state(self.snapshot)
        return self.snapshot

    async def run(self) -> None:
        while True:
            try:
                await self.receive()
            except ConnectionClosed as e:
                log.info("Host left: %s", e)
                self._report(e)
                return
            except ProtocolError as e:
                log.warning("Ignoring bad frame from host: %s", e)
                self._report(e)

    def toggle_selection(self, instance_id: str) -> None:
        if instance_id in self.selection:
            self.selection.remove(instance_id)
        else:
            self.selection.append(instance_id)

    def _prune_selection(self) -> None:
        on_board = {u.instance_id for u in self.snapshot.players[CLIENT_SEAT].board}
        self.selection = [i for i in self.selection if i in on_board]

    def _react(self) -> None:
        """Report each event of the latest command once, in emission order."""
        ev = self.snapshot.last_event
        pending = self.snapshot.events or ([ev] if ev is not None else [])
        for event in pending:
            if event.id <= self._last_event_id:
                continue
            self._last_event_id = event.id
            if self.on_event is not None:
                self.on_event(event)

    def _report(self, error: NetworkError) -> None:
        if self.on_error is not None:
            self.on_error(error)

    async def close(self) -> None:
        await self.transport.close()
