from __future__ import annotations

import argparse
import asyncio
import logging
import shlex
from pathlib import Path
from typing import Awaitable, Callable

from dialectica.config import ConfigError, NetConfig
from dialectica.engine.actions import (
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
    UseSpecial,
)
from dialectica.engine.match import Engine, replay
from dialectica.engine.state import MatchSnapshot
from dialectica.engine.targeting import MODES
from dialectica.engine.types import CardDatabase
from dialectica.net.errors import NetworkError
from dialectica.net.messages import MessageCodec
from dialectica.net.session import ClientSession, HostSession
from dialectica.net.transport import WebSocketListener, connect
from dialectica.paths import get_paths
from dialectica.services.content import ContentError, ContentService
from dialectica.services.journal import MatchJournal

log = logging.getLogger(__name__)

HELP = """Commands:
  play <card>              play a card from your hand
  attack <unit>[,<unit>] [target]   attack the enemy (or a target unit)
  special <unit>           use a unit's special ability
  select <unit>            answer an open unit prompt (toggle with a second select)
  confirm                  finish a multi-unit selection early
  pick <card>              answer an open card prompt
  close                    close a reveal
  cancel                   cancel the open prompt
  end                      end your turn
  show                     print the board
  quit                     leave the match"""


def parse_command(line: str, snapshot: MatchSnapshot, seat: int) -> Command | None:
    """Turn one line of text into a command for ``seat``; None for unknown input."""
    parts = shlex.split(line)
    if not parts:
        return None
    verb, args = parts[0].lower(), parts[1:]
    if verb == "end":
        return EndTurn(player=seat)
    if verb == "play" and len(args) == 1:
        return PlayCard(player=seat, card_instance_id=args[0])
    if verb == "attack" and args:
        attackers = tuple(a for a in args[0].split(",") if a)
        target = args[1] if len(args) > 1 else None
        return Attack(player=seat, attacker_instance_ids=attackers, target_instance_id=target)
    if verb == "special" and len(args) == 1:
        return UseSpecial(player=seat, unit_instance_id=args[0])
    if verb == "select" and len(args) == 1:
        return SelectMinion(player=seat, minion_instance_id=args[0], toggle=True)
    if verb == "confirm":
        return ConfirmSelection(player=seat)
    if verb == "close":
        return RevealClose(player=seat)
    if verb == "cancel":
        return CancelCast(player=seat)
    if verb == "pick" and len(args) == 1:
        mode = snapshot.interaction.mode if snapshot.interaction is not None else None
        if mode == "search":
            return SearchPick(player=seat, card_instance_id=args[0])
        if mode == "recurrence":
            return RecurrencePick(player=seat, card_instance_id=args[0])
        return DiscoverPick(player=seat, card_instance_id=args[0])
    return None


def format_snapshot(snapshot: MatchSnapshot, seat: int) -> str:
    if not snapshot.started:
        return "Waiting for the match to start..."
    me = snapshot.players[seat]
    enemy = snapshot.players[snapshot.opponent(seat)]
    whose = "your" if snapshot.active == seat else f"{enemy.name}'s"
    lines = [
        f"Turn {snapshot.turn} - {whose} turn",
        f"{enemy.name}: {enemy.life}/{enemy.max_life} life, {enemy.mana}/{enemy.max_mana} mana, "
        f"{len(enemy.hand)} in hand, {len(enemy.deck)} in deck",
    ]
    for u in enemy.board:
        lines.append(f"    [{u.instance_id}] {u.name} {u.attack}/{u.health}")
    lines.append(
        f"{me.name}: {me.life}/{me.max_life} life, {me.mana}/{me.max_mana} mana, {len(me.deck)} in deck"
    )
    for u in me.board:
        flags = "" if u.can_act() else " (exhausted)"
        lines.append(f"    [{u.instance_id}] {u.name} {u.attack}/{u.health}{flags}")
    lines.append("Hand:")
    for c in me.hand:
        lines.append(f"    [{c.instance_id}] {c.card.name} ({c.cost}) - {c.card.description}")
    it = snapshot.interaction
    if it is not None and it.owner == seat:
        lines.append(f"Prompt: {MODES[it.mode].prompt}")
        for c in it.candidates:
            lines.append(f"    [{c.instance_id}] {c.card.name}")
    if snapshot.game_over and snapshot.winner is not None:
        lines.append(f"Game over: {snapshot.players[snapshot.winner].name} wins.")
    return "\n".join(lines)


def _print_update(snapshot: MatchSnapshot, seen: list[int]) -> None:
    new_lines = snapshot.log[seen[0] :]
    seen[0] = len(snapshot.log)
    for line in new_lines:
        print(f"* {line}")


def _load() -> tuple[ContentService, CardDatabase]:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content, content.load_cards_db()


def _load_deck(content: ContentService, cards: CardDatabase, deck_path: str | None) -> list[str] | None:
    if deck_path is None:
        return None
    ok, ids = content.import_deck(Path(deck_path), cards)
    if not ok:
        raise ContentError(f"Could not use deck file {deck_path}")
    return ids


def _journal(args: argparse.Namespace) -> MatchJournal | None:
    if args.journal is None:
        return None
    if args.journal == "":
        return MatchJournal(get_paths().userdata_dir / f"match-{args.seed}.jsonl")
    return MatchJournal(Path(args.journal))


async def _prompt_loop(
    seat: int, get_snapshot: Callable[[], MatchSnapshot], submit: Callable[[Command], Awaitable[object]]
) -> None:
    print(HELP)
    while True:
        line = await asyncio.to_thread(input, "> ")
        line = line.strip()
        if line in ("quit", "exit"):
            return
        if line == "show":
            print(format_snapshot(get_snapshot(), seat))
            continue
        if line == "help":
            print(HELP)
            continue
        cmd = parse_command(line, get_snapshot(), seat)
        if cmd is None:
            print("Unknown command. Type 'help'.")
            continue
        await submit(cmd)


async def _host(args: argparse.Namespace) -> int:
    content, cards = _load()
    deck = _load_deck(content, cards, args.deck)
    net = NetConfig.from_env(host=args.host, port=args.port, player_name=args.name)
    journal = _journal(args)
    seen = [0]

    listener = WebSocketListener(net.host, net.port)
    await listener.start()
    print(f"Waiting for an opponent on {net.url} ...")
    transport = await listener.accept()
    session = HostSession(
        Engine(cards),
        MessageCodec(content, cards),
        transport,
        seed=args.seed,
        deck_ids=deck,
        player_name=net.player_name,
        avatar_id=net.avatar_id,
        journal=journal,
        on_state=lambda s: _print_update(s, seen),
        on_error=lambda e: log.warning("Network: %s", e),
    )
    try:
        await session.start()
        print(format_snapshot(session.snapshot, 0))
        serve = asyncio.create_task(session.run())
        await _prompt_loop(0, lambda: session.snapshot, session.submit)
        serve.cancel()
    finally:
        await session.close()
        await listener.close()
    return 0


async def _join(args: argparse.Namespace) -> int:
    content, cards = _load()
    deck = _load_deck(content, cards, args.deck)
    net = NetConfig.from_env(host=args.host, port=args.port, player_name=args.name)
    seen = [0]
    transport = await connect(net.url)
    session = ClientSession(
        Engine(cards),
        MessageCodec(content, cards),
        transport,
        deck_ids=deck,
        player_name=net.player_name,
        avatar_id=net.avatar_id,
        on_state=lambda s: _print_update(s, seen),
        on_error=lambda e: log.warning("Network: %s", e),
    )
    try:
        await session.join()
        listen = asyncio.create_task(session.run())
        await _prompt_loop(1, lambda: session.snapshot, session.send)
        listen.cancel()
    finally:
        await session.close()
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    cards = content.validate_all()
    print(f"OK: {len(cards.cards)} cards, {len(cards.deck_ids())} collectible.")
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    _, cards = _load()
    commands = MatchJournal(Path(args.journal)).read(cards)
    state = replay(Engine(cards), commands)
    for line in state.log[-args.tail :]:
        print(line)
    print(format_snapshot(state, 0))
    return 0


def cmd_host(args: argparse.Namespace) -> int:
    return asyncio.run(_host(args))


def cmd_join(args: argparse.Namespace) -> int:
    return asyncio.run(_join(args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dialectica", description="Dialectica: a philosopher card game")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("validate", help="Validate the card catalog and message schemas")

    for name, helptext in (("host", "Host a match and wait for one opponent"), ("join", "Join a hosted match")):
        p = sub.add_parser(name, help=helptext)
        p.add_argument("--host", help="Address to bind or connect to (env DIALECTICA_HOST)")
        p.add_argument("--port", type=int, help="Port (env DIALECTICA_PORT)")
        p.add_argument("--name", help="Player name (env DIALECTICA_NAME)")
        p.add_argument("--deck", help='Deck file of the form {"cardIds": [...]}')
        if name == "host":
            p.add_argument("--seed", type=int, default=0, help="Match seed")
            p.add_argument(
                "--journal",
                nargs="?",
                const="",
                help="Append applied commands to this JSONL file (default: userdata/match-<seed>.jsonl)",
            )

    rp = sub.add_parser("replay", help="Rebuild a match from a command journal")
    rp.add_argument("journal", help="Journal written by 'host --journal'")
    rp.add_argument("--tail", type=int, default=20, help="Log lines to show")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    commands = {
        "validate": cmd_validate,
        "host": cmd_host,
        "join": cmd_join,
        "replay": cmd_replay,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return handler(args)
    except (ContentError, ConfigError, NetworkError) as e:
        log.error("%s", e)
        return 2
    except KeyboardInterrupt:
        return 130
