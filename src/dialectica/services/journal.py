from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from dialectica.engine.actions import Command
from dialectica.engine.serialize import command_from_dict, command_to_dict
from dialectica.engine.types import CardDatabase

log = logging.getLogger(__name__)


@dataclass
class MatchJournal:
    """Append-only JSONL record of the commands a host applied.

    Folding the recorded commands through ``Engine.apply`` rebuilds the match.
    """

    path: Path

    def record(self, command: Command, seq: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "seq": seq,
            "command": command_to_dict(command),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def read(self, cards: CardDatabase | None = None) -> list[Command]:
        commands: list[Command] = []
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rec = json.loads(line)
                except json.JSONDecodeError:
                    log.warning("Skipping unreadable journal line %d in %s", lineno, self.path)
                    continue
                commands.append(command_from_dict(rec["command"], cards))
        return commands
