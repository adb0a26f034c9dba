from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from dareon.cognitive.errors import EmptyCommand, UnrecognizedCommand
from dareon.cognitive.intent_catalog import PATTERN_TABLE, Intent, PatternEntry


@dataclass(frozen=True)
class ResolvedCommand:
    intent: Intent
    parameters: Dict[str, str] = field(default_factory=dict)


class CommandResolver:
    """
    Maps free text to the first matching (intent, parameters) of an ordered
    pattern table. Pure: no I/O, no state between calls.
    """

    def __init__(self, table: Sequence[PatternEntry] = PATTERN_TABLE):
        self.table = tuple(table)

    def resolve(self, text: Optional[str]) -> ResolvedCommand:
        if text is None or not text.strip():
            raise EmptyCommand()

        for entry in self.table:
            for pattern in entry.patterns:
                match = pattern.search(text)
                if match:
                    return ResolvedCommand(entry.intent, entry.extract(match))

        raise UnrecognizedCommand()
