"""Append-only log of the messages exchanged during a survey."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple


class Speaker(str, Enum):
    """Who produced a transcript line."""

    BOT = "bot"
    USER = "user"


@dataclass(frozen=True, slots=True)
class TranscriptEntry:
    """A single displayed message."""

    speaker: Speaker
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"speaker": self.speaker.value, "text": self.text}


def _empty_entries() -> List[TranscriptEntry]:
    return []


@dataclass(slots=True)
class TranscriptLog:
    """Ordered record of the conversation; insertion order is display order."""

    _entries: List[TranscriptEntry] = field(default_factory=_empty_entries)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def append(self, speaker: Speaker, text: str) -> int:
        """Add a line and return the new transcript length."""

        self._entries.append(TranscriptEntry(speaker=Speaker(speaker), text=text))
        return len(self._entries)

    def read_all(self) -> Tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "entries": [entry.to_dict() for entry in self._entries],
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(tuple(self._entries))
