"""
Transcript Store

Append-only, ordered log of turns for one session. Turn n carries
sequence number n (1-based); anything else is rejected.
"""

from typing import Iterator, List
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

USER_AUTHOR = "user"


class SequenceConflict(ValueError):
    """Raised when a turn is appended out of order or twice"""
    pass


class Turn(BaseModel):
    """One immutable message in a session transcript."""

    model_config = ConfigDict(frozen=True)

    author_id: str
    content: str
    sequence_number: int = Field(..., ge=1)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_user(self) -> bool:
        return self.author_id == USER_AUTHOR


class TranscriptStore(BaseModel):
    """
    Ordered turn log owned by a single session.

    Reads return copies of the underlying list so callers can never
    reorder or drop turns.
    """

    turns: List[Turn] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self) -> Iterator[Turn]:  # type: ignore[override]
        return iter(list(self.turns))

    @property
    def next_sequence_number(self) -> int:
        return len(self.turns) + 1

    @property
    def last(self) -> Turn | None:
        return self.turns[-1] if self.turns else None

    def append(self, turn: Turn) -> Turn:
        """
        Append a turn.

        Raises:
            SequenceConflict: if turn.sequence_number is not the next number
        """
        expected = self.next_sequence_number
        if turn.sequence_number != expected:
            raise SequenceConflict(
                f"Expected sequence number {expected}, got {turn.sequence_number}"
            )
        self.turns.append(turn)
        return turn

    def next_turn(self, author_id: str, content: str) -> Turn:
        """Build a correctly numbered turn and append it"""
        return self.append(
            Turn(
                author_id=author_id,
                content=content,
                sequence_number=self.next_sequence_number,
            )
        )

    def window(self, n: int) -> List[Turn]:
        """Last n turns in chronological order (fewer if the log is shorter)"""
        if n <= 0:
            return []
        return list(self.turns[-n:])

    def all(self) -> List[Turn]:
        return list(self.turns)
