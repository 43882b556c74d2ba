"""
Ordered, deduplicated record of the turns of one conversation
"""

from typing import List, Tuple, Union

import structlog

from speaking_practice.domain.models import ConversationRole, Turn

logger = structlog.get_logger(__name__)


def flatten_turns(turns) -> str:
    """Render turns as `ROLE: content` blocks separated by blank lines"""
    return "\n\n".join(f"{turn.role.value.upper()}: {turn.content}" for turn in turns)


class TranscriptAccumulator:
    """Append-only transcript for the active session.

    A turn is rejected when it repeats the immediately preceding accepted turn
    (same role, same content). Once sealed, every append is dropped.
    """

    def __init__(self):
        self._turns: List[Turn] = []
        self._sealed = False

    def append(self, role: Union[ConversationRole, str], content: str) -> bool:
        """Append a turn; returns False when the turn was not accepted"""
        if self._sealed:
            logger.info("Dropping turn after transcript was sealed", role=str(role))
            return False

        role = ConversationRole(role)
        content = (content or "").strip()
        if not content:
            return False

        if self._turns:
            last = self._turns[-1]
            if last.role == role and last.content == content:
                logger.debug("Duplicate turn ignored", role=role.value)
                return False

        self._turns.append(Turn(role=role, content=content))
        return True

    def seal(self):
        """Stop accepting turns"""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def snapshot(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def flatten(self) -> str:
        return flatten_turns(self.snapshot())

    def __len__(self):
        return len(self._turns)
