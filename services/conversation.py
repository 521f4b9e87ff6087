from typing import List, Tuple

import config
from schemas import ChatTurn, Role


class ConversationState:
    """Append-only transcript for one location screen.

    The first turn is always the system instruction; the full sequence is exactly
    what gets sent to the chat provider.
    """

    def __init__(self, system_prompt: str = config.SYSTEM_PROMPT):
        self._turns: List[ChatTurn] = [ChatTurn(role="system", content=system_prompt)]

    def append(self, role: Role, content: str) -> ChatTurn:
        turn = ChatTurn(role=role, content=content)
        self._turns.append(turn)
        return turn

    @property
    def turns(self) -> Tuple[ChatTurn, ...]:
        return tuple(self._turns)

    def visible_turns(self) -> List[ChatTurn]:
        """Turns shown in the chat view (everything but the system instruction)."""
        return [turn for turn in self._turns if turn.role != "system"]

    def __len__(self) -> int:
        return len(self._turns)
