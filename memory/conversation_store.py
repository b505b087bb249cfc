"""
Conversation Store
Keeps the latest raw model response and the turn history of the current
question so debug requests can continue the conversation.
"""

from typing import List

from core.types import ConversationTurn


class ConversationStore:
    """
    Append-only turn history for one question and its debug follow-ups.
    Cleared only when a brand-new question starts.
    """

    def __init__(self):
        self._turns: List[ConversationTurn] = []
        self.last_response: str = ""

    def reset(self):
        self._turns = []
        self.last_response = ""

    def record_exchange(self, user_content: str, assistant_content: str):
        """Append a user stimulus and the model reply as two turns."""
        self._turns.append(ConversationTurn(role="user", content=user_content))
        self._turns.append(ConversationTurn(role="assistant", content=assistant_content))
        self.last_response = assistant_content

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    @property
    def has_previous_response(self) -> bool:
        return bool(self.last_response)

    def __len__(self):
        return len(self._turns)
