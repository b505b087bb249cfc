"""
Memory Module for the screenshot solver
Keeps the conversation of the current question for debug follow-ups.
"""

from .conversation_store import ConversationStore

__all__ = [
    "ConversationStore"
]
