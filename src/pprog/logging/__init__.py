"""
Conversation logging for pprog.

Provides JSONL logging of conversation events for debugging and analysis.
"""

from pprog.logging.conversation_logger import ConversationLogger

__all__ = ["ConversationLogger"]
