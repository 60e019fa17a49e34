"""
Conversation core for pprog.

Holds the orchestrator and the policies it applies to the history
(pruning, recovery, tool-id integrity), plus the tool executor and the
system prompt builders. Nothing here knows about the HTTP server or the
terminal; front ends drive a Chat and supply callbacks.
"""

from pprog.core.chat import Chat, ChatState
from pprog.core.message_validators import (
    ConversationIntegrityError,
    find_orphan_tool_results,
    validate_tool_correlation,
)
from pprog.core.project_tree import GitTreeProvider
from pprog.core.prompts import build_system_prompt, system_prompt_provider
from pprog.core.pruning import prune
from pprog.core.recovery import recover, rollback_to_checkpoint
from pprog.core.tokenizer import (
    CharEstimator,
    ClientTokenCounter,
    TiktokenEstimator,
    TokenCounter,
    create_estimator,
)
from pprog.core.tool_executor import ToolExecutionCallbacks, ToolExecutor

__all__ = [
    # Orchestrator
    "Chat",
    "ChatState",
    # Policies
    "prune",
    "recover",
    "rollback_to_checkpoint",
    "ConversationIntegrityError",
    "find_orphan_tool_results",
    "validate_tool_correlation",
    # Token counting
    "TokenCounter",
    "CharEstimator",
    "TiktokenEstimator",
    "ClientTokenCounter",
    "create_estimator",
    # Tools
    "ToolExecutionCallbacks",
    "ToolExecutor",
    # Prompt
    "GitTreeProvider",
    "build_system_prompt",
    "system_prompt_provider",
]
