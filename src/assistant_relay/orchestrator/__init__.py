"""Conversation turn orchestration over the Assistants API."""

from .orchestrator import NO_REPLY, ConversationTurnOrchestrator, extract_reply
from .polling import RunPoller, RunState, state_for_status

__all__ = [
    "NO_REPLY",
    "ConversationTurnOrchestrator",
    "RunPoller",
    "RunState",
    "extract_reply",
    "state_for_status",
]
