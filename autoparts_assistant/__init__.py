"""Conversational auto-parts assistant: intent, criteria, inventory search and replies."""

from .config import Settings, load_settings
from .orchestrator import ConversationOrchestrator, TurnInProgressError, TurnResult

__all__ = ["ConversationOrchestrator", "Settings", "TurnInProgressError", "TurnResult", "load_settings"]
