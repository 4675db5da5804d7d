"""AI client, conversation loop, and tool wiring."""

from .client import AIClient, ClientSettings
from .conversation import conduct_conversation, run_conversation, start_transcript

__all__ = [
    "AIClient",
    "ClientSettings",
    "conduct_conversation",
    "run_conversation",
    "start_transcript",
]
