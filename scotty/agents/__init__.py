"""Local responder package."""

from scotty.agents.responder import LocalChatResponder, LocalInsightGenerator

__all__ = [
    "LocalChatResponder",
    "LocalInsightGenerator",
]
