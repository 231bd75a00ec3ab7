"""
Completion service adapters.
"""

from featureforge.infrastructure.llm.mock import MockCompletionService
from featureforge.infrastructure.llm.openai_client import OpenAICompletionService

__all__ = [
    "MockCompletionService",
    "OpenAICompletionService",
]
