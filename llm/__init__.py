from .provider import LLMProvider, LLMUnavailableError

__all__ = ["LLMProvider", "LLMUnavailableError"]
