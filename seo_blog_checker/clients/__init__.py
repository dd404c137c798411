from .gemini import GeminiClient
from .wordpress import WordPressClient

__all__ = ["GeminiClient", "WordPressClient"]
