from .base_engine import ImageEngine
from .gemini import GeminiImageClient

__all__ = ["ImageEngine", "GeminiImageClient"]
