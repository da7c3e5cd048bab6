from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

from ..schema import Configuration, GenerationRequest, ResponsePart


class ImageEngine(ABC):
    """Abstract base for generative request clients.

    An engine turns a :class:`GenerationRequest` into one remote call and
    returns the response as an ordered list of parts. It performs no
    retries and enforces no timeout of its own.
    """

    model: str

    @abstractmethod
    async def generate(self, req: GenerationRequest) -> list[ResponsePart]:
        raise NotImplementedError


# Builds an engine bound to one configuration snapshot.
EngineFactory = Callable[[Configuration], ImageEngine]
