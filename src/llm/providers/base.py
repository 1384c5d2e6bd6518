from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

class LLMProvider(ABC):
    @abstractmethod
    def generate(self, *, system: str, user: str, image: Optional[bytes] = None) -> str:
        """
        Must return the model output as TEXT (JSON is parsed/validated by LLMClient).

        ``image`` is optional raw image bytes sent alongside the prompt for
        multimodal context; providers without vision support may ignore it.
        """
        raise NotImplementedError
