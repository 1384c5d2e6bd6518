from __future__ import annotations
import base64
import os
from typing import Optional

import httpx
from .base import LLMProvider

class OllamaProvider(LLMProvider):
    def __init__(self):
        self.model = os.getenv("OLLAMA_MODEL", "llama3.2-vision").strip()
        self.base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()

    def generate(self, *, system: str, user: str, image: Optional[bytes] = None) -> str:
        url = f"{self.base_url}/api/chat"
        user_message = {"role": "user", "content": user}
        if image:
            user_message["images"] = [base64.b64encode(image).decode("ascii")]

        payload = {
            "model": self.model,
            "stream": False,
            "format": "json",
            "messages": [
                {"role": "system", "content": system},
                user_message,
            ],
            "options": {"temperature": 0.1},
        }

        with httpx.Client(timeout=120.0) as client:
            r = client.post(url, json=payload)
            r.raise_for_status()
            data = r.json()

        return data["message"]["content"]
