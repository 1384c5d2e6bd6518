import base64
import json
import logging
import os
from typing import Optional

import httpx
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from schedule_ai.errors import EmptyTextError, ExternalServiceError

logger = logging.getLogger(__name__)

VISION_URL = os.getenv(
    "GOOGLE_VISION_URL", "https://vision.googleapis.com/v1/images:annotate"
)
VISION_SCOPES = ["https://www.googleapis.com/auth/cloud-vision"]


class VisionTextExtractor:
    """Text detection through the Google Cloud Vision REST API.

    Authenticates with GOOGLE_VISION_API_KEY when set, otherwise with the
    service-account JSON in GOOGLE_CLOUD_CREDENTIALS.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        credentials_json: Optional[str] = None,
        project_id: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("GOOGLE_VISION_API_KEY", "").strip()
        self.credentials_json = (
            credentials_json
            if credentials_json is not None
            else os.getenv("GOOGLE_CLOUD_CREDENTIALS", "").strip()
        )
        self.project_id = project_id or os.getenv("GOOGLE_CLOUD_PROJECT_ID")
        self.transport = transport
        self._credentials = None

    def _auth(self) -> tuple[dict, dict]:
        """Return (headers, query params) for one request."""
        if self.api_key:
            return {}, {"key": self.api_key}

        if not self.credentials_json:
            raise ExternalServiceError(
                "Vision credentials missing: set GOOGLE_VISION_API_KEY or GOOGLE_CLOUD_CREDENTIALS"
            )

        if self._credentials is None:
            info = json.loads(self.credentials_json)
            self._credentials = service_account.Credentials.from_service_account_info(
                info, scopes=VISION_SCOPES
            )
        if not self._credentials.valid:
            self._credentials.refresh(Request())

        headers = {"Authorization": f"Bearer {self._credentials.token}"}
        if self.project_id:
            headers["x-goog-user-project"] = self.project_id
        return headers, {}

    def extract_text(self, image_bytes: bytes) -> str:
        """Return the full text detected in the image."""
        payload = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": [{"type": "TEXT_DETECTION"}],
                }
            ]
        }

        try:
            headers, params = self._auth()
            with httpx.Client(timeout=30.0, transport=self.transport) as client:
                r = client.post(VISION_URL, headers=headers, params=params, json=payload)
                r.raise_for_status()
                data = r.json()
        except ExternalServiceError:
            raise
        except Exception as e:
            logger.error(f"Error extracting text from image: {e}")
            raise ExternalServiceError(f"OCR processing failed: {e}") from e

        responses = data.get("responses") or [{}]
        result = responses[0]
        if "error" in result:
            message = result["error"].get("message", "unknown error")
            raise ExternalServiceError(f"OCR processing failed: {message}")

        annotations = result.get("textAnnotations") or []
        if not annotations:
            raise EmptyTextError("No text detected in the image")

        # The first annotation carries the full text
        full_text = annotations[0].get("description") or ""
        if not full_text.strip():
            raise EmptyTextError("No readable text found in the image")

        return full_text
