"""
Gemini client that turns free text into shell command suggestions
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

# Structured reply requested from the model
RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "instructions": {
            "type": "array",
            "items": {"type": "string"}
        },
        "message": {"type": "string"},
        "answer_type": {
            "type": "string",
            "enum": ["message", "instructions"]
        }
    },
    "required": ["answer_type"]
}


class AiServiceError(Exception):
    """Raised when the translator cannot produce a usable reply"""
    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


def parse_structured_reply(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Extract and decode the JSON object wrapped in a generateContent reply"""
    try:
        content = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise AiServiceError("Could not extract text content part from Gemini response.") from None

    if not isinstance(content, str):
        raise AiServiceError("Could not extract text content part from Gemini response.")

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        logger.debug(f"Raw content string: {content}")
        raise AiServiceError("Could not decode structured JSON from Gemini response.") from None

    if not isinstance(data, dict) or data.get("answer_type") not in ("message", "instructions"):
        logger.warning(f"Gemini response missing required fields or invalid answer_type: {content}")
        raise AiServiceError("Invalid structured data format from Gemini.")
    return data


class GeminiService:
    """
    Thin wrapper around the Gemini generateContent endpoint.

    The API key must be set (constructor, set_api_key or GEMINI_API_KEY via
    configuration) before generate_structured_content is called.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.0-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None

    def set_api_key(self, key: str) -> None:
        self._api_key = key
        logger.info("Gemini API key has been set")

    def is_api_key_set(self) -> bool:
        return bool(self._api_key)

    async def initialize(self):
        """Create the HTTP session if none was injected"""
        if self.session is None:
            self.session = aiohttp.ClientSession()
            self._owns_session = True

    async def shutdown(self):
        """Cleanup resources"""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def generate_structured_content(self, user_prompt: str, system_instruction: str) -> Dict[str, Any]:
        """
        Send the prompt with the system instruction and return the decoded
        JSON reply (answer_type, instructions, message).
        """
        if not self.is_api_key_set():
            raise AiServiceError("API Key not set. Please call set_api_key first.")
        if self.session is None:
            await self.initialize()

        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [
                {"role": "user", "parts": [{"text": user_prompt}]}
            ],
            "systemInstruction": {
                "parts": [{"text": system_instruction}]
            },
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

        try:
            async with self.session.post(
                url,
                params={"key": self._api_key},
                json=body,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status == 200:
                    payload = await response.json()
                    return parse_structured_reply(payload)

                error = await response.text()
                message = f"Gemini API request failed with status {response.status}"
                try:
                    detail = json.loads(error).get("error", {}).get("message")
                except (json.JSONDecodeError, AttributeError):
                    detail = None
                message += f": {detail}" if detail else f"\nResponse Body: {error}"
                logger.error(message)
                raise AiServiceError(message, status=response.status)
        except asyncio.TimeoutError:
            logger.error("Gemini API request timed out")
            raise AiServiceError("Gemini API request timed out.") from None
        except aiohttp.ClientError as e:
            logger.error(f"Gemini API request failed: {e}")
            raise AiServiceError(f"Gemini API request failed: {e}") from e
