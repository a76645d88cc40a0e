# voice_bridge/core/provider_client.py
"""
Telephony provider (Africa's Talking) client wrapper.

Provides async:
 - place_call(to, callback_url): ask the provider to dial `to` from the virtual number
   and fetch call instructions from `callback_url` once the call starts
 - request_capability_token(client_name): WebRTC capability token for a softphone client

The HTTP calls use `requests` and run in the default executor.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from voice_bridge.config import get_settings
from voice_bridge.utils.logging import mask_number

logger = logging.getLogger("voice-bridge.core.provider")


class ProviderError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def format_phone_number(value: Optional[str]) -> str:
    """Strip whitespace and make sure the number carries a leading '+'."""
    if not value:
        return ""
    p = str(value).strip().replace(" ", "")
    if p and not p.startswith("+"):
        p = "+" + p
    return p


class VoiceProviderClient:
    def __init__(self, settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.timeout = settings.PROVIDER_TIMEOUT_SECONDS
        self._session = session or requests.Session()

    def _require_credentials(self) -> None:
        if not self.settings.AT_API_KEY or not self.settings.AT_USERNAME:
            raise ProviderError("Africa's Talking credentials not configured")

    async def place_call(self, to: str, callback_url: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._blocking_place_call, to, callback_url)

    async def request_capability_token(self, client_name: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._blocking_capability_token, client_name)

    def _blocking_place_call(self, to: str, callback_url: str) -> Dict[str, Any]:
        self._require_credentials()
        if not self.settings.AT_PHONE_NUMBER:
            raise ProviderError("AT_PHONE_NUMBER not configured")
        data = {
            "username": self.settings.AT_USERNAME,
            "to": to,
            "from": format_phone_number(self.settings.AT_PHONE_NUMBER),
            "callStartUrl": callback_url,
        }
        logger.info("Requesting provider call to %s", mask_number(to))
        resp = self._post(
            self.settings.AT_VOICE_URL,
            data=data,
            headers={"ApiKey": self.settings.AT_API_KEY, "Accept": "application/json"},
        )
        return self._decode(resp, "Failed to initiate call")

    def _blocking_capability_token(self, client_name: str) -> Dict[str, Any]:
        self._require_credentials()
        if not self.settings.AT_PHONE_NUMBER:
            raise ProviderError("AT_PHONE_NUMBER not configured")
        body = {
            "username": self.settings.AT_USERNAME,
            "clientName": client_name,
            "phoneNumber": format_phone_number(self.settings.AT_PHONE_NUMBER),
            "incoming": "true",
            "outgoing": "true",
        }
        logger.info("Requesting capability token for %s", client_name)
        resp = self._post(
            self.settings.AT_CAPABILITY_TOKEN_URL,
            json=body,
            headers={"apiKey": self.settings.AT_API_KEY, "Accept": "application/json"},
        )
        return self._decode(resp, "Failed to get capability token")

    def _post(self, url: str, **kwargs) -> requests.Response:
        try:
            return self._session.post(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ProviderError(f"provider request failed: {exc}") from exc

    @staticmethod
    def _decode(resp: requests.Response, failure_message: str) -> Dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError:
            logger.error("Invalid provider response (%s): %s", resp.status_code, resp.text[:500])
            raise ProviderError(f"Invalid response from provider: {resp.text[:200]}", resp.status_code) from None
        if not resp.ok:
            message = payload.get("message") if isinstance(payload, dict) else None
            logger.error("Provider error %s: %s", resp.status_code, payload)
            raise ProviderError(message or failure_message, resp.status_code)
        return payload


# Singleton client instance
_client: Optional[VoiceProviderClient] = None


def get_provider_client() -> VoiceProviderClient:
    """FastAPI dependency returning the shared provider client."""
    global _client
    if _client is None:
        _client = VoiceProviderClient(get_settings())
    return _client
