"""
Outbound chat request.

One POST per user message, no timeout and no retry: a hung request simply
keeps the caller suspended until it resolves.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import aiohttp

log = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Non-2xx status, network failure or a body that is not JSON."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def build_payload(message: str, session_id: str) -> Dict[str, Any]:
    return {"message": message, "user": {"sessionId": session_id}}


class ChatClient:
    def __init__(self, api_url: str, *, session: Optional[aiohttp.ClientSession] = None):
        self.api_url = api_url
        self._session = session

    async def send(self, message: str, session_id: str) -> Any:
        payload = build_payload(message, session_id)
        log.info(f"CHAT_REQUEST | url={self.api_url} | session={session_id} | chars={len(message)}")
        try:
            if self._session is not None:
                return await self._post(self._session, payload)
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None)) as session:
                return await self._post(session, payload)
        except aiohttp.ClientError as e:
            raise TransportError(f"request to {self.api_url} failed: {e}") from e

    async def _post(self, session: aiohttp.ClientSession, payload: Dict[str, Any]) -> Any:
        async with session.post(
            self.api_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        ) as response:
            body = await response.text()
            if response.status < 200 or response.status >= 300:
                log.warning(f"CHAT_HTTP_ERROR | status={response.status} | body={body[:200]}")
                raise TransportError(f"HTTP error! status: {response.status}", status=response.status)
            try:
                data = json.loads(body)
            except ValueError as e:
                raise TransportError(f"malformed JSON response: {e}", status=response.status) from e
            log.info(f"CHAT_RESPONSE | status={response.status} | size_bytes={len(body)}")
            return data
