"""RemoteResponder — JSON client for the company assistant API.

Every call first runs a connectivity precheck, then makes exactly one
request bounded by a timeout.  Failures never raise; they come back as
``ApiResponse(success=False, ...)`` so callers can fall through to the
next reply source.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx

from concierge.config import settings
from concierge.models import Provenance, ResolvedReply
from concierge.remote.connectivity import check_connectivity

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

NO_CONNECTION = "No internet connection"
NO_CONNECTION_MESSAGE = "Please check your internet connection and try again."


@dataclass
class ApiResponse:
    """Uniform result of a remote call."""

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None

    @classmethod
    def offline(cls) -> ApiResponse:
        return cls(success=False, error=NO_CONNECTION, message=NO_CONNECTION_MESSAGE)


def _error_response(exc: Exception) -> ApiResponse:
    """Map an httpx failure onto an unsuccessful ApiResponse."""
    if isinstance(exc, httpx.HTTPStatusError):
        message = "Server error occurred"
        try:
            body = exc.response.json()
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
        except ValueError:
            pass
        return ApiResponse(
            success=False,
            error=f"Server error: {exc.response.status_code}",
            message=message,
        )
    if isinstance(exc, httpx.RequestError):
        return ApiResponse(
            success=False,
            error="Network error",
            message="Unable to connect to server. Please check your internet connection.",
        )
    return ApiResponse(
        success=False,
        error="Request failed",
        message=str(exc) or "An unexpected error occurred",
    )


def parse_reply_payload(data: Any) -> ResolvedReply | None:
    """Turn a ``/chatbot`` payload into a remote ResolvedReply.

    Returns None when the payload has no usable text.  Confidence is
    clamped to [0, 1].
    """
    if not isinstance(data, dict):
        return None
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0
    if not math.isfinite(confidence):
        confidence = 0.0
    topics = data.get("relatedTopics") or data.get("related_topics") or []
    return ResolvedReply(
        text=text,
        confidence=min(max(confidence, 0.0), 1.0),
        provenance=Provenance.REMOTE,
        related_topics=[str(t) for t in topics] if isinstance(topics, list) else [],
    )


class RemoteResponder:
    """Client for the remote question-answering service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transfer_timeout: float | None = None,
        connectivity: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.remote_timeout_seconds
        self.transfer_timeout = transfer_timeout or settings.remote_transfer_timeout_seconds
        self._connectivity = connectivity

    async def is_connected(self) -> bool:
        if self._connectivity is not None:
            return await self._connectivity()
        return await check_connectivity(self.base_url, settings.connectivity_timeout_seconds)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        timeout: float,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        success_message: str,
    ) -> ApiResponse:
        if not await self.is_connected():
            logger.info("Skipping %s %s: no connectivity", method, path)
            return ApiResponse.offline()

        headers = settings.api_headers()
        if files is not None:
            # httpx sets the multipart boundary itself
            headers.pop("Content-Type", None)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    params=params,
                    json=json,
                    files=files,
                    headers=headers,
                )
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            result = _error_response(exc)
            logger.warning("Remote %s %s failed: %s", method, path, result.error)
            return result

        return ApiResponse(success=True, data=data, message=success_message)

    # -- Endpoints -------------------------------------------------------------

    async def query(self, message: str, context: list[str] | None = None) -> ApiResponse:
        """Ask the remote service for a reply to *message*."""
        return await self._request(
            "POST",
            "/chatbot",
            timeout=self.timeout,
            json={
                "message": message,
                "context": context or [],
                "timestamp": datetime.now(UTC).isoformat(),
            },
            success_message="Response generated successfully",
        )

    async def search(self, query: str, limit: int = 10) -> ApiResponse:
        return await self._request(
            "GET",
            "/search",
            timeout=self.timeout,
            params={"q": query, "limit": limit},
            success_message="Data retrieved successfully",
        )

    async def categories(self) -> ApiResponse:
        return await self._request(
            "GET",
            "/categories",
            timeout=self.timeout,
            success_message="Categories retrieved successfully",
        )

    async def sync(self, since: str | None = None) -> ApiResponse:
        """Fetch knowledge records changed since *since* (ISO 8601)."""
        return await self._request(
            "GET",
            "/sync",
            timeout=self.transfer_timeout,
            params={"since": since} if since else None,
            success_message="Data synchronized successfully",
        )

    async def upload_audio(self, audio_path: str | Path) -> ApiResponse:
        """Upload a WAV recording as multipart form data."""
        path = Path(audio_path)
        try:
            content = path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read audio file %s: %s", path, exc)
            return ApiResponse(success=False, error="Request failed", message=str(exc))
        return await self._request(
            "POST",
            "/audio/upload",
            timeout=self.transfer_timeout,
            files={"audio": ("recording.wav", content, "audio/wav")},
            success_message="Audio uploaded successfully",
        )
