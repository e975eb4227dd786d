"""Day.ai action source - implements ActionSource via Day.ai's MCP endpoint.

Talks JSON-RPC 2.0 ("tools/call") to https://day.ai/api/mcp with an OAuth
access token obtained from a long-lived refresh token. All Day.ai-specific
logic lives here; core modules depend on the ActionSource protocol.

Fetching is best-effort per category: a failed status query is logged and
skipped, and the rest of the refresh carries on with partial data.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from triage.core.dates import to_iso
from triage.core.ingest import RawAction, parse_actions, parse_meeting_context, parse_meetings
from triage.data.models import Meeting, MeetingContext
from triage.ports.action_source import ActionSourceError

logger = logging.getLogger(__name__)

ACTION_STATUSES = ("UNREAD", "READ", "IN_PROGRESS")
ACTION_LIMIT = 100
MEETING_LIMIT = 50
_TOKEN_EXPIRY_BUFFER_SECONDS = 60
_DEFAULT_TOKEN_TTL_SECONDS = 3300


class DayAiActionSource:
    """ActionSource backed by the Day.ai MCP API."""

    def __init__(
        self,
        client_id: str | None = None,
        refresh_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        from triage.config import settings

        self._client_id = client_id if client_id is not None else settings.DAYAI_CLIENT_ID
        self._refresh_token = (
            refresh_token if refresh_token is not None else settings.DAYAI_REFRESH_TOKEN
        )
        base = (base_url or settings.DAYAI_BASE_URL).rstrip("/")
        self._mcp_url = f"{base}/api/mcp"
        self._token_url = f"{base}/api/oauth"
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS

        self._access_token: str | None = None
        self._token_expires_at = 0.0
        self._request_id = 0

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        """Return a cached access token, refreshing it shortly before expiry."""
        if self._access_token and self._token_expires_at > time.monotonic() + _TOKEN_EXPIRY_BUFFER_SECONDS:
            return self._access_token

        if not self._client_id or not self._refresh_token:
            raise ActionSourceError(
                "DAYAI_CLIENT_ID and DAYAI_REFRESH_TOKEN must be set to fetch actions"
            )

        try:
            resp = await client.post(
                self._token_url,
                data={
                    "grant_type": "refresh_token",
                    "client_id": self._client_id,
                    "refresh_token": self._refresh_token,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ActionSourceError(
                f"Day.ai token refresh failed ({exc.response.status_code}): {exc.response.text}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ActionSourceError(f"Day.ai token refresh failed: {exc}") from exc

        token = data.get("access_token")
        if not token:
            raise ActionSourceError("Day.ai token response had no access_token")

        self._access_token = token
        self._token_expires_at = time.monotonic() + float(
            data.get("expires_in") or _DEFAULT_TOKEN_TTL_SECONDS
        )
        logger.debug("Refreshed Day.ai access token")
        return token

    async def _call_tool(
        self, client: httpx.AsyncClient, tool_name: str, arguments: dict[str, Any],
    ) -> Any:
        """Invoke an MCP tool and return its decoded JSON payload (or None)."""
        token = await self._get_access_token(client)
        self._request_id += 1

        try:
            resp = await client.post(
                self._mcp_url,
                headers={"Authorization": f"Bearer {token}"},
                json={
                    "jsonrpc": "2.0",
                    "id": self._request_id,
                    "method": "tools/call",
                    "params": {"name": tool_name, "arguments": arguments},
                },
            )
            resp.raise_for_status()
            rpc = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ActionSourceError(
                f"Day.ai MCP call {tool_name} failed ({exc.response.status_code})"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ActionSourceError(f"Day.ai MCP call {tool_name} failed: {exc}") from exc

        if not isinstance(rpc, dict):
            raise ActionSourceError(f"Day.ai MCP call {tool_name} returned a non-object reply")

        error = rpc.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ActionSourceError(f"Day.ai MCP error: {message}")

        result = rpc.get("result") or {}
        content = result.get("content") if isinstance(result, dict) else None
        if not content:
            return None
        if not isinstance(content, list) or not isinstance(content[0], dict):
            raise ActionSourceError(f"Day.ai MCP call {tool_name} returned malformed content")

        text = content[0].get("text")
        if not text:
            return None
        try:
            return json.loads(text)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ActionSourceError(f"Day.ai MCP call {tool_name} returned non-JSON text") from exc

    @staticmethod
    def _results(payload: Any, object_type: str) -> list[dict]:
        if not isinstance(payload, dict):
            return []
        section = payload.get(object_type) or {}
        results = section.get("results") if isinstance(section, dict) else None
        return results if isinstance(results, list) else []

    # ------------------------------------------------------------------
    # ActionSource
    # ------------------------------------------------------------------

    async def fetch_actions(self, lookback_days: int) -> list[RawAction]:
        """Fetch open actions for every status; failed statuses are skipped.

        Credential problems raise ActionSourceError since no status could
        succeed.
        """
        since = to_iso(datetime.now(timezone.utc) - timedelta(days=lookback_days))
        records: list[dict] = []

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            await self._get_access_token(client)

            for status in ACTION_STATUSES:
                try:
                    payload = await self._call_tool(client, "search_objects", {
                        "queries": [{
                            "objectType": "native_action",
                            "timeframeStart": since,
                            "filter": {
                                "propertyFilters": [
                                    {"property": "status", "operator": "eq", "value": status},
                                ],
                            },
                            "includeRelationships": True,
                            "limit": ACTION_LIMIT,
                        }],
                    })
                except ActionSourceError as exc:
                    logger.error("Day.ai fetch failed for status %s: %s", status, exc)
                    continue

                batch = self._results(payload, "native_action")
                for record in batch:
                    if isinstance(record, dict):
                        record.setdefault("status", status)
                records.extend(r for r in batch if isinstance(r, dict))
                logger.info("Fetched %d %s actions", len(batch), status)

        return parse_actions(records)

    async def fetch_meetings(self, lookback_days: int) -> list[Meeting]:
        """Fetch meeting recordings in the window; [] on failure."""
        since = to_iso(datetime.now(timezone.utc) - timedelta(days=lookback_days))
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                payload = await self._call_tool(client, "search_objects", {
                    "queries": [{
                        "objectType": "native_meetingrecording",
                        "timeframeStart": since,
                        "includeRelationships": True,
                        "limit": MEETING_LIMIT,
                    }],
                })
        except ActionSourceError as exc:
            logger.error("Day.ai meeting fetch failed: %s", exc)
            return []

        meetings = parse_meetings(self._results(payload, "native_meetingrecording"))
        logger.info("Fetched %d meetings", len(meetings))
        return meetings

    async def fetch_meeting_context(self, meeting_id: str) -> MeetingContext | None:
        """Fetch and parse one meeting's context; None if unavailable."""
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                payload = await self._call_tool(client, "get_meeting_recording_context", {
                    "meetingRecordingId": meeting_id,
                })
        except ActionSourceError as exc:
            logger.error("Day.ai meeting context fetch failed for %s: %s", meeting_id, exc)
            return None

        if not isinstance(payload, dict):
            return None

        return parse_meeting_context(
            meeting_id,
            str(payload.get("contextString") or ""),
            fetched_at=to_iso(datetime.now(timezone.utc)),
        )
