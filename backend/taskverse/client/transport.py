"""HTTP transport for the client layer.

Every call returns a ``ClientResult``; network errors and failure
envelopes are converted, never raised.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from taskverse.errors import ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class ClientResult:
    ok: bool
    data: Any = None
    activities: list = field(default_factory=list)
    notifications: list = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    details: Any = None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, details: Any = None) -> "ClientResult":
        return cls(ok=False, error_kind=kind, message=message, details=details)

    @property
    def issue(self) -> Optional[dict]:
        """The issue a mutation returned; comment results carry it next to the comment."""
        if not self.ok or not isinstance(self.data, dict):
            return None
        return self.data["issue"] if "comment" in self.data else self.data

    @property
    def comment(self) -> Optional[dict]:
        if not self.ok or not isinstance(self.data, dict):
            return None
        return self.data.get("comment")


def _error_kind(code: Optional[str]) -> ErrorKind:
    try:
        return ErrorKind(code)
    except ValueError:
        return ErrorKind.unknown


class HttpIssueTransport:
    """Talks to the TaskVerse HTTP API through an ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, token: Optional[str] = None):
        self._client = client
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, url: str, **kwargs) -> ClientResult:
        try:
            response = await self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            return ClientResult.failure(ErrorKind.unknown, f"Network error: {exc}")
        try:
            body = response.json()
        except ValueError:
            return ClientResult.failure(ErrorKind.unknown, f"Unreadable response ({response.status_code})")

        if response.is_error or (isinstance(body, dict) and body.get("success") is False):
            body = body if isinstance(body, dict) else {}
            return ClientResult.failure(
                _error_kind(body.get("error_code")),
                body.get("message") or f"Request failed ({response.status_code})",
                body.get("details"),
            )
        if isinstance(body, dict) and "success" in body:
            return ClientResult(
                ok=True,
                data=body.get("data"),
                activities=body.get("activities", []),
                notifications=body.get("notifications", []),
            )
        return ClientResult(ok=True, data=body)

    async def get_project(self, project_id: str) -> ClientResult:
        return await self._request("GET", f"/api/projects/{project_id}")

    async def list_issues(self, project_id: str) -> ClientResult:
        return await self._request("GET", f"/api/projects/{project_id}/issues")

    async def list_members(self, organization_id: str) -> ClientResult:
        return await self._request("GET", f"/api/organizations/{organization_id}/members")

    async def get_issue(self, issue_id: str) -> ClientResult:
        return await self._request("GET", f"/api/issues/{issue_id}")

    async def update_issue(self, issue_id: str, edits: list) -> ClientResult:
        payload = {"edits": [edit.model_dump(mode="json") for edit in edits]}
        return await self._request("PATCH", f"/api/issues/{issue_id}", json=payload)

    async def change_status(self, issue_id: str, status_id: str) -> ClientResult:
        return await self._request("POST", f"/api/issues/{issue_id}/status", json={"status_id": status_id})

    async def create_comment(self, issue_id: str, body: str) -> ClientResult:
        return await self._request("POST", f"/api/issues/{issue_id}/comments", json={"body": body})

    async def get_timeline(self, issue_id: str) -> ClientResult:
        return await self._request("GET", f"/api/issues/{issue_id}/timeline")

    async def list_notifications(self) -> ClientResult:
        return await self._request("GET", "/api/notifications/")

    async def unread_count(self) -> ClientResult:
        return await self._request("GET", "/api/notifications/count")

    async def mark_all_read(self) -> ClientResult:
        return await self._request("POST", "/api/notifications/read")

    async def clear_notifications(self) -> ClientResult:
        return await self._request("DELETE", "/api/notifications/")
