"""
rfp_portal/client.py

HTTP client for the portal JSON API.

PortalClient implements the same DraftStore and SubmissionGateway contracts as
the in-process services, so a StepFormController can run in a separate process
and talk to the portal over HTTP:

    client = PortalClient("https://rfp.example.com")
    actor = client.login("vendor@example.com", "secret")
    wizard = StepFormController(actor, client, client).open_create()

Error mapping:
- structured error responses are re-raised as the matching PortalError subclass
  (NotFound, InvalidTransition, ValidationFailed, ...)
- network failures on draft calls raise DraftStoreUnavailable
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from .content import Content, PartialContent
from .drafts import DraftSnapshot, DraftStore
from .errors import DraftStoreUnavailable, PortalError, error_from_payload
from .security import Actor
from .submissions import SubmissionGateway, SubmissionRecord

logger = logging.getLogger(__name__)


class PortalClient(DraftStore, SubmissionGateway):
    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    # -----------------------------------------------------------------
    # Transport
    # -----------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        response = self.session.request(
            method=method,
            url=f"{self.base_url}{path}",
            timeout=self.timeout,
            **kwargs,
        )
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400 or payload.get("success") is False:
            raise error_from_payload(payload or {}, response.status_code)
        return payload

    def _draft_request(self, method: str, **kwargs) -> Dict[str, Any]:
        try:
            return self._request(method, "/api/drafts", **kwargs)
        except requests.RequestException as exc:
            logger.warning("Draft %s request failed: %s", method, exc)
            raise DraftStoreUnavailable("Draft service unreachable", details=str(exc)) from exc

    def _api_request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            return self._request(method, path, **kwargs)
        except requests.RequestException as exc:
            raise PortalError("Portal unreachable", details=str(exc)) from exc

    # -----------------------------------------------------------------
    # Session
    # -----------------------------------------------------------------
    def login(self, email: str, password: str) -> Actor:
        payload = self._api_request("POST", "/auth/login", json={"email": email, "password": password})
        user = payload.get("user") or {}
        return Actor(
            user_id=user.get("id"),
            vendor_id=user.get("vendor_id"),
            is_admin=bool(user.get("is_admin")),
            label=user.get("email"),
        )

    def logout(self) -> None:
        self._api_request("POST", "/auth/logout")

    # -----------------------------------------------------------------
    # DraftStore (the server scopes drafts to the logged-in vendor)
    # -----------------------------------------------------------------
    def load(self, vendor_id: int) -> Optional[DraftSnapshot]:
        payload = self._draft_request("GET")
        if payload.get("draft") is None:
            return None
        return DraftSnapshot(
            vendor_id=vendor_id,
            content=PartialContent.model_validate(payload["draft"]),
            last_saved_at=_parse_time(payload.get("last_saved")),
        )

    def save(self, vendor_id: int, content: PartialContent) -> DraftSnapshot:
        payload = self._draft_request("PUT", json={"draft": content.to_payload()})
        return DraftSnapshot(
            vendor_id=vendor_id,
            content=content.model_copy(deep=True),
            last_saved_at=_parse_time(payload.get("last_saved")),
        )

    def delete(self, vendor_id: int) -> bool:
        payload = self._draft_request("DELETE")
        return bool(payload.get("deleted"))

    # -----------------------------------------------------------------
    # SubmissionGateway
    # -----------------------------------------------------------------
    def fetch(self, actor: Actor, submission_id: int) -> SubmissionRecord:
        payload = self._api_request("GET", f"/api/submissions/{submission_id}")
        return SubmissionRecord.from_dict(payload["submission"])

    def create(self, actor: Actor, content: Content) -> SubmissionRecord:
        payload = self._api_request("POST", "/api/submissions", json={"content": content.to_payload()})
        return SubmissionRecord.from_dict(payload["submission"])

    def update(self, actor: Actor, submission_id: int, content: Content) -> SubmissionRecord:
        payload = self._api_request(
            "PUT", f"/api/submissions/{submission_id}", json={"content": content.to_payload()}
        )
        return SubmissionRecord.from_dict(payload["submission"])

    def list_submissions(self) -> List[Dict[str, Any]]:
        return self._api_request("GET", "/api/submissions").get("submissions", [])

    # -----------------------------------------------------------------
    # Admin
    # -----------------------------------------------------------------
    def list_all(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"status": status} if status else None
        return self._api_request("GET", "/api/admin/submissions", params=params).get("submissions", [])

    def apply_action(self, submission_id: int, action: str, notes: Optional[str] = None) -> Dict[str, Any]:
        payload = self._api_request(
            "POST",
            "/api/admin/submission-action",
            json={"submissionId": submission_id, "action": action, "notes": notes},
        )
        return payload["submission"]


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None
