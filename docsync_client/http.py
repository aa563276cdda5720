from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests


class ApiError(Exception):
    def __init__(self, message: str, *, status: int | None = None, payload: dict[str, Any] | None = None):
        super().__init__(message)
        self.status = status
        self.payload = payload or {}

    @property
    def code(self) -> str:
        return str(self.payload.get("code") or "")

    @property
    def fields(self) -> dict[str, str]:
        return dict(self.payload.get("fields") or {})


class RejectedError(ApiError):
    """400: the server refused the snapshot. Fix the input; retrying as-is is pointless."""


class ConflictError(ApiError):
    """409: someone else saved first. Reload before saving again."""


class NotFoundError(ApiError):
    pass


class RequestCancelled(Exception):
    pass


_STATUS_ERRORS = {400: RejectedError, 404: NotFoundError, 409: ConflictError}


@dataclass
class ApiClient:
    base_url: str
    timeout: float = 15.0
    headers: dict[str, str] = field(default_factory=dict)
    session: requests.Session = field(default_factory=requests.Session)

    def _headers(self) -> dict[str, str]:
        h = {"Accept": "application/json"}
        h.update(self.headers)
        return h

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"

    def _handle(self, r: requests.Response) -> dict[str, Any]:
        if r.status_code >= 400:
            try:
                payload = r.json()
            except ValueError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            message = str(payload.get("message") or r.text or r.reason)
            cls = _STATUS_ERRORS.get(r.status_code, ApiError)
            raise cls(f"{r.status_code}: {message}", status=r.status_code, payload=payload)
        if r.status_code == 204 or not r.content:
            return {}
        try:
            return r.json()
        except ValueError as exc:
            raise ApiError(f"{r.status_code}: response is not JSON", status=r.status_code) from exc

    def request(self, method: str, path: str, json_data: dict[str, Any] | None = None, timeout: float | None = None) -> dict[str, Any]:
        try:
            r = self.session.request(
                method,
                self._url(path),
                json=json_data,
                headers=self._headers(),
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc
        return self._handle(r)

    def get(self, path: str, timeout: float | None = None) -> dict[str, Any]:
        return self.request("GET", path, timeout=timeout)

    def post(self, path: str, json_data: dict[str, Any] | None = None, timeout: float | None = None) -> dict[str, Any]:
        return self.request("POST", path, json_data or {}, timeout=timeout)

    def put(self, path: str, json_data: dict[str, Any], timeout: float | None = None) -> dict[str, Any]:
        return self.request("PUT", path, json_data, timeout=timeout)

    def delete(self, path: str, timeout: float | None = None) -> dict[str, Any]:
        return self.request("DELETE", path, timeout=timeout)
