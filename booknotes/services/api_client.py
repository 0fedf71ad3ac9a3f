"""Thin HTTP client for the booknotes REST API.

Attaches the bearer token to every call once ``login`` (or ``register``)
succeeded, and turns non-2xx responses into ``ApiClientError`` carrying the
server's message string.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from booknotes import config as app_config
from booknotes.utils.logging import get_logger

LOG = get_logger("api_client")


class ApiClientError(RuntimeError):
    """Raised when the API answers with an error status or is unreachable."""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, str):
        return data
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return f"HTTP {resp.status_code}"


class BooknotesClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        *,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or app_config.api_url()).rstrip("/")
        self.token = token
        self.timeout = timeout
        self._http = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": "booknotes-client/1.0",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self._http.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            LOG.warning("booknotes API %s %s failed: %s", method, url, exc)
            raise ApiClientError(None, str(exc)) from exc
        if resp.status_code >= 400:
            raise ApiClientError(resp.status_code, _error_message(resp))
        if not resp.content:
            return None
        return resp.json()

    def _remember(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.token = data.get("accessToken") or self.token
        return data

    def register(self, email: str, password: str, first_name: str = "", last_name: str = "") -> Dict[str, Any]:
        body = {"email": email, "password": password, "firstName": first_name, "lastName": last_name}
        return self._remember(self._request("POST", "/register", json=body))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._remember(self._request("POST", "/login", json={"email": email, "password": password}))

    def list_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/users")

    def list_books(self, **filters: Any) -> List[Dict[str, Any]]:
        params = {key: value for key, value in filters.items() if value is not None}
        return self._request("GET", "/books", params=params or None)

    def get_book(self, book_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/books/{int(book_id)}")

    def create_book(self, name: str, collaborators: Optional[List[str]] = None) -> Dict[str, Any]:
        body = {"name": name, "collaborators": list(collaborators or []), "sections": []}
        return self._request("POST", "/books", json=body)

    def update_book(self, book: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/books/{int(book['id'])}", json=book)


__all__ = ["ApiClientError", "BooknotesClient"]
