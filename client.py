# client.py
"""Python client for the marketplace API.

Authentication state is an explicit ``AuthSession`` held by the client.
Persisting it is delegated to an injected ``TokenStore`` and happens only at
the login, refresh and logout boundaries.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from listing_query import ListingFilter, filter_listings


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or {}


@dataclass
class AuthSession:
    token: str
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_id(self) -> Optional[int]:
        return self.user.get("id")

    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class TokenStore:
    """Where a session survives between client instances."""

    def load(self) -> Optional[AuthSession]:
        raise NotImplementedError

    def save(self, session: AuthSession) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, session: Optional[AuthSession] = None):
        self._session = session

    def load(self):
        return self._session

    def save(self, session):
        self._session = session

    def clear(self):
        self._session = None


class FileTokenStore(TokenStore):
    """JSON file holding ``{"token": ..., "user": {...}}``."""

    def __init__(self, path: str):
        self.path = path

    def load(self):
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not data.get("token"):
            return None
        return AuthSession(token=data["token"], user=data.get("user") or {})

    def save(self, session):
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump({"token": session.token, "user": session.user}, fh)

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)


class MarketplaceClient:
    def __init__(self, base_url: str, store: Optional[TokenStore] = None, http=None, timeout: float = 25):
        self.base_url = base_url.rstrip("/")
        self.store = store or MemoryTokenStore()
        self.http = http or requests.Session()
        self.timeout = timeout
        self.session: Optional[AuthSession] = self.store.load()

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    def _request(self, method: str, path: str, *, auth: bool = False, json_body=None, params=None):
        headers = {"Accept": "application/json"}
        if auth:
            if self.session is None:
                raise ApiError(401, "Unauthenticated.")
            headers.update(self.session.headers())
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        kwargs = {"headers": headers}
        if json_body is not None:
            kwargs["json"] = json_body
        if params:
            kwargs["params"] = params
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        r = self.http.request(method, f"{self.base_url}{path}", **kwargs)
        try:
            body = r.json() if r.content else None
        except ValueError:
            body = None
        if r.status_code >= 400:
            body = body if isinstance(body, dict) else {}
            raise ApiError(r.status_code, body.get("message") or f"HTTP {r.status_code}", body.get("errors"))
        return body

    def _start_session(self, payload: Dict[str, Any]) -> AuthSession:
        self.session = AuthSession(token=payload["access_token"], user=payload.get("user") or {})
        self.store.save(self.session)
        return self.session

    # Auth
    def register(self, name: str, email: str, password: str, password_confirmation: Optional[str] = None):
        body = {
            "name": name,
            "email": email,
            "password": password,
            "password_confirmation": password if password_confirmation is None else password_confirmation,
        }
        return self._request("POST", "/auth/register", json_body=body)["user"]

    def login(self, email: str, password: str) -> AuthSession:
        payload = self._request("POST", "/auth/login", json_body={"email": email, "password": password})
        return self._start_session(payload)

    def refresh(self) -> AuthSession:
        return self._start_session(self._request("POST", "/auth/refresh", auth=True))

    def logout(self) -> None:
        try:
            self._request("POST", "/auth/logout", auth=True)
        finally:
            # Local state goes even if the server already forgot the token
            self.session = None
            self.store.clear()

    def me(self):
        return self._request("POST", "/auth/me", auth=True)

    # Users
    def get_user(self, user_id: int):
        return self._request("GET", f"/users/{user_id}")

    def get_user_listings(self, user_id: int):
        return self._request("GET", f"/users/{user_id}/listings")

    # Listings
    def list_listings(self):
        return self._request("GET", "/listings")

    def get_listing(self, listing_id: int):
        return self._request("GET", f"/listings/{listing_id}")

    def create_listing(self, **fields):
        return self._request("POST", "/listings", auth=True, json_body=fields)["listing"]

    def update_listing(self, listing_id: int, **changes):
        return self._request("PUT", f"/listings/{listing_id}", auth=True, json_body=changes)["listing"]

    def delete_listing(self, listing_id: int) -> None:
        self._request("DELETE", f"/listings/{listing_id}", auth=True)

    def listings_by_category(self, category: str, exclude: Optional[int] = None, limit: Optional[int] = None):
        return self._request(
            "GET",
            f"/listings/category/{quote(category, safe='')}",
            params={"exclude": exclude, "limit": limit},
        )

    def listings_by_price(self, min_price: float = 0, max_price: Optional[float] = None):
        return self._request("GET", "/listings/price-range", params={"min": min_price, "max": max_price})

    def browse(self, filters: Optional[ListingFilter] = None):
        """Fetch every listing and search/filter/sort them locally."""
        return filter_listings(self.list_listings(), filters)

    # Comments
    def list_comments(self, listing_id: int):
        return self._request("GET", f"/listings/{listing_id}/comments")

    def add_comment(self, listing_id: int, body: str):
        return self._request("POST", f"/listings/{listing_id}/comments", auth=True, json_body={"body": body})["comment"]

    def delete_comment(self, comment_id: int) -> None:
        self._request("DELETE", f"/comments/{comment_id}", auth=True)
