"""
Remote identity provider.

Talks to a GoTrue-style auth service (``/auth/v1/*``) and keeps the access
token in the session file so that the rest backend can authenticate its
requests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from concurso.auth.provider import IdentityProvider
from concurso.core.errors import AuthenticationError, ValidationError
from concurso.core.models import User
from concurso.store.mapping import parse_timestamp


class RestIdentityProvider(IdentityProvider):
    """E-mail / password identity backed by the remote auth endpoints."""

    def __init__(
        self,
        base_url: str,
        session_path: Path,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        super().__init__(session_path)
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        self.client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )
        self._access_token: str | None = None

    @property
    def access_token(self) -> str | None:
        return self._access_token

    async def close(self) -> None:
        await self.client.aclose()

    # =========================================================================
    # Account operations
    # =========================================================================

    async def sign_up(self, email: str, password: str, name: str) -> User:
        """Create an account and sign in with it."""
        email, password = _require_credentials(email, password)
        payload = {
            "email": email,
            "password": password,
            "data": {"name": name.strip() or email.split("@")[0]},
        }
        data = await self._post("/auth/v1/signup", payload)
        if not data.get("access_token"):
            # Service requires e-mail confirmation before the first sign-in
            raise AuthenticationError("Account created; confirm your e-mail before signing in")
        return await self._accept_session(data)

    async def sign_in(self, email: str, password: str) -> User:
        """Exchange e-mail and password for an access token."""
        email, password = _require_credentials(email, password)
        data = await self._post(
            "/auth/v1/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        return await self._accept_session(data)

    async def sign_out(self) -> None:
        if self._access_token:
            try:
                await self.client.post(
                    "/auth/v1/logout",
                    headers={"Authorization": f"Bearer {self._access_token}"},
                )
            except httpx.RequestError as e:
                logger.warning(f"Remote sign-out failed, clearing local session anyway: {e}")
        self._access_token = None
        await super().sign_out()

    # =========================================================================
    # Internals
    # =========================================================================

    def _restore_extra(self, data: dict[str, Any]) -> None:
        self._access_token = data.get("access_token")

    async def _post(
        self,
        path: str,
        payload: dict[str, Any],
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.post(path, json=payload, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error(f"Auth request {path} failed: {e.response.status_code} {detail}")
            raise AuthenticationError(detail or "Authentication failed") from e
        except httpx.RequestError as e:
            logger.error(f"Connection error during auth: {e}")
            raise AuthenticationError(f"Could not reach the auth service: {e}") from e
        return response.json()

    async def _accept_session(self, data: dict[str, Any]) -> User:
        user = user_from_auth_payload(data.get("user") or {})
        self._access_token = data.get("access_token")
        self._write_session(user, access_token=self._access_token)
        await self._set_user(user)
        logger.info(f"Signed in as {user.name}")
        return user


def user_from_auth_payload(data: dict[str, Any]) -> User:
    """Build a User from the auth service's user object."""
    user_id = data.get("id")
    if not user_id:
        raise AuthenticationError("Auth service returned no user id")
    email = data.get("email") or ""
    metadata = data.get("user_metadata") or {}
    name = metadata.get("name") or email.split("@")[0] or str(user_id)
    created_at = parse_timestamp(data["created_at"]) if data.get("created_at") else None
    return User(id=str(user_id), name=name, created_at=created_at)


def _require_credentials(email: str, password: str) -> tuple[str, str]:
    email = (email or "").strip()
    if not email or "@" not in email:
        raise ValidationError("A valid e-mail address is required")
    if not password:
        raise ValidationError("Password must not be empty")
    return email, password


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(
            body.get("error_description")
            or body.get("msg")
            or body.get("message")
            or body.get("error")
            or ""
        )
    return str(body)
