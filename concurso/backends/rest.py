"""
Remote REST backend.

Talks to a PostgREST-compatible service (``/rest/v1/<table>``). Writes send
``Prefer: return=representation`` so the service answers with the canonical
row, which becomes the record the store applies.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from concurso.backends.base import Record
from concurso.core.errors import BackendError, RecordNotFoundError

TokenProvider = Callable[[], str | None]

FOLDERS = "/rest/v1/folders"
QUESTIONS = "/rest/v1/questions"
RETURN_REPRESENTATION = {"Prefer": "return=representation"}


class RestBackend:
    """HTTP client for the remote folder/question tables."""

    name = "rest"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        token_provider: TokenProvider | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the REST backend.

        Args:
            base_url: Service root, e.g. ``http://127.0.0.1:54321``
            api_key: Project key sent as the ``apikey`` header
            token_provider: Returns the signed-in user's access token
            timeout: Request timeout in seconds (None waits indefinitely)
            client: Preconfigured client (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.token_provider = token_provider
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_folders_by_user(self, user_id: str) -> list[Record]:
        return await self._request(
            "GET",
            FOLDERS,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )

    async def list_questions_by_user(self, user_id: str) -> list[Record]:
        return await self._request(
            "GET",
            QUESTIONS,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": "created_at.desc"},
        )

    # =========================================================================
    # Folders
    # =========================================================================

    async def create_folder(self, fields: Record) -> Record:
        rows = await self._request("POST", FOLDERS, json=fields, headers=RETURN_REPRESENTATION)
        return _single(rows, "folder")

    async def update_folder(self, folder_id: str, fields: Record) -> Record:
        rows = await self._request(
            "PATCH",
            FOLDERS,
            params={"id": f"eq.{folder_id}"},
            json=fields,
            headers=RETURN_REPRESENTATION,
        )
        return _single(rows, "folder", folder_id)

    async def delete_folder(self, folder_id: str) -> None:
        rows = await self._request(
            "DELETE", FOLDERS, params={"id": f"eq.{folder_id}"}, headers=RETURN_REPRESENTATION
        )
        _single(rows, "folder", folder_id)

    # =========================================================================
    # Questions
    # =========================================================================

    async def create_question(self, fields: Record) -> Record:
        rows = await self._request("POST", QUESTIONS, json=fields, headers=RETURN_REPRESENTATION)
        return _single(rows, "question")

    async def update_question(self, question_id: str, fields: Record) -> Record:
        payload = {**fields, "updated_at": datetime.now(timezone.utc).isoformat()}
        rows = await self._request(
            "PATCH",
            QUESTIONS,
            params={"id": f"eq.{question_id}"},
            json=payload,
            headers=RETURN_REPRESENTATION,
        )
        return _single(rows, "question", question_id)

    async def delete_question(self, question_id: str) -> None:
        rows = await self._request(
            "DELETE", QUESTIONS, params={"id": f"eq.{question_id}"}, headers=RETURN_REPRESENTATION
        )
        _single(rows, "question", question_id)

    async def delete_questions_by_folder(self, folder_id: str) -> None:
        await self._request("DELETE", QUESTIONS, params={"folder_id": f"eq.{folder_id}"})

    # =========================================================================
    # Internals
    # =========================================================================

    def _auth_headers(self) -> dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Send one request and decode the JSON body.

        Raises:
            BackendError: On HTTP errors, connection failures and bad bodies
        """
        request_headers = {**self._auth_headers(), **(headers or {})}
        try:
            response = await self.client.request(
                method, path, params=params, json=json, headers=request_headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"{method} {path} failed: {status} {e.response.text}")
            raise BackendError(f"Service answered {status} for {method} {path}") from e
        except httpx.RequestError as e:
            logger.error(f"Connection error on {method} {path}: {e}")
            raise BackendError(f"Could not reach the service: {e}") from e

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Service returned invalid JSON for {method} {path}") from e


def _single(rows: Any, kind: str, record_id: str | None = None) -> Record:
    if isinstance(rows, dict):
        return rows
    if not isinstance(rows, list):
        raise BackendError(f"Unexpected {kind} response: {type(rows).__name__}")
    if not rows:
        if record_id is not None:
            raise RecordNotFoundError(f"No {kind} with id {record_id}")
        raise BackendError(f"Service returned no {kind}")
    return rows[0]
