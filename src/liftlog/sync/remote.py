"""GitHub gist client for the remote snapshot document.

The whole snapshot lives in one file of one secret gist, found either by
its remembered ID or by its description.

API reference: https://docs.github.com/en/rest/gists/gists
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings, get_settings
from ..db.repositories import LocalStateRepository
from .errors import AuthError, NotFoundError, TransientError, ValidationError

logger = logging.getLogger("liftlog.sync.remote")


@dataclass
class RemoteDocument:
    """A fetched or written remote document.

    Attributes:
        document_id: Gist ID.
        payload:     Parsed snapshot JSON, or None if the gist has no data file.
        updated_at:  Gist ``updated_at`` timestamp as returned by the API.
    """

    document_id: str
    payload: dict | None = None
    updated_at: str | None = None


class GistClient:
    """Fetch and upsert the snapshot gist.

    Without a stored token every operation is a no-op. Only one upsert runs
    at a time; concurrent callers are dropped rather than queued, since the
    outbox retries them.
    """

    def __init__(
        self,
        state: LocalStateRepository,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            state:       Local state holding the token and remembered gist ID.
            settings:    Application settings (defaults to ``get_settings()``).
            http_client: Optional pre-configured httpx client (for testing).
        """
        self._state = state
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._upsert_in_flight = False

    # ------------------------------------------------------------------
    # Credentials and remembered document
    # ------------------------------------------------------------------

    async def get_token(self) -> str | None:
        return await self._state.get(LocalStateRepository.AUTH_TOKEN)

    async def is_authenticated(self) -> bool:
        return bool(await self.get_token())

    async def set_token(self, token: str) -> None:
        """Store the user's access token."""
        await self._state.set(LocalStateRepository.AUTH_TOKEN, token.strip())

    async def get_document_id(self) -> str | None:
        return await self._state.get(LocalStateRepository.REMOTE_DOCUMENT_ID)

    async def _remember_document(self, document_id: str) -> None:
        await self._state.set(LocalStateRepository.REMOTE_DOCUMENT_ID, document_id)

    async def forget_document(self) -> None:
        """Drop the remembered gist ID (the next fetch searches by description)."""
        await self._state.delete(LocalStateRepository.REMOTE_DOCUMENT_ID)

    async def logout(self) -> None:
        """Forget the token and the remembered gist ID."""
        await self._state.delete(LocalStateRepository.AUTH_TOKEN)
        await self.forget_document()

    @property
    def upsert_in_flight(self) -> bool:
        return self._upsert_in_flight

    # ------------------------------------------------------------------
    # Document operations
    # ------------------------------------------------------------------

    async def fetch_remote_document(self) -> RemoteDocument | None:
        """Fetch the snapshot document.

        Tries the remembered ID first; if that gist is gone, forgets it and
        searches the gist listing by description.

        Returns:
            The document, or None when no remote document exists yet

        Raises:
            AuthError: On 401/403
            TransientError: On network failures and other HTTP errors
            ValidationError: If the data file is not valid JSON
        """
        token = await self.get_token()
        if not token:
            return None

        document_id = await self.get_document_id()
        if document_id:
            try:
                gist = await self._request("GET", f"/gists/{document_id}", token)
                return await self._to_document(gist, token)
            except NotFoundError:
                logger.info("Remembered gist %s not found, searching by description", document_id)
                await self.forget_document()

        gist = await self._find_by_description(token)
        if gist is None:
            logger.info("No remote document found")
            return None

        # Listing responses omit file contents
        try:
            full = await self._request("GET", f"/gists/{gist['id']}", token)
        except NotFoundError:
            logger.info("Gist %s disappeared after listing", gist["id"])
            return None
        await self._remember_document(gist["id"])
        return await self._to_document(full, token)

    async def upsert_remote_document(self, payload: dict) -> RemoteDocument | None:
        """Create the gist on first use, update it afterwards.

        Returns:
            The written document, or None if skipped (no token, or another
            upsert already in flight)
        """
        token = await self.get_token()
        if not token:
            return None

        if self._upsert_in_flight:
            logger.debug("Upsert already in flight, skipping")
            return None

        self._upsert_in_flight = True
        try:
            body = {
                "description": self._settings.document_description,
                "files": {
                    self._settings.document_filename: {
                        "content": json.dumps(payload, indent=2),
                    }
                },
            }

            document_id = await self.get_document_id()
            if document_id:
                gist = await self._request("PATCH", f"/gists/{document_id}", token, json_body=body)
            else:
                body["public"] = False
                gist = await self._request("POST", "/gists", token, json_body=body)
                await self._remember_document(gist["id"])
                logger.info("Created remote document %s", gist["id"])

            return RemoteDocument(
                document_id=gist["id"],
                payload=payload,
                updated_at=gist.get("updated_at"),
            )
        finally:
            self._upsert_in_flight = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _find_by_description(self, token: str) -> dict | None:
        """Search the user's gists for the snapshot description."""
        description = self._settings.document_description
        for page in range(1, self._settings.listing_max_pages + 1):
            gists = await self._request(
                "GET",
                "/gists",
                token,
                params={"per_page": self._settings.listing_page_size, "page": page},
            )
            if not gists:
                return None
            for gist in gists:
                if gist.get("description") == description:
                    return gist
            if len(gists) < self._settings.listing_page_size:
                return None
        return None

    async def _to_document(self, gist: dict, token: str) -> RemoteDocument:
        """Extract and parse the data file of a gist."""
        file = (gist.get("files") or {}).get(self._settings.document_filename)
        if not file:
            return RemoteDocument(document_id=gist["id"], updated_at=gist.get("updated_at"))

        content = file.get("content")
        # Large files are truncated in the API response
        if file.get("truncated") or content is None:
            content = await self._request_raw(file["raw_url"], token)

        try:
            payload = json.loads(content)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValidationError(f"Remote document is not valid JSON: {e}") from e

        return RemoteDocument(
            document_id=gist["id"],
            payload=payload,
            updated_at=gist.get("updated_at"),
        )

    def _build_headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, turning transport failures into TransientError."""
        try:
            if self._http_client:
                return await self._http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self._settings.request_timeout_seconds) as client:
                return await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransientError(f"Network error: {e}") from e

    def _check_status(self, response: httpx.Response, method: str, path: str) -> None:
        """Classify non-2xx responses."""
        if response.is_success:
            return

        status = response.status_code
        try:
            message = response.json().get("message", response.reason_phrase)
        except (ValueError, AttributeError):
            message = response.reason_phrase

        if status in (401, 403):
            raise AuthError(f"GitHub rejected the token ({status}): {message}", status)
        if status == 404 and method == "GET" and path.startswith("/gists/"):
            raise NotFoundError(path)
        raise TransientError(f"GitHub API error {status} on {method} {path}: {message}", status)

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> Any:
        """Make an authenticated request to the GitHub API.

        Returns:
            Decoded JSON response
        """
        url = f"{self._settings.api_base_url.rstrip('/')}{path}"
        response = await self._send(
            method,
            url,
            params=params,
            json=json_body,
            headers=self._build_headers(token),
        )
        self._check_status(response, method, path)
        try:
            return response.json()
        except ValueError as e:
            raise TransientError(f"Invalid JSON from GitHub on {method} {path}") from e

    async def _request_raw(self, url: str, token: str) -> str:
        """Download the raw content of a truncated gist file."""
        response = await self._send("GET", url, headers=self._build_headers(token))
        self._check_status(response, "GET", url)
        return response.text
