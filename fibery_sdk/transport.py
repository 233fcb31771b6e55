"""
HTTP transport for the Fibery API.

Thin async wrapper over httpx for the endpoints the SDK uses:
- GET  /api/schema              conditional schema fetch (ETag / 304)
- POST /api/commands            entity commands and batches
- POST /api/documents/commands  rich-text document read/write

FiberyTransport implements the SchemaFetcher protocol, so it can be
passed straight to SchemaCache.

Invariants:
    - Every httpx failure (timeouts included) surfaces as TransportError
    - The API token is sent as a header only and never logged
    - A transport closes only the httpx client it created itself

Example:
    >>> async with FiberyTransport("acme", token) as transport:
    ...     cache = SchemaCache(transport)
    ...     schema = await cache.get_schema("acme")
    ...     rows = await transport.execute_command(query)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .cache import FetchResult, NotModified, SchemaPayload
from .config import Settings, get_settings
from .errors import CommandError, TransportError
from .query import batch

logger = logging.getLogger(__name__)


class FiberyTransport:
    """Async client bound to one Fibery workspace.

    Attributes:
        workspace: Workspace name (subdomain)
        base_url: https://{workspace}.{base_domain}
    """

    def __init__(
        self,
        workspace: str,
        token: str,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize transport.

        Args:
            workspace: Workspace name, e.g. "acme" for acme.fibery.io
            token: API token
            settings: SDK settings (default: from environment)
            client: Pre-configured httpx client; not closed by close()
        """
        settings = settings or get_settings()
        self.workspace = workspace
        self.base_url = f"https://{workspace}.{settings.base_domain}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)
        self._headers = {
            "Authorization": f"Token {token}",
            "User-Agent": settings.user_agent,
        }

    async def __aenter__(self) -> FiberyTransport:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/api/{path}"
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                params=params,
                headers={**self._headers, **(headers or {})},
            )
        except httpx.HTTPError as e:
            raise TransportError(
                f"{method} {path} failed for workspace '{self.workspace}': {e}",
                workspace=self.workspace,
            ) from e

        logger.debug("%s %s -> %d", method, path, response.status_code)
        return response

    def _raise_for_status(self, response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        raise TransportError(
            f"{what} failed for workspace '{self.workspace}' with HTTP {response.status_code}",
            workspace=self.workspace,
            status_code=response.status_code,
        )

    def _decode(self, response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"{what} returned an invalid JSON body for workspace '{self.workspace}'",
                workspace=self.workspace,
                status_code=response.status_code,
            ) from e

    async def fetch_raw_schema(self, workspace: str, etag: Optional[str] = None) -> FetchResult:
        """Fetch the workspace schema, conditionally when etag is given.

        Returns:
            NotModified on HTTP 304, else SchemaPayload with the body and ETag

        Raises:
            TransportError: On network failure or unexpected status
        """
        if workspace != self.workspace:
            raise ValueError(
                f"Transport is bound to workspace '{self.workspace}', got '{workspace}'"
            )

        headers = {"If-None-Match": etag} if etag else None
        response = await self._request("GET", "schema", headers=headers)

        if response.status_code == httpx.codes.NOT_MODIFIED:
            return NotModified()

        self._raise_for_status(response, "Schema request")
        return SchemaPayload(
            payload=self._decode(response, "Schema request"),
            etag=response.headers.get("etag"),
        )

    async def execute_command(self, command: Dict[str, Any]) -> Any:
        """Run one command and return its result.

        Raises:
            CommandError: If the backend reports success=false
            TransportError: On network failure or unexpected status
        """
        response = await self._request("POST", "commands", json=command)
        self._raise_for_status(response, f"Command {command.get('command')}")
        body = self._decode(response, f"Command {command.get('command')}")

        if not body.get("success"):
            result = body.get("result")
            message = result.get("message") if isinstance(result, dict) else None
            raise CommandError(
                message or f"Command {command.get('command')} failed",
                workspace=self.workspace,
                result=result,
            )
        return body.get("result")

    async def execute_batch(self, commands: Sequence[Dict[str, Any]]) -> List[Any]:
        """Run commands as one fibery.command/batch."""
        return await self.execute_command(batch(commands))

    async def query_documents(
        self, secrets: Sequence[str], fmt: str = "md"
    ) -> List[Dict[str, str]]:
        """Read document contents by secret. Returns [{secret, content}]."""
        if not secrets:
            return []
        response = await self._request(
            "POST",
            "documents/commands",
            json={"command": "get-documents", "args": [{"secret": s} for s in secrets]},
            params={"format": fmt},
        )
        self._raise_for_status(response, "Document query")
        return self._decode(response, "Document query")

    async def update_documents(
        self, secret_content_pairs: Sequence[Dict[str, str]], fmt: str = "md"
    ) -> None:
        """Create or overwrite document contents by secret."""
        if not secret_content_pairs:
            return
        response = await self._request(
            "POST",
            "documents/commands",
            json={"command": "create-or-update-documents", "args": list(secret_content_pairs)},
            params={"format": fmt},
        )
        self._raise_for_status(response, "Document update")

    def file_url(self, secret: str) -> str:
        """Download URL of a file by its secret."""
        return f"{self.base_url}/api/files/{quote(secret)}"

    def entity_url(self, type_name: str, public_id: str, title: Optional[str] = None) -> str:
        """Browser URL of an entity.

        Example:
            >>> transport.entity_url("Tasks/Task", "42", "Fix login")
            'https://acme.fibery.io/Tasks/Task/Fix-login-42'
        """
        space, _, database = type_name.partition("/")
        slug = re.sub(r"[^\w]+", "-", title or "", flags=re.UNICODE).strip("-")
        tail = f"{slug}-{public_id}" if slug else str(public_id)
        return "/".join(
            [self.base_url, quote(space.replace(" ", "_")), quote(database.replace(" ", "_")), quote(tail)]
        )
