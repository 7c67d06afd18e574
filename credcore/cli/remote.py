"""HTTP client for the registered-client registry service.

Error responses are mapped back to the credcore error classes by their
``error`` code, so callers branch on the same kinds as the server.
"""

from collections.abc import AsyncIterator
from typing import Any

import httpx

from credcore.core.errors import ERRORS_BY_CODE, CredcoreError, TransportError
from credcore.core.logging import get_logger
from credcore.crypto.assertion import create_client_assertion
from credcore.crypto.idkey import IdentityKey
from credcore.registry.clients import iter_clients
from credcore.registry.types import (
    ClientCursor,
    ClientDraft,
    ClientPage,
    ClientPatch,
    RegisteredClient,
)

log = get_logger(__name__)

HTTP_NOT_IMPLEMENTED = 501
CLIENTS_PATH = "/registered-clients"


def error_from_response(response: httpx.Response) -> CredcoreError:
    """Rebuild the server-side error kind from an error response."""
    code = ""
    message = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = str(body.get("error", ""))
        message = str(body.get("error_description") or body.get("detail") or code)

    error_class = ERRORS_BY_CODE.get(code)
    if error_class is not None and error_class is not TransportError:
        return error_class(message)
    if response.status_code == HTTP_NOT_IMPLEMENTED:
        return TransportError(message, unimplemented=True)
    return TransportError(f"HTTP {response.status_code}: {message}")


class RegistryClient:
    """Calls the registry over HTTP with an admin token or a client assertion."""

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        token: str = "",
        audience: str = "",
    ) -> None:
        self._http = http
        self._token = token
        self._audience = audience

    def _admin_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method, path, headers=headers or self._admin_headers(), **kwargs
            )
        except httpx.HTTPError as exc:
            log.warning("registry.unreachable", method=method, path=path)
            raise TransportError(str(exc) or type(exc).__name__) from exc
        if response.is_success:
            return response
        raise error_from_response(response)

    async def create(self, draft: ClientDraft) -> RegisteredClient:
        response = await self._request(
            "POST", CLIENTS_PATH, json=draft.model_dump(mode="json")
        )
        return RegisteredClient.model_validate(response.json())

    async def get(self, client_id: str) -> RegisteredClient:
        response = await self._request("GET", f"{CLIENTS_PATH}/{client_id}")
        return RegisteredClient.model_validate(response.json())

    async def current(self, identity_key: IdentityKey) -> RegisteredClient:
        """Look up the client that owns ``identity_key``."""
        assertion = create_client_assertion(identity_key, self._audience)
        response = await self._request(
            "GET",
            f"{CLIENTS_PATH}/current",
            headers={"Authorization": f"Bearer {assertion}"},
        )
        return RegisteredClient.model_validate(response.json())

    async def list(self, cursor: ClientCursor) -> ClientPage:
        response = await self._request(
            "GET",
            CLIENTS_PATH,
            params={"page": cursor.page, "per_page": cursor.per_page},
        )
        return ClientPage.model_validate(response.json())

    def iter_all(self, per_page: int | None = None) -> AsyncIterator[RegisteredClient]:
        """Every registered client, page by page."""
        return iter_clients(self.list, per_page)

    async def update(self, client_id: str, patch: ClientPatch) -> RegisteredClient:
        response = await self._request(
            "PATCH",
            f"{CLIENTS_PATH}/{client_id}",
            json=patch.model_dump(mode="json", exclude_none=True),
        )
        return RegisteredClient.model_validate(response.json())

    async def delete(self, client_id: str) -> None:
        await self._request("DELETE", f"{CLIENTS_PATH}/{client_id}")
