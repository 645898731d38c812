# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""REST client for the dashboard lookup endpoint."""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from loguru import logger
from pydantic import ValidationError

from claudible_status.client.models import LookupRequest, Snapshot
from claudible_status.core.exceptions import (
    DecodingError,
    EmptyBodyError,
    ServerError,
    ServerUnreachableError,
)
from claudible_status.core.utils import mask_credential


class DashboardClient:
    """HTTP client for the dashboard lookup API.

    Performs one request/response exchange per call. There is no retry at
    this layer; callers decide what to do with a failure.

    Example:
        >>> client = DashboardClient()
        >>> snapshot = await client.fetch_snapshot("sk-...")
        >>> snapshot.balance
        Decimal('95.5')
    """

    def __init__(
        self,
        lookup_url: str = "https://claudible.io/dashboard/lookup",
        timeout: float = 30.0,
        connect_timeout: float = 5.0,
    ):
        """Initialize API client.

        Args:
            lookup_url: Full URL of the lookup endpoint.
            timeout: Overall request timeout in seconds.
            connect_timeout: Connect timeout in seconds.
        """
        self.lookup_url = lookup_url
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Context manager for HTTP client with connection error handling.

        Yields:
            Configured httpx.AsyncClient instance.

        Raises:
            ServerUnreachableError: If the server cannot be reached or times out.
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                yield client
        except httpx.TransportError as e:
            raise ServerUnreachableError(
                f"Cannot connect to dashboard API at {self.lookup_url}: {e}"
            ) from e

    async def fetch_snapshot(self, credential: str) -> Snapshot:
        """Fetch the full dashboard snapshot for a credential.

        Args:
            credential: API key identifying the account.

        Returns:
            Decoded Snapshot.

        Raises:
            ServerError: If the status code is outside [200, 300).
            EmptyBodyError: If a successful response has no body.
            DecodingError: If the body does not match the snapshot schema.
            ServerUnreachableError: If the server cannot be reached.
        """
        request = LookupRequest(key=credential)

        async with self._http_client() as client:
            response = await client.post(
                self.lookup_url,
                json=request.model_dump(by_alias=True),
            )

        if not 200 <= response.status_code < 300:
            logger.warning(
                "Dashboard lookup failed",
                status_code=response.status_code,
                credential=mask_credential(credential),
            )
            raise ServerError(response.status_code)

        if not response.content:
            raise EmptyBodyError(response.status_code)

        try:
            snapshot = Snapshot.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodingError(str(e)) from e

        logger.debug(
            "Dashboard snapshot fetched",
            balance=str(snapshot.balance),
            usage_records=len(snapshot.usage),
        )
        return snapshot
