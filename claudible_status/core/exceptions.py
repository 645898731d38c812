# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Custom exceptions for claudible-status."""


class ClaudibleError(Exception):
    """Base exception for all claudible-status errors."""

    pass


class ConfigurationError(ClaudibleError):
    """Raised when required configuration is missing or invalid."""

    pass


class ClientError(ClaudibleError):
    """Base exception for dashboard API and stream errors."""

    pass


class ServerUnreachableError(ClientError):
    """Raised when the dashboard API cannot be reached."""

    pass


class ServerError(ClientError):
    """Raised when the lookup endpoint answers with a non-2xx status.

    Attributes:
        status_code: HTTP status code returned by the server.
    """

    def __init__(self, status_code: int, message: str | None = None):
        super().__init__(message or f"Server returned status {status_code}.")
        self.status_code = status_code


class EmptyBodyError(ClientError):
    """Raised when a successful lookup response has no body.

    Attributes:
        status_code: HTTP status code returned by the server.
    """

    def __init__(self, status_code: int):
        super().__init__(f"API returned an empty body (status {status_code}).")
        self.status_code = status_code


class DecodingError(ClientError):
    """Raised when a lookup body or stream frame cannot be parsed.

    Attributes:
        details: Description of what failed to decode.
    """

    def __init__(self, details: str):
        super().__init__(f"Could not parse API data: {details}")
        self.details = details


class TransportError(ClientError):
    """Raised when the live stream cannot be opened or read."""

    pass
