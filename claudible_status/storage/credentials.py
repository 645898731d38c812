# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""API key storage."""
import json
import os
from pathlib import Path
from typing import Protocol

from loguru import logger

from claudible_status.core.utils import normalize_credential


class CredentialVault(Protocol):
    """Secure key-value storage for a single API key."""

    def load(self) -> str:
        """Return the stored key, or "" when none is stored."""
        ...

    def save(self, value: str) -> bool:
        """Store a key. Saving an empty key deletes it."""
        ...

    def delete(self) -> bool:
        """Remove the stored key. Succeeds when nothing is stored."""
        ...


class FileCredentialVault:
    """Stores the API key in a JSON file readable only by the owner.

    Attributes:
        path: Location of the key file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> str:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ""
        except (OSError, ValueError) as e:
            logger.warning("Could not read stored API key", path=str(self.path), error=str(e))
            return ""

        if not isinstance(data, dict):
            return ""
        value = data.get("api_key", "")
        return value if isinstance(value, str) else ""

    def save(self, value: str) -> bool:
        trimmed = normalize_credential(value)
        if not trimmed:
            return self.delete()

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"api_key": trimmed}, f)
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.error("Could not store API key", path=str(self.path), error=str(e))
            return False
        return True

    def delete(self) -> bool:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Could not delete API key", path=str(self.path), error=str(e))
            return False
        return True
