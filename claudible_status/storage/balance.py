# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Last known balance cache."""
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Protocol

from loguru import logger


class BalanceCache(Protocol):
    """Persists the latest balance so it can be shown without a live client."""

    def set_balance(self, balance: Decimal) -> None: ...

    def clear_balance(self) -> None: ...

    def get_balance(self) -> Decimal | None: ...


class FileBalanceCache:
    """Balance cache backed by a small JSON file.

    Write failures are logged and ignored; the cache is best effort.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def set_balance(self, balance: Decimal) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({"balance": str(balance)}), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not cache balance", path=str(self.path), error=str(e))

    def clear_balance(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not clear cached balance", path=str(self.path), error=str(e))

    def get_balance(self) -> Decimal | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Decimal(data["balance"])
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError, InvalidOperation) as e:
            logger.warning("Ignoring unreadable balance cache", path=str(self.path), error=str(e))
            return None
