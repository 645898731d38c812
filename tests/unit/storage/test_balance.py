# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Tests for FileBalanceCache."""
from decimal import Decimal
from pathlib import Path

import pytest

from claudible_status.storage.balance import FileBalanceCache


@pytest.fixture
def cache(tmp_path: Path) -> FileBalanceCache:
    return FileBalanceCache(tmp_path / "balance.json")


def test_empty_cache_returns_none(cache):
    assert cache.get_balance() is None


def test_set_and_get_preserves_precision(cache):
    cache.set_balance(Decimal("95.10"))
    assert cache.get_balance() == Decimal("95.10")
    assert str(cache.get_balance()) == "95.10"


def test_clear(cache):
    cache.set_balance(Decimal("1"))
    cache.clear_balance()
    cache.clear_balance()
    assert cache.get_balance() is None


@pytest.mark.parametrize("content", ["garbage", "{}", '{"balance": "abc"}', '{"balance": null}'])
def test_corrupt_cache_returns_none(cache, content):
    cache.path.write_text(content)
    assert cache.get_balance() is None


def test_write_failure_is_ignored(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    cache = FileBalanceCache(blocker / "balance.json")

    cache.set_balance(Decimal("5"))

    assert cache.get_balance() is None
