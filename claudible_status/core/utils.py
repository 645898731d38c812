# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""Core utility functions for claudible-status."""


def normalize_credential(credential: str | None) -> str:
    """Strip surrounding whitespace from a credential.

    Args:
        credential: Raw credential text, possibly None.

    Returns:
        The trimmed credential. Empty string means "no credential".
    """
    return (credential or "").strip()


def mask_credential(credential: str, visible: int = 4) -> str:
    """Mask a credential for log output.

    Example:
        >>> mask_credential("sk-abcdef123456")
        'sk-a…3456'
    """
    if len(credential) <= visible * 2:
        return "…" if credential else ""
    return f"{credential[:visible]}…{credential[-visible:]}"
