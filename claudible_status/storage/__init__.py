"""Local persistence for the API key and last known balance."""
from claudible_status.storage.balance import BalanceCache, FileBalanceCache
from claudible_status.storage.credentials import CredentialVault, FileCredentialVault


__all__ = [
    "BalanceCache",
    "CredentialVault",
    "FileBalanceCache",
    "FileCredentialVault",
]
