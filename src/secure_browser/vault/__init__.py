"""Encrypted cookie persistence."""

from .cookies import CredentialVault, DecryptionError

__all__ = ["CredentialVault", "DecryptionError"]
