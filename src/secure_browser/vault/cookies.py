"""
Encrypted Cookie Vault

Persists per-session, per-domain cookie snapshots with every cookie value
encrypted at rest:

- Key derivation: scrypt over the master secret with a fresh random salt
  per value (derived keys cached by salt, bounded)
- Cipher: AES-256-GCM with a fresh random nonce per value
- Layout: <storage>/<session-id>/<domain>.json, owner-only permissions

Plaintext values leave the vault only through ``load``, which exists to
restore cookies into a live browser context.
"""

import asyncio
import json
import logging
import os
import re
import shutil
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

import aiofiles
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..errors import SecurityError, StorageError
from ..security.validation import SESSION_ID_PATTERN, validate_session_id

logger = logging.getLogger(__name__)

MIN_MASTER_KEY_LENGTH = 32
SALT_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16
KEY_BYTES = 32

# scrypt cost parameters (N, r, p)
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

KEY_CACHE_SIZE = 100

ASSOCIATED_DATA = b"secure-browser-cookie-v1"

# Cookie attributes persisted alongside the encrypted value
COOKIE_FIELDS = ("name", "domain", "path", "expires", "httpOnly", "secure", "sameSite")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")

FailureCallback = Callable[[str, str], None]


class DecryptionError(Exception):
    """A stored value failed authentication or could not be parsed."""


def _owner_only(path: str, flags: int) -> int:
    return os.open(path, flags, 0o600)


def normalize_domain(domain: str) -> str:
    """Strip the leading dot cookies use for subdomain matching."""
    return (domain or "").strip().lower().lstrip(".")


def domain_filename(domain: str) -> str:
    safe = _UNSAFE_FILENAME_CHARS.sub("_", domain) or "_"
    return f"{safe}.json"


class CredentialVault:
    """
    Encrypted, domain-scoped cookie storage.

    Args:
        storage_dir: Root directory; one subdirectory per session id
        master_key: Secret of at least 32 characters
        scrypt_n: scrypt CPU/memory cost (power of two)
        key_cache_size: Maximum number of cached derived keys
    """

    def __init__(
        self,
        storage_dir: Path,
        master_key: Optional[str],
        scrypt_n: int = SCRYPT_N,
        key_cache_size: int = KEY_CACHE_SIZE,
    ):
        if not master_key:
            raise SecurityError(
                "Cookie encryption key is required. "
                "Set the COOKIE_ENCRYPTION_KEY environment variable."
            )
        if len(master_key) < MIN_MASTER_KEY_LENGTH:
            raise SecurityError(
                f"Cookie encryption key must be at least {MIN_MASTER_KEY_LENGTH} characters long"
            )

        self.storage_dir = Path(storage_dir)
        self._master_key = master_key.encode("utf-8")
        self._scrypt_n = scrypt_n
        self._key_cache_size = key_cache_size
        self._key_cache: OrderedDict[bytes, bytes] = OrderedDict()

    # ------------------------------------------------------------------
    # Key derivation and cipher
    # ------------------------------------------------------------------

    def _derive_key_sync(self, salt: bytes) -> bytes:
        kdf = Scrypt(salt=salt, length=KEY_BYTES, n=self._scrypt_n, r=SCRYPT_R, p=SCRYPT_P)
        return kdf.derive(self._master_key)

    async def _derived_key(self, salt: bytes) -> bytes:
        key = self._key_cache.get(salt)
        if key is not None:
            self._key_cache.move_to_end(salt)
            return key

        key = await asyncio.to_thread(self._derive_key_sync, salt)

        self._key_cache[salt] = key
        while len(self._key_cache) > self._key_cache_size:
            self._key_cache.popitem(last=False)
        return key

    @property
    def cached_keys(self) -> int:
        return len(self._key_cache)

    async def _encrypt(self, value: str) -> dict[str, str]:
        salt = os.urandom(SALT_BYTES)
        nonce = os.urandom(NONCE_BYTES)
        key = await self._derived_key(salt)

        sealed = AESGCM(key).encrypt(nonce, value.encode("utf-8"), ASSOCIATED_DATA)

        return {
            "salt": salt.hex(),
            "nonce": nonce.hex(),
            "ciphertext": sealed[:-TAG_BYTES].hex(),
            "tag": sealed[-TAG_BYTES:].hex(),
        }

    async def _decrypt(self, data: Mapping[str, Any]) -> str:
        try:
            salt = bytes.fromhex(data["salt"])
            nonce = bytes.fromhex(data["nonce"])
            sealed = bytes.fromhex(data["ciphertext"]) + bytes.fromhex(data["tag"])
        except (KeyError, TypeError, ValueError):
            raise DecryptionError("malformed encrypted value") from None

        if len(nonce) != NONCE_BYTES:
            raise DecryptionError("malformed encrypted value")

        key = await self._derived_key(salt)
        try:
            plaintext = AESGCM(key).decrypt(nonce, sealed, ASSOCIATED_DATA)
        except InvalidTag:
            raise DecryptionError("authentication failed") from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError("value is not valid UTF-8") from None

    # ------------------------------------------------------------------
    # Storage layout
    # ------------------------------------------------------------------

    def _ensure_dir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)
        os.chmod(path, 0o700)

    def session_dir(self, session_id: str) -> Path:
        # Ids are validated before they become path components
        validate_session_id(session_id)
        return self.storage_dir / session_id

    async def _write_record(self, path: Path, record: dict[str, Any]) -> None:
        async with aiofiles.open(path, "w", encoding="utf-8", opener=_owner_only) as f:
            await f.write(json.dumps(record, indent=2))
        os.chmod(path, 0o600)

    async def _read_record(self, path: Path) -> dict[str, Any]:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
        record = json.loads(content)
        if (
            not isinstance(record, dict)
            or not isinstance(record.get("domain"), str)
            or not isinstance(record.get("cookies"), list)
        ):
            raise ValueError("unexpected record layout")
        return record

    def _record_files(self, session_dir: Path) -> list[Path]:
        try:
            return sorted(p for p in session_dir.iterdir() if p.suffix == ".json")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError("Cookie storage is unavailable") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def save(self, session_id: str, cookies: Iterable[Mapping[str, Any]]) -> int:
        """
        Encrypt and persist cookies, one record per normalized domain.

        Args:
            session_id: Owning session
            cookies: Playwright cookie dicts (name, value, domain, path, ...)

        Returns:
            Number of cookies written

        Raises:
            StorageError: the storage directory or a record could not be written
        """
        session_dir = self.session_dir(session_id)

        grouped: dict[str, list[dict[str, Any]]] = {}
        for cookie in cookies:
            stored = {key: cookie[key] for key in COOKIE_FIELDS if key in cookie}
            if cookie.get("value"):
                stored["encryptedValue"] = await self._encrypt(cookie["value"])
            stored["value"] = ""
            grouped.setdefault(normalize_domain(cookie.get("domain", "")), []).append(stored)

        last_updated = datetime.now(timezone.utc).isoformat()

        try:
            self._ensure_dir(self.storage_dir)
            self._ensure_dir(session_dir)
            for domain, stored_cookies in grouped.items():
                record = {
                    "domain": domain,
                    "cookies": stored_cookies,
                    "lastUpdated": last_updated,
                }
                await self._write_record(session_dir / domain_filename(domain), record)
        except OSError as e:
            raise StorageError("Failed to save cookies") from e

        count = sum(len(c) for c in grouped.values())
        logger.debug(f"Saved {count} cookies for {session_id} across {len(grouped)} domains")
        return count

    async def load(
        self,
        session_id: str,
        domain_filter: Optional[str] = None,
        on_failure: Optional[FailureCallback] = None,
    ) -> list[dict[str, Any]]:
        """
        Read and decrypt stored cookies.

        Unreadable records and values that fail authentication are skipped
        and reported through ``on_failure(domain, reason)``.

        Args:
            session_id: Owning session
            domain_filter: Only domains containing this substring

        Returns:
            Playwright cookie dicts with plaintext values
        """
        session_dir = self.session_dir(session_id)
        needle = domain_filter.lower() if domain_filter else None
        cookies: list[dict[str, Any]] = []

        for path in self._record_files(session_dir):
            try:
                record = await self._read_record(path)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable cookie record {path.name}: {e}")
                if on_failure:
                    on_failure(path.stem, "unreadable record")
                continue

            domain = record["domain"]
            if needle and needle not in domain.lower():
                continue

            for stored in record["cookies"]:
                if not isinstance(stored, dict):
                    continue
                cookie = {k: v for k, v in stored.items() if k != "encryptedValue"}
                encrypted = stored.get("encryptedValue")
                if encrypted:
                    try:
                        cookie["value"] = await self._decrypt(encrypted)
                    except DecryptionError as e:
                        logger.warning(
                            f"Skipping cookie '{stored.get('name', '?')}' for {domain}: {e}"
                        )
                        if on_failure:
                            on_failure(domain, str(e))
                        continue
                cookies.append(cookie)

        return cookies

    async def clear(self, session_id: str) -> bool:
        """
        Remove every stored record of a session.

        Returns:
            False if nothing was stored (not an error)
        """
        session_dir = self.session_dir(session_id)
        try:
            await asyncio.to_thread(shutil.rmtree, session_dir)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("Failed to clear cookies") from e
        return True

    async def list_records(self, session_id: str) -> list[dict[str, Any]]:
        """
        Describe stored records for display. Values are never included.
        """
        summaries = []
        for path in self._record_files(self.session_dir(session_id)):
            try:
                record = await self._read_record(path)
            except (OSError, ValueError):
                logger.warning(f"Skipping unreadable cookie record {path.name}")
                continue
            names = [c.get("name") for c in record["cookies"] if isinstance(c, dict)]
            summaries.append(
                {
                    "domain": record["domain"],
                    "cookieCount": len(names),
                    "names": names,
                    "lastUpdated": record.get("lastUpdated"),
                }
            )
        return summaries

    def list_stored_sessions(self) -> list[str]:
        """Session ids that have stored records."""
        try:
            entries = list(self.storage_dir.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError("Cookie storage is unavailable") from e
        return sorted(
            p.name for p in entries if p.is_dir() and SESSION_ID_PATTERN.match(p.name)
        )
