"""
Unit tests for the encrypted cookie vault.

This module contains unit tests for:
- Encryption at rest and authenticated decryption
- Per-domain record layout and owner-only permissions
- Tolerance of tampered or unreadable records
- Master key requirements
"""

import json
import stat

import pytest

from secure_browser.errors import SecurityError, ValidationError
from secure_browser.vault.cookies import (
    CredentialVault,
    DecryptionError,
    domain_filename,
    normalize_domain,
)

SESSION_ID = "session-" + "c" * 32

COOKIES = [
    {
        "name": "sid",
        "value": "s3cr3t-token",
        "domain": ".example.com",
        "path": "/",
        "expires": -1,
        "httpOnly": True,
        "secure": True,
        "sameSite": "Lax",
    },
    {
        "name": "lang",
        "value": "en",
        "domain": "example.com",
        "path": "/",
        "expires": -1,
        "httpOnly": False,
        "secure": False,
        "sameSite": "Lax",
    },
    {
        "name": "theme",
        "value": "dark",
        "domain": "app.example.org",
        "path": "/",
        "expires": 1900000000,
        "httpOnly": False,
        "secure": False,
        "sameSite": "None",
    },
]


@pytest.fixture
def vault(tmp_path, master_key):
    return CredentialVault(tmp_path / "cookies", master_key, scrypt_n=2**10)


class TestMasterKey:
    def test_missing_key(self, tmp_path):
        with pytest.raises(SecurityError, match="COOKIE_ENCRYPTION_KEY"):
            CredentialVault(tmp_path, None)

    def test_short_key(self, tmp_path):
        with pytest.raises(SecurityError, match="at least 32 characters"):
            CredentialVault(tmp_path, "too-short")


class TestSaveAndLoad:
    @pytest.mark.asyncio
    async def test_round_trip(self, vault):
        assert await vault.save(SESSION_ID, COOKIES) == 3

        loaded = await vault.load(SESSION_ID)

        by_name = {c["name"]: c for c in loaded}
        assert by_name["sid"]["value"] == "s3cr3t-token"
        assert by_name["sid"]["httpOnly"] is True
        assert by_name["theme"]["expires"] == 1900000000
        assert all("encryptedValue" not in c for c in loaded)

    @pytest.mark.asyncio
    async def test_values_encrypted_at_rest(self, vault):
        await vault.save(SESSION_ID, COOKIES)

        session_dir = vault.session_dir(SESSION_ID)
        for path in session_dir.iterdir():
            content = path.read_text()
            assert "s3cr3t-token" not in content
            for stored in json.loads(content)["cookies"]:
                assert stored["value"] == ""
                assert set(stored["encryptedValue"]) == {"salt", "nonce", "ciphertext", "tag"}

    @pytest.mark.asyncio
    async def test_grouped_by_normalized_domain(self, vault):
        await vault.save(SESSION_ID, COOKIES)

        files = sorted(p.name for p in vault.session_dir(SESSION_ID).iterdir())
        assert files == ["app.example.org.json", "example.com.json"]

        record = json.loads((vault.session_dir(SESSION_ID) / "example.com.json").read_text())
        assert record["domain"] == "example.com"
        assert len(record["cookies"]) == 2
        assert "lastUpdated" in record

    @pytest.mark.asyncio
    async def test_owner_only_permissions(self, vault):
        await vault.save(SESSION_ID, COOKIES)

        session_dir = vault.session_dir(SESSION_ID)
        assert stat.S_IMODE(session_dir.stat().st_mode) == 0o700
        for path in session_dir.iterdir():
            assert stat.S_IMODE(path.stat().st_mode) == 0o600

    @pytest.mark.asyncio
    async def test_domain_filter(self, vault):
        await vault.save(SESSION_ID, COOKIES)

        loaded = await vault.load(SESSION_ID, domain_filter="EXAMPLE.ORG")

        assert [c["name"] for c in loaded] == ["theme"]

    @pytest.mark.asyncio
    async def test_load_nothing_stored(self, vault):
        assert await vault.load(SESSION_ID) == []

    @pytest.mark.asyncio
    async def test_same_value_encrypts_differently(self, vault):
        """Fresh salt and nonce per value."""
        first = await vault._encrypt("same")
        second = await vault._encrypt("same")
        assert first["ciphertext"] != second["ciphertext"]
        assert first["salt"] != second["salt"]

    @pytest.mark.asyncio
    async def test_invalid_session_id(self, vault):
        with pytest.raises(ValidationError):
            await vault.save("../escape", COOKIES)


class TestTampering:
    @pytest.mark.asyncio
    async def test_tampered_value_skipped(self, vault):
        await vault.save(SESSION_ID, COOKIES)
        path = vault.session_dir(SESSION_ID) / "app.example.org.json"
        record = json.loads(path.read_text())
        ciphertext = record["cookies"][0]["encryptedValue"]["ciphertext"]
        flipped = format(int(ciphertext[:2], 16) ^ 0x01, "02x") + ciphertext[2:]
        record["cookies"][0]["encryptedValue"]["ciphertext"] = flipped
        path.write_text(json.dumps(record))

        failures = []
        loaded = await vault.load(SESSION_ID, on_failure=lambda d, r: failures.append((d, r)))

        assert sorted(c["name"] for c in loaded) == ["lang", "sid"]
        assert failures == [("app.example.org", "authentication failed")]

    @pytest.mark.asyncio
    async def test_unreadable_record_skipped(self, vault):
        await vault.save(SESSION_ID, COOKIES)
        (vault.session_dir(SESSION_ID) / "broken.json").write_text("{not json")

        failures = []
        loaded = await vault.load(SESSION_ID, on_failure=lambda d, r: failures.append((d, r)))

        assert len(loaded) == 3
        assert failures == [("broken", "unreadable record")]

    @pytest.mark.asyncio
    async def test_wrong_master_key(self, vault):
        await vault.save(SESSION_ID, COOKIES)
        other = CredentialVault(vault.storage_dir, "x" * 40, scrypt_n=2**10)

        assert await other.load(SESSION_ID) == []

    @pytest.mark.asyncio
    async def test_malformed_envelope(self, vault):
        with pytest.raises(DecryptionError):
            await vault._decrypt({"salt": "zz"})


class TestRecords:
    @pytest.mark.asyncio
    async def test_clear(self, vault):
        await vault.save(SESSION_ID, COOKIES)

        assert await vault.clear(SESSION_ID) is True
        assert await vault.load(SESSION_ID) == []
        assert await vault.clear(SESSION_ID) is False

    @pytest.mark.asyncio
    async def test_list_records_has_no_values(self, vault):
        await vault.save(SESSION_ID, COOKIES)

        records = await vault.list_records(SESSION_ID)

        assert {r["domain"]: r["cookieCount"] for r in records} == {
            "app.example.org": 1,
            "example.com": 2,
        }
        assert "s3cr3t-token" not in json.dumps(records)
        assert "encryptedValue" not in json.dumps(records)

    @pytest.mark.asyncio
    async def test_list_stored_sessions(self, vault):
        assert vault.list_stored_sessions() == []

        await vault.save(SESSION_ID, COOKIES)
        (vault.storage_dir / "not-a-session").mkdir()

        assert vault.list_stored_sessions() == [SESSION_ID]

    @pytest.mark.asyncio
    async def test_key_cache_bounded(self, tmp_path, master_key):
        vault = CredentialVault(tmp_path, master_key, scrypt_n=2**10, key_cache_size=2)

        for value in ("a", "b", "c", "d"):
            await vault._encrypt(value)

        assert vault.cached_keys == 2


class TestHelpers:
    @pytest.mark.parametrize(
        "domain, expected",
        [(".Example.com", "example.com"), ("sub.example.com", "sub.example.com"), ("", "")],
    )
    def test_normalize_domain(self, domain, expected):
        assert normalize_domain(domain) == expected

    def test_domain_filename(self):
        assert domain_filename("example.com") == "example.com.json"
        assert domain_filename("../etc") == ".._etc.json"
        assert domain_filename("") == "_.json"
