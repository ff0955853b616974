"""
Unit tests for the command line entry point and operator console.
"""

import io
import logging

import pytest
from rich.console import Console

from secure_browser.config import ServerConfig, get_log_level
from secure_browser.errors import SecurityError
from secure_browser.governance.audit import LoggingAuditSink, MultiAuditSink
from secure_browser.main import build_governor, main, parse_args
from secure_browser.security.policy import SecurityPolicy
from secure_browser.tui.console import print_banner, print_script_warning
from secure_browser.vault.cookies import CredentialVault


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert args.policy is None
        assert args.log_level is None
        assert args.verbose is False
        assert args.cleanup_interval is None

    def test_values(self):
        args = parse_args(["--policy", "p.json", "--log-level", "DEBUG", "-v", "--cleanup-interval", "5"])
        assert str(args.policy) == "p.json"
        assert args.log_level == "DEBUG"
        assert args.verbose is True
        assert args.cleanup_interval == 5.0


class TestBuildGovernor:
    def test_without_key_cookie_storage_disabled(self, tmp_path):
        config = ServerConfig(cookie_storage_dir=tmp_path)
        governor = build_governor(config, SecurityPolicy())

        assert governor.vault is None
        assert isinstance(governor.audit, LoggingAuditSink)

    def test_with_key_and_audit_dir(self, tmp_path, master_key):
        config = ServerConfig(
            cookie_storage_dir=tmp_path / "cookies",
            cookie_encryption_key=master_key,
            audit_log_dir=tmp_path / "audit",
            headless=False,
        )
        governor = build_governor(config, SecurityPolicy())

        assert isinstance(governor.vault, CredentialVault)
        assert isinstance(governor.audit, MultiAuditSink)
        assert governor.default_headless is False

    def test_short_key_rejected(self, tmp_path):
        config = ServerConfig(cookie_storage_dir=tmp_path, cookie_encryption_key="short")
        with pytest.raises(SecurityError):
            build_governor(config, SecurityPolicy())


class TestMain:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("secure_browser.main.configure_logging", lambda *a, **k: None)
        for name in ("MAX_SESSIONS", "COOKIE_ENCRYPTION_KEY", "SECURITY_POLICY_FILE", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    def test_invalid_policy_exits_2(self, monkeypatch):
        monkeypatch.setenv("MAX_SESSIONS", "500")
        assert main([]) == 2

    def test_short_encryption_key_exits_2(self, monkeypatch):
        monkeypatch.setenv("COOKIE_ENCRYPTION_KEY", "short")
        assert main([]) == 2

    def test_non_positive_cleanup_interval_exits_2(self):
        assert main(["--cleanup-interval", "0"]) == 2


class TestConsole:
    def test_banner_lists_policy(self):
        output = io.StringIO()
        console = Console(file=output, width=120)

        print_banner("1.0.0", SecurityPolicy().summary(), console=console)

        text = output.getvalue()
        assert "secure-browser 1.0.0" in text
        assert "disabled (no COOKIE_ENCRYPTION_KEY)" in text

    def test_script_warning(self):
        output = io.StringIO()
        print_script_warning(console=Console(file=output, width=120))
        assert "JavaScript execution is ENABLED" in output.getvalue()


@pytest.mark.parametrize(
    "value, expected",
    [("debug", logging.DEBUG), ("ERROR", logging.ERROR), ("nonsense", logging.INFO)],
)
def test_get_log_level(value, expected):
    assert get_log_level(value) == expected
