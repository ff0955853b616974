"""
Unit tests for input validation.

This module contains unit tests for:
- URL checks (schemes, localhost, internal networks, blocked domains)
- Selector, text, script and attribute checks
- Session id and timeout formats
- Upload, tab and scroll parameters
"""

import pytest

from secure_browser.browser.session import generate_session_id
from secure_browser.errors import SecurityError, ValidationError
from secure_browser.security.policy import SecurityPolicy
from secure_browser.security.validation import (
    DEFAULT_TIMEOUT_MS,
    validate_attribute,
    validate_file_extension,
    validate_script,
    validate_scroll,
    validate_selector,
    validate_session_id,
    validate_tab_index,
    validate_text,
    validate_timeout,
    validate_url,
)


class TestValidateUrl:
    """Navigation target checks."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com",
            "http://example.com/path?q=1#frag",
            "HTTPS://EXAMPLE.COM",
            "https://8.8.8.8/",
            "https://sub.example.co.uk:8443/x",
            "https://1.2.3.4.example.com",
        ],
    )
    def test_public_urls_allowed(self, url):
        """Public http(s) targets pass."""
        validate_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "ftp://example.com",
            "javascript:alert(1)",
            "data:text/html,<h1>x</h1>",
            "chrome://settings",
        ],
    )
    def test_disallowed_schemes_rejected(self, url):
        """Schemes outside the allow-list are a policy violation."""
        with pytest.raises(SecurityError, match="not allowed"):
            validate_url(url)

    @pytest.mark.parametrize(
        "url, reason",
        [
            ("http://127.0.0.1%2e/", "loopback"),
            ("http://%6c%6fcalhost/", "localhost"),
            ("http://\uff11\uff12\uff17.\uff10.\uff10.\uff11/", "loopback"),
            ("http://127\uff0e0\uff0e0\uff0e1/", "loopback"),
            ("http://169.254.169.254%2e/latest/meta-data/", "link-local"),
            ("http://LOCALHOST%2E/", "localhost"),
        ],
    )
    def test_encoded_hosts_normalized(self, url, reason):
        """Hosts are decoded and mapped the way the browser resolves them."""
        with pytest.raises(SecurityError, match=reason):
            validate_url(url)

    def test_full_width_blocked_domain(self):
        policy = SecurityPolicy(blocked_domains=("example.com",))
        with pytest.raises(SecurityError, match="blocked domain"):
            validate_url("https://\uff25\uff38\uff21\uff2d\uff30\uff2c\uff25.com/", policy)

    def test_unicode_domain_allowed(self):
        validate_url("https://b\u00fccher.example/")

    def test_undecodable_host_rejected(self):
        with pytest.raises(ValidationError, match="Invalid URL format"):
            validate_url("http://exa%zzmple.com/")

    def test_file_scheme_rejected(self):
        """Local files are never reachable."""
        with pytest.raises(SecurityError, match="local files"):
            validate_url("file:///etc/passwd")

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost",
            "http://localhost:8080/admin",
            "http://LOCALHOST/",
            "http://api.localhost/",
            "http://localhost./",
        ],
    )
    def test_localhost_rejected(self, url):
        """localhost and its subdomains are blocked."""
        with pytest.raises(SecurityError, match="localhost"):
            validate_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "http://127.0.0.1",
            "http://127.1.2.3:9000/",
            "http://[::1]/",
            "http://[::ffff:127.0.0.1]/",
            "http://2130706433/",
            "http://0x7f000001/",
            "http://0177.0.0.1/",
            "http://127.1/",
        ],
    )
    def test_loopback_forms_rejected(self, url):
        """Every textual form of a loopback address is caught."""
        with pytest.raises(SecurityError, match="loopback"):
            validate_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "http://10.0.0.1",
            "http://172.16.5.4",
            "http://172.31.255.255",
            "http://192.168.1.1",
        ],
    )
    def test_private_networks_rejected(self, url):
        """RFC 1918 ranges are blocked."""
        with pytest.raises(SecurityError, match="private IP addresses"):
            validate_url(url)

    def test_link_local_metadata_rejected(self):
        """Cloud metadata endpoints live in link-local space."""
        with pytest.raises(SecurityError, match="link-local"):
            validate_url("http://169.254.169.254/latest/meta-data/")

    def test_ipv6_private_rejected(self):
        """Unique local and link-local IPv6 ranges are blocked."""
        with pytest.raises(SecurityError):
            validate_url("http://[fd00::1]/")
        with pytest.raises(SecurityError):
            validate_url("http://[fe80::1]/")

    def test_unspecified_address_rejected(self):
        """0.0.0.0 reaches the local host on most systems."""
        with pytest.raises(SecurityError):
            validate_url("http://0.0.0.0/")

    def test_neighbouring_public_ranges_allowed(self):
        """Range checks are numeric, not string prefixes."""
        validate_url("http://172.32.0.1/")
        validate_url("http://11.0.0.1/")
        validate_url("http://192.169.0.1/")

    def test_out_of_range_octet_is_validation_error(self):
        """Dotted quads with an octet above 255 are malformed, not blocked."""
        with pytest.raises(ValidationError, match="Invalid IP address"):
            validate_url("http://256.1.1.1/")

    @pytest.mark.parametrize("url", ["", "   ", "not a url", "/relative/path", None, 42])
    def test_malformed_urls(self, url):
        """Input that is not an absolute URL is a validation error."""
        with pytest.raises(ValidationError):
            validate_url(url)

    def test_blocked_domains(self):
        """Blocked domains match exactly and by subdomain only."""
        policy = SecurityPolicy(blocked_domains=("evil.com",))

        with pytest.raises(SecurityError, match="blocked domain"):
            validate_url("https://evil.com/", policy)
        with pytest.raises(SecurityError, match="blocked domain"):
            validate_url("https://login.evil.com/", policy)

        validate_url("https://notevil.com/", policy)
        validate_url("https://evil.com.example.org/", policy)

    def test_message_does_not_echo_payload(self):
        """Rejections never reflect the submitted URL back."""
        payload = "http://127.0.0.1/<script>alert(1)</script>"
        with pytest.raises(SecurityError) as exc_info:
            validate_url(payload)
        assert "<script>" not in exc_info.value.message
        assert "127.0.0.1" not in exc_info.value.message

    def test_custom_protocol_allow_list(self):
        """Policies may narrow the allowed schemes."""
        policy = SecurityPolicy(allowed_protocols=("https",))
        validate_url("https://example.com", policy)
        with pytest.raises(SecurityError, match="Protocol 'http:' not allowed"):
            validate_url("http://example.com", policy)


class TestValidateSelector:
    """Selector checks."""

    def test_normal_selectors_allowed(self):
        validate_selector("#login > button.primary")
        validate_selector("text=Sign in")
        validate_selector("//div[@id='x']")

    def test_empty_selector_rejected(self):
        with pytest.raises(ValidationError):
            validate_selector("")

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError):
            validate_selector(None)

    def test_too_long_rejected(self):
        """Length ceiling comes from the policy."""
        policy = SecurityPolicy(max_selector_length=10)
        validate_selector("a" * 10, policy)
        with pytest.raises(ValidationError, match="too long"):
            validate_selector("a" * 11, policy)

    @pytest.mark.parametrize(
        "selector",
        ["<script>alert(1)</script>", "a[href='javascript:void(0)']", "<SCRIPT src=x>"],
    )
    def test_script_markers_rejected(self, selector):
        with pytest.raises(SecurityError):
            validate_selector(selector)


class TestValidateText:
    """Typed text checks."""

    def test_empty_text_allowed(self):
        """Clearing a field is legitimate."""
        validate_text("")

    def test_length_limit(self):
        policy = SecurityPolicy(max_text_length=5)
        validate_text("12345", policy)
        with pytest.raises(ValidationError, match="too long"):
            validate_text("123456", policy)

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError):
            validate_text(123)


class TestValidateScript:
    """Script gate."""

    @pytest.fixture
    def enabled(self):
        return SecurityPolicy(allow_javascript_execution=True)

    def test_disabled_by_default(self):
        """Fails closed even for harmless scripts."""
        with pytest.raises(SecurityError, match="disabled by security policy"):
            validate_script("document.title")

    def test_harmless_script_allowed_when_enabled(self, enabled):
        validate_script("document.title", enabled)
        validate_script("() => document.querySelectorAll('a').length", enabled)

    @pytest.mark.parametrize(
        "script",
        [
            "require('fs')",
            "import os from 'os'",
            "eval('1+1')",
            "new Function('return 1')()",
            "setTimeout(() => {}, 10)",
            "setInterval(() => {}, 10)",
            "new XMLHttpRequest()",
            "fetch('https://evil.example')",
            "({}).constructor('x')",
            "obj.__proto__.polluted = 1",
            "process.exit()",
            "child_process",
            "fs.readdirSync('/')",
            "readFile('x')",
            "writeFile('x')",
        ],
    )
    def test_dangerous_patterns_rejected(self, enabled, script):
        with pytest.raises(SecurityError, match="disallowed pattern"):
            validate_script(script, enabled)

    def test_empty_script_rejected(self, enabled):
        with pytest.raises(ValidationError):
            validate_script("", enabled)

    def test_length_limit(self):
        policy = SecurityPolicy(allow_javascript_execution=True, max_script_length=20)
        with pytest.raises(ValidationError, match="too long"):
            validate_script("1;" * 20, policy)


class TestValidateSessionId:
    """Session id format."""

    def test_generated_ids_pass(self):
        for _ in range(20):
            validate_session_id(generate_session_id())

    @pytest.mark.parametrize(
        "session_id",
        [
            "",
            "session-",
            "session-123",
            "session-" + "G" * 32,
            "session-" + "A" * 32,
            "Session-" + "a" * 32,
            "session-" + "a" * 33,
            "../session-" + "a" * 32,
            "session-" + "a" * 31 + "/",
            None,
            12345,
        ],
    )
    def test_malformed_ids_rejected(self, session_id):
        with pytest.raises(ValidationError):
            validate_session_id(session_id)


class TestValidateTimeout:
    """Engine timeout bounds (milliseconds)."""

    def test_default_when_missing(self):
        assert validate_timeout(None) == DEFAULT_TIMEOUT_MS

    def test_bounds_inclusive(self):
        assert validate_timeout(0) == 0
        assert validate_timeout(300_000) == 300_000
        assert validate_timeout(1500.7) == 1500

    @pytest.mark.parametrize("timeout", [-1, 300_001, float("nan"), "1000", True])
    def test_invalid_timeouts(self, timeout):
        with pytest.raises(ValidationError):
            validate_timeout(timeout)


class TestValidateAttribute:
    """Attribute names."""

    @pytest.mark.parametrize("name", ["href", "data-test-id", "aria-label", "x1"])
    def test_valid_names(self, name):
        validate_attribute(name)

    @pytest.mark.parametrize("name", ["", "on click", "href\"", "a_b", "x" * 101])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError):
            validate_attribute(name)


class TestSupplementaryChecks:
    """Upload, tab and scroll parameters."""

    def test_allowed_extension(self):
        validate_file_extension("/tmp/report.PDF")
        validate_file_extension("photo.jpg")

    def test_disallowed_extension(self):
        with pytest.raises(SecurityError, match="extension not allowed"):
            validate_file_extension("/tmp/payload.exe")
        with pytest.raises(SecurityError):
            validate_file_extension("/tmp/no_extension")

    def test_tab_index(self):
        assert validate_tab_index(0) == 0
        with pytest.raises(ValidationError):
            validate_tab_index(-1)
        with pytest.raises(ValidationError):
            validate_tab_index("1")

    def test_scroll(self):
        validate_scroll("down", 500)
        with pytest.raises(ValidationError):
            validate_scroll("sideways", 100)
        with pytest.raises(ValidationError):
            validate_scroll("up", 0)
        with pytest.raises(ValidationError):
            validate_scroll("up", 100_001)
