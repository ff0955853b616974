"""
Secure Browser Server CLI Entry Point

Starts the MCP stdio server with the governed browser tools.

Usage:
    secure-browser-mcp
    secure-browser-mcp --policy policy.json --log-level DEBUG --verbose
    python -m secure_browser.main --cleanup-interval 30
"""

import argparse
import asyncio
import logging
import sys
from functools import partial
from pathlib import Path
from typing import Optional

from . import __version__
from .browser.controller import BrowserConfig, BrowserController
from .config import VALID_LEVELS, ServerConfig, configure_logging, get_log_level
from .errors import PolicyError, SecurityError
from .governance.audit import create_audit_sink
from .governance.governor import SessionGovernor
from .governance.reaper import ExpiryReaper
from .security.policy import SecurityPolicy, load_policy
from .server import BrowserServer
from .tui.console import print_banner, print_error, print_script_warning
from .vault.cookies import CredentialVault

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Secure browser automation server (MCP over stdio)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    secure-browser-mcp
    secure-browser-mcp --policy policy.json
    secure-browser-mcp --log-level DEBUG --verbose
        """,
    )

    parser.add_argument(
        "--policy", "-p",
        type=Path,
        default=None,
        help="JSON security policy file (overrides SECURITY_POLICY_FILE)",
    )

    parser.add_argument(
        "--log-level",
        choices=sorted(VALID_LEVELS),
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Detailed log format with timestamps",
    )

    parser.add_argument(
        "--cleanup-interval",
        type=float,
        default=None,
        help="Seconds between expiry sweeps (default: CLEANUP_INTERVAL or 60)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def build_governor(config: ServerConfig, policy: SecurityPolicy) -> SessionGovernor:
    """
    Wire the governor from configuration.

    Raises:
        SecurityError: a cookie encryption key is set but too short
    """
    vault = None
    if config.cookie_encryption_key:
        vault = CredentialVault(config.cookie_storage_dir, config.cookie_encryption_key)
    else:
        logger.warning("COOKIE_ENCRYPTION_KEY not set: cookie persistence is disabled")

    browser_config = BrowserConfig(
        headless=config.headless,
        viewport_width=config.viewport_width,
        viewport_height=config.viewport_height,
    )

    return SessionGovernor(
        policy=policy,
        vault=vault,
        audit=create_audit_sink(config.audit_log_dir),
        engine_factory=partial(BrowserController.launch, config=browser_config),
        default_headless=config.headless,
    )


async def serve(governor: SessionGovernor, cleanup_interval: float) -> None:
    """Run the stdio server until the client disconnects, then shut down."""
    reaper = ExpiryReaper(governor, interval=cleanup_interval)
    server = BrowserServer(governor)

    reaper.start()
    logger.info("Secure browser server ready on stdio")
    try:
        await server.run()
    finally:
        await reaper.stop()
        outcome = await governor.close_all()
        if outcome["closed"] or outcome["failed"]:
            logger.info(
                f"Shutdown: closed {outcome['closed']} sessions, {outcome['failed']} failed"
            )
        await governor.audit.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = ServerConfig.from_env()
        configure_logging(get_log_level(args.log_level), verbose=args.verbose)
        policy = load_policy(args.policy or config.policy_file)
    except PolicyError as e:
        print_error(e.message)
        return 2

    if args.cleanup_interval is not None:
        if args.cleanup_interval <= 0:
            print_error("--cleanup-interval must be positive")
            return 2
        config.cleanup_interval = args.cleanup_interval

    try:
        governor = build_governor(config, policy)
    except SecurityError as e:
        print_error(e.message)
        return 2

    print_banner(
        __version__,
        policy.summary(),
        cookie_storage=str(config.cookie_storage_dir) if governor.vault else None,
    )
    if policy.allow_javascript_execution:
        print_script_warning()

    try:
        asyncio.run(serve(governor, config.cleanup_interval))
    except KeyboardInterrupt:
        logger.info("Interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
