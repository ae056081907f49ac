"""
=============================================================================
AUTORESPONDER CLI ENTRY POINT
=============================================================================

    # Answer PING with PONG on port 2323
    python -m autoresponder server --port 2323 --reply PING PONG

    # Rules from a file, greeting after 100 ms
    python -m autoresponder server --rules rules.json --greeting "READY" --delay-ms 100

    # Connect out to a server and answer its prompts
    python -m autoresponder client --host 10.0.0.5 --port 23 --reply "login:" "admin"

Settings not given on the command line fall back to AUTORESPONDER_*
environment variables (see ResponderConfig.from_env), then to defaults.

The process runs until SIGINT/SIGTERM, which call stop() on the responder.

=============================================================================
"""

import argparse
import logging
import signal
import sys

from . import __version__
from .config import EndpointMode, ResponderConfig
from .errors import ResponderError
from .responder import TcpAutoResponder
from .rules import MatchMode, Rule, load_rules


logger = logging.getLogger("autoresponder")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoresponder",
        description="TCP server/client that answers requests with pre-configured replies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m autoresponder server --port 2323 --reply PING PONG
  python -m autoresponder server --rules rules.json --greeting READY
  python -m autoresponder client --host 10.0.0.5 --port 23 --reply login: admin
        """
    )

    parser.add_argument(
        "mode",
        nargs="?",
        choices=[m.value for m in EndpointMode],
        default=None,
        help="Listen for connections (server) or connect out (client)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # ENDPOINT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Bind host (server) or remote host (client)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port (1-65535)")

    # ─────────────────────────────────────────────────────────────────────
    # RULE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--rules", "-r", default=None, help="JSON rules file")
    parser.add_argument(
        "--reply",
        nargs=2,
        action="append",
        default=[],
        metavar=("TRIGGER", "RESPONSE"),
        help="Inline rule; repeatable"
    )
    parser.add_argument(
        "--match-mode",
        choices=[m.value for m in MatchMode],
        default=MatchMode.CONTAINS.value,
        help="Match mode for --reply rules (default: contains)"
    )
    parser.add_argument("--ignore-case", "-i", action="store_true", help="Case-insensitive --reply rules")

    # ─────────────────────────────────────────────────────────────────────
    # SESSION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--greeting", "-g", default=None, help="Message sent when a session starts")
    parser.add_argument("--delay-ms", type=int, default=None, help="Delay before the greeting (default: 5)")
    parser.add_argument("--strict-read", action="store_true", help="End a session on read errors")
    parser.add_argument("--strict-write", action="store_true", help="End a session on write errors")
    parser.add_argument("--close-on-eof", action="store_true", help="End a session when the peer closes")

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )
    parser.add_argument("--version", "-v", action="version", version=f"autoresponder {__version__}")

    return parser


def config_from_args(args: argparse.Namespace) -> ResponderConfig:
    """Overlay command-line arguments on the environment configuration."""
    config = ResponderConfig.from_env()

    if args.mode is not None:
        config.mode = EndpointMode.parse(args.mode)
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.greeting is not None:
        config.greeting = args.greeting
    if args.delay_ms is not None:
        config.startup_delay_ms = args.delay_ms
    if args.strict_read:
        config.ignore_read_errors = False
    if args.strict_write:
        config.ignore_write_errors = False
    if args.close_on_eof:
        config.close_on_eof = True
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def rules_from_args(args: argparse.Namespace) -> list:
    rules = load_rules(args.rules) if args.rules else []
    for trigger, response in args.reply:
        rules.append(Rule(trigger, response, ignore_case=args.ignore_case, mode=args.match_mode))
    return rules


def setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("autoresponder").setLevel(level)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        setup_logging(config.log_level)
        rules = rules_from_args(args)
        if not rules:
            logger.warning("No rules configured; nothing will be answered")
        responder = TcpAutoResponder.from_config(config, rules)
    except ResponderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    def shutdown_handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping...")
        responder.stop()

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    host, port = responder.address
    logger.info(f"Running as {config.mode.value} on {host}:{port} with {len(rules)} rules")

    # Short waits keep the main thread responsive to signals. The loop
    # also ends when the background thread finishes on its own (client
    # session ended, accept loop failed).
    while not responder.wait(timeout=0.5):
        if responder.join(timeout=0):
            break

    responder.stop()
    return 1 if responder.error else 0


if __name__ == "__main__":
    sys.exit(main())
