"""
Command-Line Interface - Argument Parsing and Entry Point

This module provides the command-line interface for the lircd client. It
handles:
- Command-line argument parsing
- Connection selection (Unix socket, TCP, or a YAML config file)
- Logging setup
- Running one action against the daemon

Usage:
    python -m py2lirc listen
    python -m py2lirc --tcp 192.168.1.20 send TV KEY_POWER
    python -m py2lirc send-long TV KEY_VOLUMEUP 1.5
    python -m py2lirc command LIST
"""

import sys
import argparse
import logging
from dataclasses import replace
from typing import List, Optional

from py2lirc.core.client import LircClient
from py2lirc.core.connection import parse_address
from py2lirc.core.errors import ConfigurationError, LircError
from py2lirc.models.config import ClientConfig, load_config


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments to parse. If None, uses sys.argv[1:]

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="py2lirc",
        description="lircd infrared remote client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s listen
  %(prog)s --tcp 192.168.1.20:8765 send TV KEY_POWER
  %(prog)s send-long TV KEY_VOLUMEUP 1.5
  %(prog)s command VERSION
        """
    )

    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--socket",
        type=str,
        default=None,
        help="lircd Unix socket path (default: /var/run/lirc/lircd)"
    )
    target.add_argument(
        "--tcp",
        type=str,
        default=None,
        metavar="HOST[:PORT]",
        help="Connect to lircd over TCP instead of the Unix socket"
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML configuration file"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: INFO, or the config file's level)"
    )

    actions = parser.add_subparsers(dest="action", required=True)

    actions.add_parser("listen", help="Print button events until interrupted")

    send = actions.add_parser("send", help="Send an IR code once")
    send.add_argument("remote")
    send.add_argument("button")
    send.add_argument("--count", type=int, default=None, help="Repeat count")

    send_long = actions.add_parser("send-long", help="Hold a button for a duration")
    send_long.add_argument("remote")
    send_long.add_argument("button")
    send_long.add_argument("duration", type=float, help="Seconds to hold")

    command = actions.add_parser("command", help="Send a raw command and print the reply")
    command.add_argument("words", nargs="+", help="Command words, e.g. LIST TV")

    return parser.parse_args(args)


def setup_logging(level: str):
    """Configure application logging.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, level.upper(), None)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Merge the config file (if any) with command-line overrides."""
    config = load_config(args.config) if args.config else ClientConfig()

    overrides = {}
    if args.socket:
        overrides.update(socket_path=args.socket, host=None)
    if args.tcp:
        host, port = parse_address(args.tcp)
        overrides.update(host=host, port=port)
    if args.log_level:
        overrides["log_level"] = args.log_level

    if overrides:
        config = replace(config, **overrides)
        valid, errors = config.validate()
        if not valid:
            raise ConfigurationError("Invalid arguments: " + "; ".join(errors))
    return config


def run_action(client: LircClient, args: argparse.Namespace) -> int:
    """Run the selected action. Returns the exit code."""
    if args.action == "listen":
        try:
            for event in client.iter_events():
                print(f"{event.code:016x} {event.repeat:02x} {event.button} {event.remote}",
                      flush=True)
        except KeyboardInterrupt:
            pass
        return 0

    if args.action == "send":
        code = f"{args.remote} {args.button}"
        if args.count is not None:
            code += f" {args.count}"
        client.send(code)
        return 0

    if args.action == "send-long":
        client.send_long(f"{args.remote} {args.button}", args.duration)
        return 0

    reply = client.command(" ".join(args.words))
    for line in reply.data:
        print(line)
    if not reply.success:
        print(f"Error: {reply.command} failed", file=sys.stderr)
        return 1
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 = success, 1 = error)
    """
    parsed_args = parse_args(args)

    try:
        config = build_config(parsed_args)
    except LircError as e:
        print(f"Error: {e.format_user_message()}", file=sys.stderr)
        return 1

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)
    logger.debug(f"Configuration: {config}")

    try:
        with LircClient.from_config(config) as client:
            exit_code = run_action(client, parsed_args)
    except LircError as e:
        logger.error(e.format_log_message())
        print(f"Error: {e.format_user_message()}", file=sys.stderr)
        return 1

    logger.debug(f"Exiting with code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
