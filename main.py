"""
PhoneSecure command console

Sends commands to the managed phone through the shared chat channel and
prints the conversation as the phone answers.
"""

import argparse
import asyncio
import logging
import signal
import sys

from phonesecure.core import CommandConsole
from phonesecure.models import ServerCommand
from phonesecure.utils.formatting import describe_entry
from phonesecure.utils.logger import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


def print_timeline(entries):
    print("-" * 60)
    if not entries:
        print("No chat data found")
    for entry in entries:
        print(describe_entry(entry))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PhoneSecure command console")
    sub = parser.add_subparsers(dest="action", required=True)

    send = sub.add_parser("send", help="send a command to the phone")
    send.add_argument("command", help="wire value (GetLocation) or label (\"Get Location\")")
    send.add_argument("--watch", action="store_true", help="keep following the conversation")

    sub.add_parser("watch", help="follow the conversation")
    sub.add_parser("commands", help="list available commands")
    return parser


async def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    if args.action == "commands":
        for command in ServerCommand:
            print(f"{command.value:<22} {command.label}")
        return

    console = CommandConsole()

    # Handle shutdown signals
    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        console.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if args.action == "watch" or getattr(args, "watch", False):
            console.add_observer(print_timeline)
        await console.start()

        if args.action == "send":
            key = await console.send(args.command)
            if key is None:
                sys.exit(2)
            print(f"Sent {args.command} as {key}")
            if not args.watch:
                return

        await console.run_forever()
    finally:
        await console.stop()


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Console stopped by user")
    except Exception as e:
        logger.error(f"Console crashed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    cli()
