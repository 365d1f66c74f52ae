"""Core command console - wires the log port, dispatcher and projector together"""

import asyncio
import logging
from typing import List, Optional

from .. import config
from ..models.message import ServerCommand
from ..services.dispatcher import CommandDispatcher, InvalidCommandError
from ..services.log_port import InMemoryLogPort, LogPort
from ..services.projector import ConversationEntry, ConversationProjector, Observer

logger = logging.getLogger(__name__)


def create_log_port(simulate: bool = None) -> LogPort:
    """Firebase in production, in-memory when SIMULATE_BACKEND is set"""
    simulate = config.SIMULATE_BACKEND if simulate is None else simulate
    if simulate:
        logger.info("Using in-memory log port (simulation mode)")
        return InMemoryLogPort()

    from ..services.firebase_service import FirebaseLogPort
    port = FirebaseLogPort()
    port.connect()
    return port


class CommandConsole:
    """Operator console bound to the managed phone's chat channel"""

    def __init__(self, log_port: LogPort = None, channel: str = None):
        logger.info("Initializing PhoneSecure console...")

        self.channel = channel or config.CHAT_CHANNEL
        self.log_port = log_port if log_port is not None else create_log_port()
        self.dispatcher = CommandDispatcher(self.log_port, self.channel)
        self.projector = ConversationProjector(self.log_port, self.channel)
        self.timeline: List[ConversationEntry] = []
        self.projector.add_observer(self._remember)

        self.running = False
        logger.info(f"Console initialized (channel: {self.channel})")

    def _remember(self, entries: List[ConversationEntry]):
        self.timeline = entries

    def add_observer(self, observer: Observer):
        self.projector.add_observer(observer)

    async def start(self):
        """Reconcile stale pending commands, then start following the channel"""
        try:
            logger.info("Starting PhoneSecure console...")
            promoted = await self.dispatcher.reconcile_pending()
            if promoted:
                logger.info(f"Reconciled {len(promoted)} pending command(s)")
            await self.projector.start()
            self.running = True
            logger.info("Console started")
        except Exception as e:
            logger.error(f"Error starting console: {e}", exc_info=True)
            raise

    async def stop(self):
        """Stop following the channel"""
        logger.info("Stopping PhoneSecure console...")
        self.running = False
        self.projector.dispose()
        disconnect = getattr(self.log_port, "disconnect", None)
        if disconnect is not None:
            disconnect()
        logger.info("Console stopped")

    async def send(self, command) -> Optional[str]:
        """Dispatch a command by enum, wire value or menu label.

        An empty or unknown command is logged and ignored; transport failures
        propagate.
        """
        try:
            return await self.dispatcher.dispatch(command)
        except InvalidCommandError as e:
            logger.warning(f"Command not sent: {e}")
            return None

    async def run_forever(self):
        while self.running:
            await asyncio.sleep(1)

    @staticmethod
    def menu() -> List[ServerCommand]:
        return list(ServerCommand)
