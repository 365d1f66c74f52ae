"""Firebase Realtime Database implementation of the Log Port"""

import asyncio
import logging
import os
import threading
from typing import Optional

import firebase_admin
from firebase_admin import credentials, db, exceptions

from .. import config
from .log_port import ChangeCallback, Record, Snapshot, TransportError, Unsubscribe

logger = logging.getLogger(__name__)

# Errors the Admin SDK surfaces for unreachable or rejecting backends
BACKEND_ERRORS = (exceptions.FirebaseError, OSError)


class FirebaseLogPort:
    """Chat channel storage backed by the Realtime Database"""

    def __init__(self, credentials_path: str = None, database_url: str = None):
        self.credentials_path = credentials_path or config.FIREBASE_CREDENTIALS_PATH
        self.database_url = database_url or config.FIREBASE_DATABASE_URL
        self.app: Optional[firebase_admin.App] = None
        self.connected = False

        logger.info(f"Firebase log port initialized (database: {self.database_url})")

    def connect(self):
        """Initialize Firebase connection"""
        try:
            if not firebase_admin._apps:
                cred_path = self.credentials_path

                logger.info(f"Loading Firebase credentials from: {cred_path}")

                if not os.path.exists(cred_path):
                    if not os.path.isabs(cred_path):
                        abs_path = os.path.expanduser(f"~/{cred_path}")
                        if os.path.exists(abs_path):
                            cred_path = abs_path
                        else:
                            raise FileNotFoundError(f"Firebase credentials not found at {cred_path} or {abs_path}")
                    else:
                        raise FileNotFoundError(f"Firebase credentials not found at {cred_path}")

                if not os.access(cred_path, os.R_OK):
                    raise PermissionError(f"No read permission for Firebase credentials at {cred_path}")

                cred = credentials.Certificate(cred_path)
                firebase_admin.initialize_app(cred, {
                    'databaseURL': self.database_url
                })

            self.app = firebase_admin.get_app()
            self.connected = True

            logger.info("Connected to Firebase successfully")

        except Exception as e:
            logger.error(f"Failed to connect to Firebase: {e}", exc_info=True)
            raise

    def disconnect(self):
        """Disconnect from Firebase"""
        if self.connected:
            self.connected = False
            logger.info("Disconnected from Firebase")

    def _reference(self, channel: str):
        if not self.connected:
            raise TransportError("Firebase not connected", operation="reference")
        return db.reference(channel, app=self.app)

    async def _run(self, operation: str, func, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, *args)
        except BACKEND_ERRORS as e:
            logger.error(f"Firebase {operation} failed: {e}")
            raise TransportError(f"{operation} failed: {e}", operation=operation) from e

    # -- blocking SDK calls ----------------------------------------------------

    def _append_sync(self, channel: str, record: Record) -> str:
        new_ref = self._reference(channel).push(record)
        return new_ref.key

    def _write_sync(self, channel: str, key: str, record: Record) -> None:
        self._reference(channel).child(key).update(record)

    def _read_sync(self, channel: str) -> Snapshot:
        return self._reference(channel).get()

    # -- Log Port --------------------------------------------------------------

    async def append(self, channel: str, record: Record) -> str:
        key = await self._run("append", self._append_sync, channel, record)
        logger.debug(f"Pushed {channel}/{key}")
        return key

    async def write(self, channel: str, key: str, record: Record) -> None:
        await self._run("write", self._write_sync, channel, key, record)
        logger.debug(f"Updated {channel}/{key}: {record}")

    async def read(self, channel: str) -> Snapshot:
        return await self._run("read", self._read_sync, channel)

    async def subscribe(self, channel: str, on_change: ChangeCallback) -> Unsubscribe:
        """Listen on the channel and hand full snapshots to ``on_change`` on the event loop.

        The SDK streams incremental put/patch events from a background
        thread. Each event triggers a full read so the callback always sees
        the complete record set.
        """
        loop = asyncio.get_running_loop()
        ref = self._reference(channel)
        closed = threading.Event()

        def deliver(snapshot):
            if not closed.is_set():
                on_change(snapshot)

        def on_event(event):
            if closed.is_set():
                return
            logger.debug(f"[FIREBASE LISTENER] {event.event_type} at {channel}{event.path}")
            try:
                snapshot = ref.get()
            except BACKEND_ERRORS as e:
                logger.error(f"[FIREBASE LISTENER] Could not read {channel}: {e}")
                return
            loop.call_soon_threadsafe(deliver, snapshot)

        registration = await self._run("subscribe", ref.listen, on_event)
        logger.info(f"[FIREBASE LISTENER] Listening on path: {channel}")

        def closed_listener(future):
            if future.cancelled():
                return
            error = future.exception()
            if error is not None:
                logger.error(f"[FIREBASE LISTENER] Closing listener on {channel} failed: {error}")
            else:
                logger.info(f"[FIREBASE LISTENER] Listener on {channel} closed")

        def unsubscribe():
            if closed.is_set():
                return
            closed.set()
            # close() joins the listener thread, which may be blocked in ref.get()
            future = loop.run_in_executor(None, registration.close)
            future.add_done_callback(closed_listener)

        return unsubscribe
