"""Configuration for the PhoneSecure command console"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
_repo_root = Path(__file__).parent.parent.resolve()
_env_file = _repo_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Run against the in-memory log instead of Firebase (local development, demos)
SIMULATE_BACKEND = os.getenv("SIMULATE_BACKEND", "false").lower() == "true"

# Default to relative path (./firebase-key.json) but allow environment override
_default_creds = str(_repo_root / "firebase-key.json")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH", _default_creds)
FIREBASE_DATABASE_URL = os.getenv(
    "FIREBASE_DATABASE_URL", "https://chat-sphere-eed46-default-rtdb.firebaseio.com"
)

# Conversation channel
# Every command and response for the managed phone lives under this one path,
# independent of which operator is signed in.
CHAT_CHANNEL = os.getenv("CHAT_CHANNEL", "chat/CQwxFfFywdaUMYQJ2fOTTwCOYTN2")

# Host serving uploaded selfies and recordings
ATTACHMENT_HOST = os.getenv("ATTACHMENT_HOST", "firebasestorage.googleapis.com")

# Pending records older than this are promoted to UPLOADED on startup (0 disables)
PENDING_RECONCILE_SECONDS = int(os.getenv("PENDING_RECONCILE_SECONDS", "60"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/phonesecure.log")

# Debug logging, overrides LOG_LEVEL
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
