"""
Guardian Realtime - Configuration and shared helpers
"""

import os
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'guardian_intel')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# CORS
CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== REALTIME FEED ====================

# One shared poll for every connected client
SSE_POLL_INTERVAL_SECONDS = float(os.environ.get('SSE_POLL_INTERVAL_SECONDS', '10'))

# Per-connection keep-alive, longer than the poll interval
SSE_HEARTBEAT_INTERVAL_SECONDS = float(os.environ.get('SSE_HEARTBEAT_INTERVAL_SECONDS', '30'))

# Frames buffered per client before the channel is considered broken
SSE_CHANNEL_BACKLOG = int(os.environ.get('SSE_CHANNEL_BACKLOG', '100'))


# ==================== HELPERS ====================

def utcnow() -> datetime:
    """Current date/time (UTC, timezone-aware)"""
    return datetime.now(timezone.utc)

def now_iso() -> str:
    """Current date/time as ISO string"""
    return utcnow().isoformat()

def to_iso(value):
    """Normalize a date (datetime or ISO str) to an ISO str, None otherwise"""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return str(value)
