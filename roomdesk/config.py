import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

APP_TITLE = os.getenv("ROOMDESK_APP_TITLE", "Room & Calendar Scheduling Service")

LOG_LEVEL = os.getenv("ROOMDESK_LOG_LEVEL", "INFO").upper()

# Populate the in-memory stores with a couple of rooms and bookings on startup
SEED_DEMO_DATA = os.getenv("ROOMDESK_SEED_DEMO_DATA", "false").lower() in ("1", "true", "yes")

# Default page size for GET /alerts; requests may ask for up to ALERT_LIST_MAX
ALERT_LIST_LIMIT = int(os.getenv("ROOMDESK_ALERT_LIST_LIMIT", "50"))
ALERT_LIST_MAX = 100


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
