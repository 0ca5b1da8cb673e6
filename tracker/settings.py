# tracker/settings.py
import os

from dotenv import load_dotenv

# ================= ENV =================
load_dotenv()

# If DATABASE_URL is NOT provided -> use local SQLite
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tracker.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# how long a request waits for another request renumbering the same project
ORDERING_LOCK_TIMEOUT_SECONDS = float(os.getenv("ORDERING_LOCK_TIMEOUT_SECONDS", "10"))

# milestones dated within this many days before "now" count as recent
MILESTONE_RECENT_DAYS = int(os.getenv("MILESTONE_RECENT_DAYS", "14"))

FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN")
