import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./line_reserve.db")

# LINE Login channel - ID tokens must be issued for this channel
LINE_CHANNEL_ID = os.getenv("LINE_CHANNEL_ID")
LINE_VERIFY_URL = os.getenv("LINE_VERIFY_URL", "https://api.line.me/oauth2/v2.1/verify")

# LINE Messaging API - booking notifications are skipped when the token is missing
LINE_CHANNEL_ACCESS_TOKEN = os.getenv("LINE_CHANNEL_ACCESS_TOKEN")
LINE_PUSH_URL = os.getenv("LINE_PUSH_URL", "https://api.line.me/v2/bot/message/push")

# Reservation dates and slot start times are wall-clock times in this zone
BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Asia/Taipei")

# Read-through cache for list endpoints
READ_CACHE_TTL_SECONDS = int(os.getenv("READ_CACHE_TTL_SECONDS", "30"))
REDIS_URL = os.getenv("REDIS_URL")

# Minutes between two auto-complete sweeps in the arq worker
AUTO_COMPLETE_INTERVAL_MINUTES = int(os.getenv("AUTO_COMPLETE_INTERVAL_MINUTES", "15"))

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
