"""
Reservation auto-complete sweep, single run
Run from cron or by hand: python run_auto_complete.py
"""

import logging
import sys

from app import models  # noqa: F401
from app.database import SessionLocal
from app.services.status_automation import auto_complete_reservations

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("🚀 Running reservation auto-complete sweep...")
    db = SessionLocal()
    try:
        summary = auto_complete_reservations(db)
        logger.info(f"Updated {summary['completed']} of {summary['checked']} open reservations")
    except Exception as e:
        logger.error(f"❌ Auto-complete sweep failed: {e}")
        sys.exit(1)
    finally:
        db.close()
