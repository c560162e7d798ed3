"""
Provision the settings account, default permissions and roles. Idempotent:
  python -m shiftpay.scripts.seed
Account credentials come from SETTINGS_USERNAME / SETTINGS_PASSWORD.
"""

import logging
import sys

from shiftpay.core.config import get_settings
from shiftpay.core.database import SessionLocal
from shiftpay.services.seed import seed_defaults

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    db = SessionLocal()
    try:
        seed_defaults(db, get_settings())
        return 0
    except Exception as e:
        db.rollback()
        logger.exception("Seed failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
