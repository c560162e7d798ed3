"""
CLI entrypoint for the token cleanup job. Run from cron, e.g.:

  python -m shiftpay.cleanup

Or hourly: 0 * * * * cd /path/to/shiftpay && .venv/bin/python -m shiftpay.cleanup
"""

import logging
import sys

from shiftpay.core.database import SessionLocal
from shiftpay.services.auth import cleanup_expired_reset_tokens
from shiftpay.services.refresh_tokens import cleanup_expired_tokens

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired refresh-token and password-reset records."""
    db = SessionLocal()
    try:
        refresh_deleted = cleanup_expired_tokens(db)
        reset_deleted = cleanup_expired_reset_tokens(db)
        logger.info(
            "Cleanup completed: refresh_tokens_deleted=%s reset_tokens_deleted=%s",
            refresh_deleted,
            reset_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
