#!/usr/bin/env python3
"""
Cron script polling providers for pending background checks
Run this via cron every 30 minutes: */30 * * * * /path/to/venv/bin/python /path/to/check_background_checks.py
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from casaora.database import init_db
from casaora.main import create_background_check_factory
from casaora.services.background_check_service import BackgroundCheckService
from casaora.utils.logger import get_logger
from config.config import config
from datetime import datetime

logger = get_logger('casaora.background_check_cron')


def main():
    """Main cron job function"""
    logger.info(f"Starting background check cron job at {datetime.utcnow()}")

    try:
        init_db()

        app_config = config[os.environ.get('FLASK_ENV', 'default')]
        factory = create_background_check_factory(
            {key: getattr(app_config, key) for key in dir(app_config) if key.isupper()}
        )
        if factory is None:
            logger.info("No background check provider enabled, nothing to do")
            return

        settled = BackgroundCheckService(factory).refresh_pending_checks()

        logger.info(f"Background check cron job completed, {settled} checks settled")

    except Exception as e:
        logger.error(f"Error in background check cron job: {str(e)}")
        raise


if __name__ == "__main__":
    main()
