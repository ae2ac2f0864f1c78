#!/usr/bin/env python3
"""
Cron script for expiring overdue review assignments
Run this via cron every hour: 0 * * * * /path/to/venv/bin/python /path/to/run_expiry_cron.py
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from peerreview.services.assignment_service import ReviewAssignmentEngine
from peerreview.utils.logger import get_logger
from peerreview.database import init_db
from datetime import datetime

logger = get_logger('peerreview.expiry_cron')


def main():
    """Main cron job function"""
    logger.info(f"Starting assignment expiry job at {datetime.utcnow()}")

    try:
        init_db()

        expired = ReviewAssignmentEngine().expire_overdue()

        logger.info(f"Assignment expiry job completed, {expired} assignment(s) expired")

    except Exception as e:
        logger.error(f"Error in assignment expiry job: {str(e)}")
        raise


if __name__ == "__main__":
    main()
