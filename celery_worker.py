#!/usr/bin/env python3
"""
Celery worker for Zelshop notification e-mails (activation codes,
verification confirmations).
"""

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    from core.celery import celery_app
    from core.logging_config import configure_logging

    configure_logging()
    celery_app.start([
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--without-gossip",
        "--without-mingle",
        "--without-heartbeat",
    ])
