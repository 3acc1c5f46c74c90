#!/usr/bin/env python3
"""
Hermit Cove background worker.

Processes encouragement jobs (reflections and journal entries) from the Redis
queue when the web app runs with ENRICHMENT_MODE=queue.

Usage:
    python worker.py

Environment:
    REDIS_URL     - Redis connection URL (e.g., redis://localhost:6379/0)
    DATABASE_URL  - Postgres connection URL (or SQLite for dev)
    RQ_QUEUE_NAME - queue to listen on (default hermitcove_queue)
    OPENAI_API_KEY is optional; without it jobs answer from the fallback pool.
"""

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Worker

BASE_DIR = Path(__file__).resolve().parent
DOTENV_PATH = BASE_DIR / ".env"
load_dotenv(DOTENV_PATH)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
QUEUE_NAMES = [os.getenv("RQ_QUEUE_NAME", "hermitcove_queue")]


def main():
    """Start the RQ worker."""
    logger.info("Hermit Cove worker starting")
    logger.info("Redis URL: %s", REDIS_URL)
    logger.info("Queues: %s", ", ".join(QUEUE_NAMES))
    if not os.getenv("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY not set; jobs will use fallback encouragement.")

    try:
        redis_conn = Redis.from_url(REDIS_URL)
        redis_conn.ping()
    except RedisError as e:
        logger.error("Failed to connect to Redis: %s", e)
        sys.exit(1)

    queues = [Queue(name, connection=redis_conn) for name in QUEUE_NAMES]
    worker = Worker(queues, connection=redis_conn, name=f"hermitcove-worker-{os.getpid()}")

    logger.info("Worker ready, waiting for jobs...")
    try:
        worker.work(with_scheduler=False)
    except KeyboardInterrupt:
        logger.info("Worker stopped by user (Ctrl+C)")
        sys.exit(0)


if __name__ == "__main__":
    main()
