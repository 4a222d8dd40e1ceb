import asyncio

import redis

from constants import REDIS_HOST, REDIS_PORT, REDIS_PASSWORD
from logging_config import get_logger

logger = get_logger(__name__)

CONNECT_TIMEOUT_SECONDS = 2.0


def create_redis_client() -> redis.Redis:
    return redis.Redis(
        host=REDIS_HOST,
        port=REDIS_PORT,
        password=REDIS_PASSWORD,
        decode_responses=True,
        socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        socket_timeout=CONNECT_TIMEOUT_SECONDS,
    )


def check_database() -> bool:
    """Ping the database once. Logs the outcome and never raises."""
    if not REDIS_HOST:
        logger.info("REDIS_HOST not set, skipping database bootstrap")
        return False

    client = None
    try:
        client = create_redis_client()
        client.ping()
        logger.info(f"Connected to Redis at {REDIS_HOST}:{REDIS_PORT}")
        return True
    except Exception as e:
        logger.error(f"Error connecting to Redis at {REDIS_HOST}:{REDIS_PORT}: {e}", exc_info=True)
        return False
    finally:
        if client is not None:
            try:
                client.close()
            except Exception as e:
                logger.debug(f"Error closing Redis client: {e}")


async def connect_to_database() -> bool:
    # redis-py is blocking; keep the ping off the event loop
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, check_database)
