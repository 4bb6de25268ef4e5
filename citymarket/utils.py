# citymarket/utils.py
"""Shared utilities: logging setup and a retry decorator.

``retry`` wraps both plain and coroutine functions so the identity provider
client can reuse it for idempotent calls.
"""
import asyncio
import inspect
import os
import logging
import time
from functools import wraps
from dotenv import load_dotenv

load_dotenv()

def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, level, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("citymarket")

def mask(value, keep=4):
    """Hide all but the last ``keep`` characters of a phone number or token."""
    if not value:
        return value
    return "*" * max(len(value) - keep, 0) + value[-keep:]

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    def deco_retry(f):
        if inspect.iscoroutinefunction(f):
            @wraps(f)
            async def f_retry_async(*args, **kwargs):
                mtries, mdelay = tries, delay
                while mtries > 1:
                    try:
                        return await f(*args, **kwargs)
                    except exceptions as e:
                        logger.warning("Retryable error: %s, retrying in %s sec", e, mdelay)
                        await asyncio.sleep(mdelay)
                        mtries -= 1
                        mdelay *= backoff
                return await f(*args, **kwargs)
            return f_retry_async

        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Retryable error: %s, retrying in %s sec", e, mdelay)
                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry
