"""Enqueue background jobs on the ARQ worker"""

import asyncio
import logging
from typing import Optional

from arq import create_pool

from .worker import get_redis_settings

logger = logging.getLogger(__name__)


async def enqueue_job(function_name: str, *args) -> Optional[str]:
    """
    Queue a job without failing the request when Redis is unreachable.

    Returns:
        The job id, or None when the job could not be queued
    """
    try:
        pool = await asyncio.wait_for(create_pool(get_redis_settings()), timeout=20.0)
        try:
            job = await pool.enqueue_job(function_name, *args)
        finally:
            await pool.close()
    except Exception as e:
        logger.warning(f"⚠️ Failed to queue {function_name}: {e}")
        return None

    if job is None:
        logger.info(f"ℹ️ Job {function_name} already queued")
        return None

    logger.info(f"📋 Job queued: {function_name} ({job.job_id})")
    return job.job_id
