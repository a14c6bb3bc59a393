"""Background job tasks"""

import asyncio
from typing import Any, Dict, List

import structlog

from reservepay.jobs.celery_app import celery_app

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


@celery_app.task(name="deliver_notification")
def deliver_notification(kind: str, deliveries: List[Dict[str, Any]]):
    """Deliver pre-built notification messages outside the request path"""
    logger.info("Delivering notification", kind=kind, deliveries=len(deliveries))

    from reservepay.config import settings
    from reservepay.notify.factory import build_dispatcher

    dispatcher = build_dispatcher(settings)
    run_async(dispatcher.deliver(deliveries))
