"""Celery tasks for the scheduling domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.db import transaction  # type: ignore

from .services.blocks import purge_expired_holds as purge

logger = logging.getLogger(__name__)


@shared_task(name="scheduling.purge_expired_holds")
def purge_expired_holds() -> dict[str, int]:
    """
    Delete expired soft holds and their blocks.

    Runs every five minutes through Celery Beat. Reads already ignore expired
    holds, so a stalled beat only lets the tables grow.

    Returns:
        dict: {"purged": number of holds deleted}
    """
    with transaction.atomic():
        purged = purge()
    if purged:
        logger.info(f"Reaper purged {purged} expired holds")
    return {"purged": purged}
