from __future__ import annotations

import logging
from typing import List, Optional

from feedback.celery import celery_app
from .services import send_batch

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, acks_late=True)
def send_invitations_task(self, contact_ids: List[int], subject: Optional[str] = None, message: Optional[str] = None) -> dict:
    """
    Queued variant of the batch send. Per-recipient failures are part of the
    returned result; the task is not retried because a retry would re-issue
    tokens (and re-send emails) for recipients that already succeeded.
    """
    result = send_batch(contact_ids, subject=subject, message=message)
    logger.info("Queued invitation batch done", extra={"task_id": self.request.id, **result.as_dict()})
    return result.as_dict()
