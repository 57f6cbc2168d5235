from __future__ import annotations
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'feedback.settings')

from .celery import celery_app

__all__ = ('celery_app',)
