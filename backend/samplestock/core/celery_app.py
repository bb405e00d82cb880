"""
Central Celery application object for the sample stock backend.

Usage
-----
* **Worker**: ``celery -A samplestock.core.celery_app worker --loglevel=info``
* **Beat (scheduled backups)**: ``celery -A samplestock.core.celery_app beat --loglevel=info``

Broker, result backend, timezone and backup interval come from
:mod:`samplestock.core.config` (``CELERY_BROKER_URL``,
``CELERY_RESULT_BACKEND``, ``APP_TIMEZONE``, ``BACKUP_INTERVAL_HOURS``).
"""

from __future__ import annotations

from datetime import timedelta

from celery import Celery
from kombu import Exchange, Queue

from samplestock.core import config

celery_app = Celery(
    "samplestock",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=[
        "samplestock.services.maintenance_tasks",
    ],
)

celery_app.conf.update(
    # Serialisation
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Reliability
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Time
    timezone=config.APP_TIMEZONE,
    enable_utc=True,
    # Queues / routing
    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",
    task_queues=(
        Queue("default", Exchange("default"), routing_key="default"),
        Queue("maintenance", Exchange("maintenance"), routing_key="maintenance"),
    ),
    task_routes={"maintenance.*": {"queue": "maintenance"}},
    # Result expiry
    result_expires=timedelta(days=1),
    beat_schedule={
        "backup-database": {
            "task": "maintenance.backup_database",
            "schedule": timedelta(hours=config.BACKUP_INTERVAL_HOURS),
        },
    },
)

