"""Celery application configuration"""
from celery import Celery
from kombu import Queue
import os

from lrms.config import settings

# Check if we're in eager/test mode (no broker needed)
CELERY_EAGER_MODE = os.getenv("CELERY_TASK_ALWAYS_EAGER", "").lower() == "true"

if CELERY_EAGER_MODE:
    # Use memory backend for testing without Redis
    CELERY_BROKER_URL = "memory://"
    CELERY_RESULT_BACKEND = "cache+memory://"
else:
    CELERY_BROKER_URL = settings.CELERY_BROKER_URL
    CELERY_RESULT_BACKEND = settings.CELERY_RESULT_BACKEND

# Create Celery application
celery_app = Celery(
    "land_records",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=[
        "tasks.ingestion_tasks",
    ]
)

# Enable eager mode if set
if CELERY_EAGER_MODE:
    celery_app.conf.task_always_eager = True
    celery_app.conf.task_eager_propagates = True

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task queues
    task_queues=(
        Queue("default", routing_key="default"),
        Queue("ingestion", routing_key="ingestion"),
    ),

    # Default queue
    task_default_queue="default",
    task_default_routing_key="default",

    # Task routing
    task_routes={
        "tasks.ingestion_tasks.*": {"queue": "ingestion"},
    },

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # Result settings
    result_expires=86400,  # 24 hours

    # Task time limits
    task_soft_time_limit=300,  # 5 minutes soft limit
    task_time_limit=600,  # 10 minutes hard limit
)
