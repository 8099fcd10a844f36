"""
Celery application for background storage of refreshed feeds.
"""
from celery import Celery

from dashboard.config import settings

celery_app = Celery(
    'dashboard',
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=['dashboard.celery.celery_tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_time_limit=300,
    task_soft_time_limit=240,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    result_expires=3600,
)

celery_app.conf.task_routes = {
    'dashboard.celery.celery_tasks.store_feed': {'queue': 'feeds'},
}
