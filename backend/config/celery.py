# config/celery.py
import os
import logging
from celery import Celery
from celery.schedules import crontab
from celery.signals import task_prerun, task_failure

# Set default settings
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')

# Worker Reliability Defaults
app.conf.task_acks_late = True
app.conf.worker_prefetch_multiplier = 1
app.conf.task_reject_on_worker_lost = True
app.conf.broker_connection_retry_on_startup = True

app.autodiscover_tasks()


@task_prerun.connect
def close_old_connections(**kwargs):
    """
    Prevents 'connection already closed' errors on long lived workers.
    """
    from django.db import close_old_connections
    close_old_connections()


logger = logging.getLogger('celery.dlq')


@task_failure.connect
def handle_task_failure(sender=None, task_id=None, exception=None, args=None, kwargs=None, traceback=None, **opts):
    task_name = sender.name if sender else 'unknown_task'
    logger.critical(
        f"[DLQ] Task Failed Permanently: {task_name} (ID: {task_id})",
        extra={
            'task_name': task_name,
            'task_id': task_id,
            'exception': str(exception)
        }
    )


# ------------------------------------------------------------------------------
# BEAT SCHEDULE
# ------------------------------------------------------------------------------
app.conf.beat_schedule = {
    'rebuild-product-lists-nightly': {
        'task': 'apps.catalog.tasks.rebuild_product_lists',
        'schedule': crontab(hour=3, minute=0),
    },
}
