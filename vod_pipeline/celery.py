import logging
import os

from celery import Celery
from celery.signals import worker_shutting_down

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "vod_pipeline.settings")

logger = logging.getLogger(__name__)

celery_app = Celery("vod_pipeline")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()


@worker_shutting_down.connect
def _log_drain(sig=None, how=None, exitcode=None, **kwargs):
    # Warm shutdown lets running jobs finish; unacked jobs are redelivered
    logger.warning("Worker shutting down (%s, %s): draining in-flight jobs", sig, how)
