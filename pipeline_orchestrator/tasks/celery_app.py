from celery import Celery
from pipeline_orchestrator.core.config import settings

celery_app = Celery("pipeline_orchestrator", broker=settings.redis_url, backend=settings.redis_url, include=["pipeline_orchestrator.tasks.runs"])
celery_app.conf.update(task_track_started=True, result_expires=3600, broker_connection_retry_on_startup=True,)
