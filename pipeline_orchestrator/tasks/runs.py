from __future__ import annotations
import asyncio
import logging
from sqlalchemy.orm import Session
from pipeline_orchestrator.tasks.celery_app import celery_app
from pipeline_orchestrator.db.session import SessionLocal
from pipeline_orchestrator.db.models import OrchestrationJob
from pipeline_orchestrator.core.factory import create_orchestrator, default_run_settings
from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import RunStatus
from pipeline_orchestrator.schemas.runs import OrchestrationRequest, RunProgressModel

log = logging.getLogger(__name__)

JOB_STATUS = {
    RunStatus.SUCCEEDED: "SUCCEEDED",
    RunStatus.PARTIALLY_SUCCEEDED: "PARTIALLY_SUCCEEDED",
    RunStatus.FAILED: "FAILED",
    RunStatus.IN_PROGRESS: "TRACKING_SKIPPED",
}


@celery_app.task(name="run_orchestration")
def run_orchestration(job_id: str) -> None:
    db: Session = SessionLocal()
    try:
        job = db.get(OrchestrationJob, job_id)
        if not job:
            log.error("Job <%s> not found", job_id, extra=context(job_id=job_id))
            return

        job.status = "RUNNING"
        db.commit()

        request = OrchestrationRequest.model_validate(job.request)
        parameters = request.to_parameters(default_run_settings())

        log.info("Starting orchestration", extra=context(job_id=job_id))

        orchestrator = create_orchestrator()
        progress = asyncio.run(orchestrator.orchestrate(parameters))

        job.run_id = progress.id
        job.run_status = progress.status.value
        job.progress = RunProgressModel.from_progress(progress).model_dump(mode="json")
        job.status = JOB_STATUS[progress.status]
        db.commit()
        log.info("Orchestration finished with <%s> status", progress.status.value, extra=context(progress.id, job_id=job_id))

    except Exception as e:
        log.exception("Orchestration failed", extra=context(job_id=job_id))
        job = db.get(OrchestrationJob, job_id)
        if job:
            job.status = "ERROR"
            job.error_message = str(e)
            db.commit()
    finally:
        db.close()
