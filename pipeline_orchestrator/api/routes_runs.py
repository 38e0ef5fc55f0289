from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pipeline_orchestrator.db.session import get_db
from pipeline_orchestrator.db.models import OrchestrationJob
from pipeline_orchestrator.schemas.runs import OrchestrationRequest, OrchestrationJobResponse
from pipeline_orchestrator.tasks.runs import run_orchestration

router = APIRouter(prefix="/runs")


def to_response(job: OrchestrationJob) -> OrchestrationJobResponse:
    return OrchestrationJobResponse(
        id=job.id,
        created_at=job.created_at,
        strategy=job.strategy,
        project_name=job.project_name,
        definition_name=job.definition_name,
        status=job.status,
        run_id=job.run_id,
        run_status=job.run_status,
        error_message=job.error_message,
        progress=job.progress or {},
    )

@router.post("", response_model=OrchestrationJobResponse)
def create_run(req: OrchestrationRequest, db: Session = Depends(get_db)):
    job = OrchestrationJob(
        strategy=req.strategy.value,
        project_name=req.project_name,
        definition_name=req.definition_name,
        request=req.model_dump(mode="json"),
        progress={},
    )
    db.add(job)
    db.commit()
    db.refresh(job)

    run_orchestration.delay(job.id)

    return to_response(job)

@router.get("/{job_id}", response_model=OrchestrationJobResponse)
def get_run(job_id: str, db: Session = Depends(get_db)):
    job = db.get(OrchestrationJob, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return to_response(job)
