from fastapi import APIRouter
from pipeline_orchestrator.core.config import settings

router = APIRouter()

@router.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env}
