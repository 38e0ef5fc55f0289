from __future__ import annotations
import dataclasses
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List, Union
from datetime import datetime
from pipeline_orchestrator.core.workflow import RunStatus, Strategy
from pipeline_orchestrator.models.progress import RunProgress
from pipeline_orchestrator.models.run import Details, Filters, Parameters, RunSettings


class FiltersModel(BaseModel):
    build_number: str = ""
    branch_name: str = Field("", examples=["main"])
    build_result: str = Field("", examples=["succeeded"])
    build_tags: List[str] = []
    pipeline_resources: Dict[str, str] = {}
    repository_resources: Dict[str, str] = {}


class RunSettingsModel(BaseModel):
    """Polling overrides. Unset fields fall back to the service configuration."""
    update_interval: Optional[int] = Field(None, ge=0)
    stage_start_attempts: Optional[int] = Field(None, ge=0)
    stage_start_interval: Optional[int] = Field(None, ge=0)
    approval_interval: Optional[int] = Field(None, ge=0)
    approval_attempts: Optional[int] = Field(None, ge=1)
    cancel_failed_checkpoint: Optional[bool] = None
    proceed_skipped_stages: Optional[bool] = None
    skip_tracking: Optional[bool] = None


class OrchestrationRequest(BaseModel):
    strategy: Strategy = Strategy.NEW
    project_name: str = Field(..., examples=["Payments"])
    definition_name: str = Field(..., examples=["payments-release"])
    stages: List[str] = Field([], examples=[["DEV", "TEST"]])
    parameters: Dict[str, Union[bool, str]] = {}
    filters: FiltersModel = FiltersModel()
    settings: RunSettingsModel = RunSettingsModel()
    requester_name: str = ""

    @field_validator("stages")
    @classmethod
    def unique_stages(cls, v: List[str]) -> List[str]:
        seen = set()
        for name in v:
            if name.lower() in seen:
                raise ValueError(f"Stage <{name}> listed more than once")
            seen.add(name.lower())
        return v

    def to_parameters(self, defaults: RunSettings) -> Parameters:
        overrides = self.settings.model_dump(exclude_none=True)
        return Parameters(
            strategy=self.strategy,
            project_name=self.project_name,
            definition_name=self.definition_name,
            stages=list(self.stages),
            parameters=dict(self.parameters),
            filters=Filters(**self.filters.model_dump()),
            settings=dataclasses.replace(defaults, **overrides),
            details=Details(project_name=self.project_name, requester_name=self.requester_name),
        )


class StageProgressModel(BaseModel):
    name: str
    state: str
    result: Optional[str] = None
    checkpoint: Optional[str] = None
    jobs: int = 0
    attempt: int = 0


class RunProgressModel(BaseModel):
    id: int
    name: str
    project: str
    url: str
    status: RunStatus
    stages: List[StageProgressModel] = []

    @classmethod
    def from_progress(cls, progress: RunProgress) -> "RunProgressModel":
        return cls(
            id=progress.id,
            name=progress.name,
            project=progress.project,
            url=progress.url,
            status=progress.status,
            stages=[
                StageProgressModel(
                    name=s.name,
                    state=s.state.name,
                    result=s.result.name if s.result is not None else None,
                    checkpoint=s.checkpoint.state.name if s.checkpoint else None,
                    jobs=len(s.jobs),
                    attempt=s.attempt.stage,
                )
                for s in progress.stages
            ],
        )


class OrchestrationJobResponse(BaseModel):
    id: str
    created_at: datetime
    strategy: Strategy
    project_name: str
    definition_name: str
    status: str
    run_id: Optional[int] = None
    run_status: Optional[RunStatus] = None
    error_message: Optional[str] = None
    progress: Dict[str, Any] = {}
