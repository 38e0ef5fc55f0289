from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pipeline_orchestrator.core.workflow import RunStatus, TaskResult, TimelineRecordState


@dataclass
class BuildTask:
    id: str
    name: str
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None


@dataclass
class BuildJob:
    id: str
    name: str
    worker_name: str = ""
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None
    tasks: list[BuildTask] = field(default_factory=list)


@dataclass
class BuildCheckpoint:
    id: str
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None


@dataclass
class BuildApproval:
    id: str
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None


@dataclass
class BuildCheck:
    id: str
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None


@dataclass
class StageAttempt:
    stage: int = 0
    approval: int = 0
    check: int = 0


@dataclass
class BuildStage:
    """Live progress of one target stage, refreshed from the run timeline."""
    id: str
    name: str
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None
    checkpoint: Optional[BuildCheckpoint] = None
    approvals: list[BuildApproval] = field(default_factory=list)
    checks: list[BuildCheck] = field(default_factory=list)
    jobs: list[BuildJob] = field(default_factory=list)
    attempt: StageAttempt = field(default_factory=StageAttempt)


@dataclass
class RunProgress:
    id: int
    name: str
    project: str
    url: str
    stages: list[BuildStage] = field(default_factory=list)
    status: RunStatus = RunStatus.IN_PROGRESS
