from __future__ import annotations
import logging
from collections import defaultdict
from typing import Optional

from pipeline_orchestrator.core.errors import NotFoundError, OrchestratorError, StagePolicyError
from pipeline_orchestrator.core.helpers import CommonHelper
from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import TaskResult, TimelineRecordState
from pipeline_orchestrator.models.devops import Build, Timeline, TimelineRecord
from pipeline_orchestrator.models.progress import (
    BuildApproval,
    BuildCheck,
    BuildCheckpoint,
    BuildJob,
    BuildStage,
    BuildTask,
)
from pipeline_orchestrator.services.build_api import BuildApi
from pipeline_orchestrator.services.pipelines_api import PipelinesApi

# Floor for the first start confirmation poll
FIRST_CONFIRM_WAIT = 10000


class TimelineIndex:
    """Parent id to children lookup over one timeline fetch."""

    def __init__(self, timeline: Timeline):
        self.records = timeline.records
        self.children: dict[Optional[str], list[TimelineRecord]] = defaultdict(list)
        for record in timeline.records:
            self.children[record.parent_id].append(record)
        for records in self.children.values():
            records.sort(key=lambda r: r.order)

    def find(self, name: str, record_type: str) -> Optional[TimelineRecord]:
        return next((r for r in self.records if r.name == name and r.type == record_type), None)

    def child(self, parent_id: str, record_type: str) -> Optional[TimelineRecord]:
        return next(iter(self.children_of(parent_id, record_type)), None)

    def children_of(self, parent_id: str, record_type: str) -> list[TimelineRecord]:
        return [r for r in self.children.get(parent_id, []) if r.type == record_type]


class StageSelector:
    def __init__(self, build_api: BuildApi, pipelines_api: PipelinesApi, helper: CommonHelper, logger: logging.Logger):
        self.build_api = build_api
        self.pipelines_api = pipelines_api
        self.helper = helper
        self.log = logger.getChild(self.__class__.__name__)

    async def get_stage(self, build: Build, stage: BuildStage) -> BuildStage:
        """Refresh the stage in place from the current run timeline.

        Stage ids change with every re-deployment, so the record is located by
        name and the id re-read from it. Checkpoint, approvals, checks and jobs
        are rebuilt from scratch on each call.
        """
        timeline = await self.build_api.get_build_timeline(build.project.name, build.id, build.plan_id)
        if not timeline:
            raise OrchestratorError(f"Unable to get <{build.build_number}> ({build.id}) build timeline")

        index = TimelineIndex(timeline)

        record = index.find(stage.name, "Stage")
        if not record:
            raise NotFoundError(f"Unable to get <{build.build_number}> ({build.id}) build stage <{stage.name}> timeline")

        stage.id = record.id
        stage.start_time = record.start_time
        stage.finish_time = record.finish_time
        stage.state = record.state
        stage.result = record.result
        stage.attempt.stage = record.attempt
        stage.checkpoint = None
        stage.approvals = []
        stage.checks = []

        checkpoint = index.child(record.id, "Checkpoint")
        if checkpoint:
            stage.checkpoint = BuildCheckpoint(id=checkpoint.id, state=checkpoint.state, result=checkpoint.result)
            stage.approvals = [
                BuildApproval(id=r.id, state=r.state, result=r.result)
                for r in index.children_of(checkpoint.id, "Checkpoint.Approval")
            ]
            stage.checks = [
                BuildCheck(id=r.id, state=r.state, result=r.result)
                for r in index.children_of(checkpoint.id, "Checkpoint.TaskCheck")
            ]

        stage.jobs = self._jobs(index, record.id)

        self.log.debug(stage)
        return stage

    def _jobs(self, index: TimelineIndex, stage_id: str) -> list[BuildJob]:
        jobs: list[BuildJob] = []
        for phase in index.children_of(stage_id, "Phase"):
            for job in index.children_of(phase.id, "Job"):
                jobs.append(BuildJob(
                    id=job.id,
                    name=job.name,
                    worker_name=job.worker_name,
                    start_time=job.start_time,
                    finish_time=job.finish_time,
                    state=job.state,
                    result=job.result,
                    tasks=[
                        BuildTask(
                            id=task.id,
                            name=task.name,
                            start_time=task.start_time,
                            finish_time=task.finish_time,
                            state=task.state,
                            result=task.result,
                        )
                        for task in index.children_of(job.id, "Task")
                    ],
                ))
        return jobs

    async def start_stage(self, build: Build, stage: BuildStage) -> None:
        self.log.debug(f"Starting <{stage.name}> ({stage.id}) stage progress")
        body = {
            "forceRetryAllJobs": True,
            "state": "retry",
        }
        await self.build_api.update_stage(build.project.name, build.id, stage.name, body)

    async def approve_stage(self, build: Build, approval: BuildApproval, comment: str | None = None) -> dict:
        request = {
            "approvalId": approval.id,
            "status": "approved",
            "comment": comment or "",
        }
        result = await self.pipelines_api.update_approval(build, request)
        self.log.debug(result)
        return result

    async def confirm_stage(self, build: Build, stage: BuildStage, max_attempts: int, interval: int) -> BuildStage:
        """Poll until a manually started stage leaves the Completed state.

        A stage that still reports Completed right after a start request has not
        picked the request up yet.
        """
        attempt = 0
        while True:
            if attempt > max_attempts:
                self.log.error(
                    f"Stage <{stage.name}> ({stage.id}) did not start after <{attempt}> attempts",
                    extra=context(build.id, stage.name),
                )
                raise StagePolicyError(
                    f"Unable to start <{stage.name}> ({stage.state.name}) stage progress ({attempt} attempts)"
                )
            attempt += 1

            self.log.debug(f"Validating <{stage.name}> ({stage.id}) stage start (attempt {attempt})")
            await self.helper.wait(FIRST_CONFIRM_WAIT if attempt == 1 else interval)

            stage = await self.get_stage(build, stage)
            if stage.state != TimelineRecordState.COMPLETED:
                self.log.debug(f"Stage <{stage.name}> ({stage.id}) successfully started")
                break

        self.confirm_stage_state(stage)
        return stage

    def confirm_stage_state(self, stage: BuildStage) -> None:
        """Reject stages that cannot be advanced after a manual start."""
        if stage.result == TaskResult.SKIPPED:
            raise StagePolicyError(f"Target stage <{stage.name}> ({stage.id}) is skipped")

        if stage.state == TimelineRecordState.PENDING and stage.checkpoint is None:
            raise StagePolicyError(f"Target stage <{stage.name}> ({stage.id}) is pending dependencies")
