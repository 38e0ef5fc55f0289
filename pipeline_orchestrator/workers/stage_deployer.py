from __future__ import annotations
import logging

from pipeline_orchestrator.core.helpers import CommonHelper
from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import TimelineRecordState
from pipeline_orchestrator.models.devops import Build
from pipeline_orchestrator.models.progress import BuildStage
from pipeline_orchestrator.models.run import RunSettings
from pipeline_orchestrator.selectors.stage_selector import StageSelector
from pipeline_orchestrator.workers.progress_reporter import ProgressReporter
from pipeline_orchestrator.workers.stage_approver import StageApprover


class StageDeployer:
    """Advances one stage: start, approve, check, report."""

    def __init__(
        self,
        helper: CommonHelper,
        stage_selector: StageSelector,
        stage_approver: StageApprover,
        progress_reporter: ProgressReporter,
        logger: logging.Logger,
    ):
        self.helper = helper
        self.stage_selector = stage_selector
        self.stage_approver = stage_approver
        self.progress_reporter = progress_reporter
        self.logger = logger
        self.log = logger.getChild(self.__class__.__name__)

    async def deploy_manual(self, stage: BuildStage, build: Build, settings: RunSettings) -> BuildStage:
        """Start a pending stage and track it until it completes."""
        extra = context(build.id, stage.name)
        self.log.debug(f"Starting <{stage.name}> ({stage.id}) stage <{stage.state.name}> progress", extra=extra)

        if stage.state == TimelineRecordState.PENDING:
            self.logger.info(f"Manually starting <{stage.name}> ({stage.id}) stage progress", extra=extra)
            await self.stage_selector.start_stage(build, stage)

            # Skipped tracking reads the stage once below, without confirmation
            if not settings.proceed_skipped_stages and not settings.skip_tracking:
                stage = await self.stage_selector.confirm_stage(
                    build, stage, settings.stage_start_attempts, settings.stage_start_interval
                )

        while True:
            self.log.debug(f"Updating <{stage.name}> ({stage.id}) stage <{stage.state.name}> progress", extra=extra)
            stage = await self.stage_selector.get_stage(build, stage)

            if settings.skip_tracking:
                self.logger.info(f"Skipping <{stage.name}> ({stage.id}) stage <{stage.state.name}> progress tracking", extra=extra)
                return stage

            if stage.state == TimelineRecordState.PENDING and settings.proceed_skipped_stages:
                self.logger.info(f"Pending stage <{stage.name}> ({stage.id}) cannot be started", extra=extra)
                return stage

            stage = await self.resolve_checkpoint(stage, build, settings)

            if stage.state == TimelineRecordState.COMPLETED:
                self.report_completed(stage, build)
                return stage

            await self.helper.wait(settings.update_interval)

    async def deploy_automated(self, stage: BuildStage, build: Build, settings: RunSettings) -> BuildStage:
        """One tracking pass over a stage the run progresses on its own."""
        extra = context(build.id, stage.name)
        self.log.debug(f"Updating <{stage.name}> ({stage.id}) stage <{stage.state.name}> progress", extra=extra)

        stage = await self.stage_selector.get_stage(build, stage)

        if settings.skip_tracking:
            self.logger.info(f"Skipping <{stage.name}> ({stage.id}) stage <{stage.state.name}> progress tracking", extra=extra)
            return stage

        stage = await self.resolve_checkpoint(stage, build, settings)

        if stage.state == TimelineRecordState.COMPLETED:
            self.report_completed(stage, build)

        return stage

    async def resolve_checkpoint(self, stage: BuildStage, build: Build, settings: RunSettings) -> BuildStage:
        if stage.checkpoint is not None and stage.checkpoint.state == TimelineRecordState.COMPLETED:
            return stage

        if self.stage_approver.is_approval_pending(stage):
            stage = await self.stage_approver.approve(stage, build, settings)

        if self.stage_approver.is_check_pending(stage):
            stage = await self.stage_approver.check(stage, build, settings)

        return stage

    def report_completed(self, stage: BuildStage, build: Build) -> None:
        self.logger.info(
            f"Stage <{stage.name}> ({stage.id}) reported <{stage.state.name}> state",
            extra=context(build.id, stage.name),
        )
        # Rejected stages have no jobs
        if stage.jobs:
            self.progress_reporter.log_stage_progress(stage)
