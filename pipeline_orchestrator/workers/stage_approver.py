from __future__ import annotations
import logging

from pipeline_orchestrator.core.errors import CheckpointError, OrchestratorError
from pipeline_orchestrator.core.helpers import CommonHelper
from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import TimelineRecordState
from pipeline_orchestrator.models.devops import Build
from pipeline_orchestrator.models.progress import BuildStage
from pipeline_orchestrator.models.run import RunSettings
from pipeline_orchestrator.selectors.build_selector import BuildSelector
from pipeline_orchestrator.selectors.stage_selector import StageSelector


class StageApprover:
    """Resolves stage checkpoints: submits approvals and waits out checks."""

    def __init__(self, build_selector: BuildSelector, stage_selector: StageSelector, helper: CommonHelper, logger: logging.Logger):
        self.build_selector = build_selector
        self.stage_selector = stage_selector
        self.helper = helper
        self.logger = logger
        self.log = logger.getChild(self.__class__.__name__)

    def is_approval_pending(self, stage: BuildStage) -> bool:
        return any(a.state != TimelineRecordState.COMPLETED for a in stage.approvals)

    def is_check_pending(self, stage: BuildStage) -> bool:
        return any(c.state != TimelineRecordState.COMPLETED for c in stage.checks)

    async def approve(self, stage: BuildStage, build: Build, settings: RunSettings, comment: str | None = None) -> BuildStage:
        """Approve every pending approval until none remains or the attempt budget runs out.

        A failed approval request is logged and left to the next attempt, after
        the stage has been re-read.
        """
        if stage.attempt.approval >= settings.approval_attempts:
            # Run already cancelled, the stage settles on its own
            return stage

        self.logger.info(f"Approving <{stage.name}> ({stage.id}) stage progress", extra=context(build.id, stage.name))

        while True:
            stage.attempt.approval += 1

            for approval in [a for a in stage.approvals if a.state != TimelineRecordState.COMPLETED]:
                try:
                    await self.stage_selector.approve_stage(build, approval, comment)
                except OrchestratorError as e:
                    self.log.warning(
                        f"Unable to approve <{stage.name}> ({approval.id}) stage approval (attempt {stage.attempt.approval}): {e}",
                        extra=context(build.id, stage.name),
                    )

            stage = await self.stage_selector.get_stage(build, stage)

            if not self.is_approval_pending(stage):
                self.logger.info(f"Stage <{stage.name}> ({stage.id}) approved", extra=context(build.id, stage.name))
                return stage

            if stage.attempt.approval >= settings.approval_attempts:
                return await self.fail_checkpoint(
                    stage, build, settings,
                    f"Unable to approve <{stage.name}> ({stage.id}) stage progress ({stage.attempt.approval} attempts)",
                )

            self.log.debug(f"Stage <{stage.name}> ({stage.id}) approval pending (attempt {stage.attempt.approval})")
            await self.helper.wait(settings.approval_interval)

    async def check(self, stage: BuildStage, build: Build, settings: RunSettings) -> BuildStage:
        if stage.attempt.check >= settings.approval_attempts:
            return stage

        self.logger.info(f"Waiting for <{stage.name}> ({stage.id}) stage checks", extra=context(build.id, stage.name))

        while True:
            stage.attempt.check += 1

            stage = await self.stage_selector.get_stage(build, stage)

            if not self.is_check_pending(stage):
                self.logger.info(f"Stage <{stage.name}> ({stage.id}) checks passed", extra=context(build.id, stage.name))
                return stage

            if stage.attempt.check >= settings.approval_attempts:
                return await self.fail_checkpoint(
                    stage, build, settings,
                    f"Stage <{stage.name}> ({stage.id}) checks still pending ({stage.attempt.check} attempts)",
                )

            self.log.debug(f"Stage <{stage.name}> ({stage.id}) checks pending (attempt {stage.attempt.check})")
            await self.helper.wait(settings.approval_interval)

    async def fail_checkpoint(self, stage: BuildStage, build: Build, settings: RunSettings, message: str) -> BuildStage:
        """Cancel the run or raise, depending on cancel_failed_checkpoint."""
        self.log.error(message, extra=context(build.id, stage.name))

        if not settings.cancel_failed_checkpoint:
            raise CheckpointError(message)

        self.logger.warning(
            f"Cancelling <{build.build_number}> ({build.id}) run, stage <{stage.name}> checkpoint failed",
            extra=context(build.id, stage.name),
        )
        await self.build_selector.cancel_build(build)
        return stage
