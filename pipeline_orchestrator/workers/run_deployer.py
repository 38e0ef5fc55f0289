from __future__ import annotations
import logging

from pipeline_orchestrator.core.helpers import CommonHelper
from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import RunStatus
from pipeline_orchestrator.models.progress import RunProgress
from pipeline_orchestrator.models.run import Run
from pipeline_orchestrator.workers.progress_monitor import ProgressMonitor
from pipeline_orchestrator.workers.progress_reporter import ProgressReporter
from pipeline_orchestrator.workers.stage_deployer import StageDeployer


class RunDeployer:
    def __init__(
        self,
        helper: CommonHelper,
        stage_deployer: StageDeployer,
        progress_monitor: ProgressMonitor,
        progress_reporter: ProgressReporter,
        logger: logging.Logger,
    ):
        self.helper = helper
        self.stage_deployer = stage_deployer
        self.progress_monitor = progress_monitor
        self.progress_reporter = progress_reporter
        self.logger = logger
        self.log = logger.getChild(self.__class__.__name__)

    async def deploy_manual(self, run: Run) -> RunProgress:
        """Drive target stages one at a time, in run order."""
        progress = self.progress_monitor.create_run_progress(run)
        self.log.debug(
            f"Starting <{progress.name}> ({progress.id}) run <{progress.status.value}> progress tracking",
            extra=context(progress.id),
        )

        for i, stage in enumerate(progress.stages):
            progress.stages[i] = await self.stage_deployer.deploy_manual(stage, run.build, run.settings)
            progress = self.progress_monitor.update_run_progress(progress)

        return self.finish(run, progress)

    async def deploy_automated(self, run: Run) -> RunProgress:
        """Poll active stages until the run reaches a terminal status."""
        progress = self.progress_monitor.create_run_progress(run)
        self.logger.info(
            f"Starting <{progress.name}> ({progress.id}) run <{progress.status.value}> progress tracking",
            extra=context(progress.id),
        )

        while True:
            active = self.progress_monitor.get_active_stages(progress)
            self.log.debug(f"Updating <{'|'.join(s.name for s in active)}> active stage(s) progress", extra=context(progress.id))

            for stage in active:
                await self.stage_deployer.deploy_automated(stage, run.build, run.settings)

            progress = self.progress_monitor.update_run_progress(progress)

            if progress.status != RunStatus.IN_PROGRESS or run.settings.skip_tracking:
                break

            await self.helper.wait(run.settings.update_interval)

        return self.finish(run, progress)

    def finish(self, run: Run, progress: RunProgress) -> RunProgress:
        tracking = "skipped" if run.settings.skip_tracking else "completed"
        self.logger.info(
            f"Run <{progress.name}> ({progress.id}) progress <{progress.status.value}> tracking {tracking}",
            extra=context(progress.id),
        )
        self.progress_reporter.log_stages_progress(progress.stages)
        return progress
