from __future__ import annotations
import logging

from pipeline_orchestrator.core.workflow import FAILED_RESULTS, RunStatus, TaskResult, TimelineRecordState
from pipeline_orchestrator.models.progress import BuildStage, RunProgress
from pipeline_orchestrator.models.run import Run


def run_url(web_url: str, build_id: int) -> str:
    return f"{web_url}/_build/results?buildId={build_id}"


def is_stage_completed(stage: BuildStage) -> bool:
    return stage.state == TimelineRecordState.COMPLETED


class ProgressMonitor:
    """Builds the run progress model and derives its aggregate status."""

    def __init__(self, logger: logging.Logger):
        self.log = logger.getChild(self.__class__.__name__)

    def create_run_progress(self, run: Run) -> RunProgress:
        progress = RunProgress(
            id=run.build.id,
            name=run.build.build_number,
            project=run.project.name,
            url=run_url(run.project.web_url, run.build.id),
            stages=[BuildStage(id=stage.id, name=stage.name) for stage in run.stages if stage.target],
            status=RunStatus.IN_PROGRESS,
        )

        self.log.debug(progress)
        return progress

    def update_run_progress(self, progress: RunProgress) -> RunProgress:
        """Recompute status from stage states and results. Repeated calls give the same status."""
        if all(is_stage_completed(stage) for stage in progress.stages):
            completed = "|".join(stage.name for stage in progress.stages)
            self.log.debug(f"All run stages <{completed}> completed")

            results = [stage.result for stage in progress.stages]
            if any(result in FAILED_RESULTS for result in results):
                progress.status = RunStatus.FAILED
            elif TaskResult.SUCCEEDED_WITH_ISSUES in results:
                progress.status = RunStatus.PARTIALLY_SUCCEEDED
            else:
                progress.status = RunStatus.SUCCEEDED
        else:
            active = "|".join(stage.name for stage in progress.stages if not is_stage_completed(stage))
            self.log.debug(f"Run stages <{active}> in progress")
            progress.status = RunStatus.IN_PROGRESS

        self.log.debug(f"Run status <{progress.status.value}> updated")
        return progress

    def get_active_stages(self, progress: RunProgress) -> list[BuildStage]:
        active = [stage for stage in progress.stages if not is_stage_completed(stage)]
        self.log.debug([stage.name for stage in active])
        return active
