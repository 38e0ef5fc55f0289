from __future__ import annotations
import io
import logging
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.table import Table

from pipeline_orchestrator.core.errors import OrchestratorError
from pipeline_orchestrator.core.workflow import Strategy
from pipeline_orchestrator.models.progress import BuildStage, RunProgress
from pipeline_orchestrator.models.run import BuildParameters, Details, Filters, Run

TABLE_WIDTH = 160


def mask(value: str, character: str = "*", leading: int = 1, trailing: int = 1) -> str:
    """Hide all but the leading and trailing characters of a value."""
    if len(value) <= leading + trailing:
        return value
    return value[:leading] + character * (len(value) - leading - trailing) + value[-trailing:]


def humanize_duration(start: Optional[datetime], finish: Optional[datetime]) -> str:
    if not start or not finish:
        return "-"
    seconds = abs((finish - start).total_seconds())
    if seconds < 45:
        return "a few seconds"
    if seconds < 90:
        return "a minute"
    minutes = round(seconds / 60)
    if minutes < 45:
        return f"{minutes} minutes"
    if minutes < 90:
        return "an hour"
    hours = round(minutes / 60)
    if hours < 22:
        return f"{hours} hours"
    if hours < 36:
        return "a day"
    return f"{round(hours / 24)} days"


def render(table: Table) -> str:
    console = Console(file=io.StringIO(), width=TABLE_WIDTH, color_system=None)
    console.print(table)
    return console.file.getvalue().rstrip()


def new_table(*headers: str) -> Table:
    table = Table(show_lines=False)
    for header in headers:
        table.add_column(header)
    return table


class ProgressReporter:
    """Writes run, filter and progress summaries as text tables through the logger."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.log = logger.getChild(self.__class__.__name__)

    def log_run(self, run: Run, details: Optional[Details] = None) -> None:
        table = new_table("ID", "Name", "Stages", "Created By", "Created On")

        # Target stages are starred
        stages = [f"{s.name}*" if s.target else s.name for s in run.stages]
        queued = run.build.queue_time

        table.add_row(
            str(run.build.id) if run.build.id else "-",
            run.build.build_number or "",
            "|".join(stages) or "-",
            run.build.requested_for or "-",
            f"{queued:%Y-%m-%d} at {queued:%H:%M:%S}" if queued else "-",
        )

        urls = {
            "project": run.project.url or "-",
            "definition": run.definition.url or "-",
            "build": run.build.url or "-",
            "timeline": f"{run.build.url}/timeline/{run.build.plan_id}" if run.build.url and run.build.plan_id else "-",
            "logs": run.build.logs_url or "-",
        }
        self.log.debug(urls)

        self.logger.info(render(table))

        if details and details.requester_name:
            self.logger.info(f"Requested by <{details.requester_name}> for <{details.project_name or run.project.name}> project")

    def log_parameters(self, parameters: BuildParameters) -> None:
        table = new_table("Name", "Value")
        for name, value in parameters.items():
            table.add_row(name, mask(value) if isinstance(value, str) else str(value))
        self.logger.info(render(table))

    def log_filters(self, filters: Filters, strategy: Strategy) -> None:
        if strategy == Strategy.NEW:
            table = new_table("Branch name", "Pipeline resource", "Repository resources")
            pipelines = [f"{k}|{v}" for k, v in filters.pipeline_resources.items()]
            repositories = [f"{k}|{v}" for k, v in filters.repository_resources.items()]
            table.add_row(
                filters.branch_name or "-",
                "\n".join(pipelines) or "-",
                "\n".join(repositories) or "-",
            )
        elif strategy == Strategy.LATEST:
            table = new_table("Branch name", "Build result", "Build tags")
            table.add_row(
                filters.branch_name or "-",
                filters.build_result or "-",
                "|".join(filters.build_tags) or "-",
            )
        else:
            raise OrchestratorError(f"Strategy <{strategy.value}> not implemented")

        self.logger.info(render(table))

    def log_stage_progress(self, stage: BuildStage) -> None:
        table = new_table("Agent", "Job", "Task", "Result", "Duration")
        for job in stage.jobs:
            for task in job.tasks:
                table.add_row(
                    job.worker_name or "-",
                    job.name,
                    task.name,
                    task.result.name if task.result is not None else "-",
                    humanize_duration(task.start_time, task.finish_time),
                )
        self.logger.info(render(table))

    def log_stages_progress(self, stages: list[BuildStage]) -> None:
        table = new_table("Stage", "Jobs", "Tasks", "Attempt", "Checkpoint", "Result", "Duration")
        for stage in stages:
            tasks = sum(len(job.tasks) for job in stage.jobs)
            table.add_row(
                stage.name or "-",
                str(len(stage.jobs)) if stage.jobs else "-",
                str(tasks) if tasks else "-",
                str(stage.attempt.stage) if stage.attempt.stage else "-",
                stage.checkpoint.state.name if stage.checkpoint else "-",
                stage.result.name if stage.result is not None else "-",
                humanize_duration(stage.start_time, stage.finish_time),
            )
        self.logger.info(render(table))

    def log_run_progress(self, progress: RunProgress) -> None:
        table = new_table("ID", "Build", "Stages", "Result", "Summary")
        table.add_row(
            str(progress.id) if progress.id else "-",
            progress.name or "-",
            "|".join(s.name for s in progress.stages) or "-",
            progress.status.value,
            progress.url or "-",
        )
        self.logger.info(render(table))
