from __future__ import annotations
import logging

from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import Strategy
from pipeline_orchestrator.models.progress import RunProgress
from pipeline_orchestrator.models.run import Parameters
from pipeline_orchestrator.workers.progress_reporter import ProgressReporter
from pipeline_orchestrator.workers.run_creator import RunCreator
from pipeline_orchestrator.workers.run_deployer import RunDeployer


class Orchestrator:
    """Creates a run and drives it with the deployment mode of its strategy.

    New runs progress on their own and are tracked automatically. Latest and
    Specific runs already exist, so their target stages are started manually.
    """

    def __init__(self, run_creator: RunCreator, run_deployer: RunDeployer, progress_reporter: ProgressReporter, logger: logging.Logger):
        self.run_creator = run_creator
        self.run_deployer = run_deployer
        self.progress_reporter = progress_reporter
        self.logger = logger
        self.log = logger.getChild(self.__class__.__name__)

    async def orchestrate(self, parameters: Parameters) -> RunProgress:
        run = await self.run_creator.create(parameters)

        self.log.debug(f"Starting <{parameters.strategy.value}> pipeline orchestration strategy")
        self.logger.info(
            f"Executing {parameters.strategy.value.lower()} <{run.definition.name}> pipeline <{run.build.build_number}> ({run.build.id}) run",
            extra=context(run.build.id),
        )
        self.progress_reporter.log_run(run, parameters.details)

        if parameters.strategy == Strategy.NEW:
            progress = await self.run_deployer.deploy_automated(run)
        else:
            progress = await self.run_deployer.deploy_manual(run)

        self.progress_reporter.log_run_progress(progress)
        return progress
