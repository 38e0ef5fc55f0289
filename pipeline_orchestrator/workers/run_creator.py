from __future__ import annotations
import logging

from pipeline_orchestrator.core.errors import NotFoundError
from pipeline_orchestrator.core.workflow import Strategy
from pipeline_orchestrator.models.devops import Build, Definition
from pipeline_orchestrator.models.run import Parameters, Run
from pipeline_orchestrator.selectors.build_selector import BuildSelector
from pipeline_orchestrator.selectors.definition_selector import DefinitionSelector
from pipeline_orchestrator.selectors.project_selector import ProjectSelector
from pipeline_orchestrator.workers.filter_creator import FilterCreator
from pipeline_orchestrator.workers.progress_reporter import ProgressReporter


class RunCreator:
    """Resolves the project, definition and build of a run and picks its target stages."""

    def __init__(
        self,
        project_selector: ProjectSelector,
        definition_selector: DefinitionSelector,
        build_selector: BuildSelector,
        filter_creator: FilterCreator,
        progress_reporter: ProgressReporter,
        logger: logging.Logger,
        latest_top: int = 100,
    ):
        self.project_selector = project_selector
        self.definition_selector = definition_selector
        self.build_selector = build_selector
        self.filter_creator = filter_creator
        self.progress_reporter = progress_reporter
        self.latest_top = latest_top
        self.logger = logger
        self.log = logger.getChild(self.__class__.__name__)

    async def create(self, parameters: Parameters) -> Run:
        project = await self.project_selector.get_project(parameters.project_name)
        definition = await self.definition_selector.get_definition(project, parameters.definition_name)

        if parameters.strategy == Strategy.NEW:
            build = await self.create_new(definition, parameters)
        elif parameters.strategy == Strategy.LATEST:
            build = await self.find_latest(definition, parameters)
        elif parameters.strategy == Strategy.SPECIFIC:
            build = await self.find_specific(definition, parameters)
        else:
            raise NotFoundError(f"Strategy <{parameters.strategy}> not implemented")

        stages = await self.build_selector.get_build_stages(build, parameters.stages)

        if parameters.stages and parameters.strategy != Strategy.NEW:
            known = {s.name.lower() for s in stages}
            for name in parameters.stages:
                if name.lower() not in known:
                    raise NotFoundError(f"Run <{build.build_number}> ({build.id}) does not contain <{name}> stage")

        run = Run(
            project=project,
            definition=definition,
            build=build,
            stages=stages,
            settings=parameters.settings,
        )

        self.log.debug(run)
        return run

    async def create_new(self, definition: Definition, parameters: Parameters) -> Build:
        self.logger.info(f"Creating new <{definition.name}> ({definition.id}) pipeline run")

        if parameters.parameters:
            self.progress_reporter.log_parameters(parameters.parameters)
        self.progress_reporter.log_filters(parameters.filters, parameters.strategy)

        resources_filter = self.filter_creator.create_resources_filter(parameters.filters)
        return await self.build_selector.create_build(
            definition,
            resources_filter,
            parameters.stages,
            parameters.parameters,
        )

    async def find_latest(self, definition: Definition, parameters: Parameters) -> Build:
        self.logger.info(f"Targeting latest <{definition.name}> ({definition.id}) pipeline run")
        self.progress_reporter.log_filters(parameters.filters, parameters.strategy)

        build_filter = self.filter_creator.create_build_filter(parameters.filters)
        return await self.build_selector.get_latest_build(definition, build_filter, self.latest_top)

    async def find_specific(self, definition: Definition, parameters: Parameters) -> Build:
        build_number = parameters.filters.build_number
        self.logger.info(f"Targeting specific <{definition.name}> ({definition.id}) pipeline <{build_number}> run")

        return await self.build_selector.get_specific_build(definition, build_number)
