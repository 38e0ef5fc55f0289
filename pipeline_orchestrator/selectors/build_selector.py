from __future__ import annotations
import logging
from typing import Optional

from pipeline_orchestrator.core.errors import NotFoundError
from pipeline_orchestrator.core.logging import context
from pipeline_orchestrator.core.workflow import BuildStatus, TaskResult
from pipeline_orchestrator.models.devops import Build, Definition
from pipeline_orchestrator.models.run import (
    BuildFilter,
    BuildParameters,
    RepositoryFilter,
    ResourcesFilter,
    RunStage,
)
from pipeline_orchestrator.services.build_api import QUEUE_TIME_DESCENDING, BuildApi
from pipeline_orchestrator.services.build_web_api import BuildWebApi
from pipeline_orchestrator.services.pipelines_api import PipelinesApi


def _contains(names: list[str], name: str) -> bool:
    lowered = name.lower()
    return any(n.lower() == lowered for n in names)


def get_stages_to_skip(stages: list[str], required: list[str]) -> list[str]:
    """Definition stages not in required, matched case-insensitively, in definition order."""
    return [stage for stage in stages if not _contains(required, stage)]


class BuildSelector:
    """Creates new runs or locates existing ones, and resolves their stages."""

    def __init__(self, build_api: BuildApi, pipelines_api: PipelinesApi, build_web_api: BuildWebApi, logger: logging.Logger):
        self.build_api = build_api
        self.pipelines_api = pipelines_api
        self.build_web_api = build_web_api
        self.log = logger.getChild(self.__class__.__name__)

    async def create_build(
        self,
        definition: Definition,
        resources_filter: ResourcesFilter,
        stages: Optional[list[str]] = None,
        parameters: Optional[BuildParameters] = None,
    ) -> Build:
        request = {
            "resources": resources_filter.to_json(),
            "templateParameters": {},
            "stagesToSkip": [],
        }
        repository = resources_filter.repositories.get("self")

        if stages:
            definition_stages = await self.get_stages(definition, repository, parameters)
            self.confirm_required_stages(definition, definition_stages, stages)
            request["stagesToSkip"] = self.get_stages_to_skip(definition_stages, stages)

        if parameters:
            definition_parameters = await self.get_parameters(definition, repository)
            self.confirm_parameters(definition, definition_parameters, parameters)
            request["templateParameters"] = dict(parameters)

        run = await self.pipelines_api.queue_run(definition, request)

        build = await self.build_api.get_build(definition.project.name, run["id"], wait=True)
        self.log.debug(build)
        return build

    async def get_latest_build(self, definition: Definition, build_filter: BuildFilter, top: int) -> Build:
        builds = await self.find_builds(definition, build_filter, top)

        latest = max(builds, key=lambda b: b.id)

        build = await self.build_api.get_build(definition.project.name, latest.id)
        if not build:
            raise NotFoundError(f"Build <{latest.build_number}> ({latest.id}) not found")

        self.log.debug(build)
        return build

    async def get_specific_build(self, definition: Definition, build_number: str) -> Build:
        matches = await self.build_api.get_builds(definition.project.name, [definition.id], build_number=build_number)
        self.log.debug([f"{b.build_number} ({b.id})" for b in matches])

        if not matches:
            raise NotFoundError(f"Build <{build_number}> not found")

        build = await self.build_api.get_build(definition.project.name, matches[0].id)
        if not build:
            raise NotFoundError(f"Build <{build_number}> ({matches[0].id}) not found")

        self.log.debug(build)
        return build

    async def get_build_stages(self, build: Build, stages: list[str]) -> list[RunStage]:
        """Ordered run stages with target flags.

        Stages the service reports as skipped are not targeted by default.
        An explicit allow-list overrides that default.
        """
        run_details = await self.build_web_api.get_run_details(build)

        build_stages: list[RunStage] = []
        for stage in run_details.get("stages") or []:
            skipped = TaskResult.parse(stage.get("result")) == TaskResult.SKIPPED
            target = not skipped
            if stages:
                target = _contains(stages, stage["name"])
            build_stages.append(RunStage(id=stage.get("id", ""), name=stage["name"], target=target))

        self.log.debug(build_stages)
        return build_stages

    async def cancel_build(self, build: Build) -> Build:
        self.log.info(f"Cancelling <{build.build_number}> ({build.id}) build", extra=context(build.id))
        cancelled = await self.build_api.update_build(
            build.project.id or build.project.name,
            build.id,
            {"status": BuildStatus.CANCELLING.wire},
        )
        self.log.debug(cancelled)
        return cancelled

    async def find_builds(self, definition: Definition, build_filter: BuildFilter, top: int) -> list[Build]:
        self.log.debug(build_filter)

        builds = await self.build_api.get_builds(
            definition.project.name,
            [definition.id],
            result_filter=build_filter.build_result,
            tag_filters=build_filter.tag_filters or None,
            top=top,
            query_order=QUEUE_TIME_DESCENDING,
            branch_name=build_filter.branch_name or None,
        )

        builds = [b for b in builds if b.status in build_filter.build_status]
        if not builds:
            raise NotFoundError(f"No definition <{definition.name}> ({definition.id}) builds matching filter found")

        statuses = "|".join(s.name for s in build_filter.build_status)
        self.log.debug(f"Found <{len(builds)}> build(s) matching ({statuses}) status filter")
        return builds

    async def get_stages(
        self,
        definition: Definition,
        repository: Optional[RepositoryFilter] = None,
        parameters: Optional[BuildParameters] = None,
    ) -> list[str]:
        result = await self.build_web_api.get_run_parameters(definition, repository, parameters)
        definition_stages = result.get("stages")
        if not isinstance(definition_stages, list) or not definition_stages:
            raise NotFoundError(f"Unable to detect <{definition.name}> ({definition.id}) definition stages")

        names = [stage["name"] for stage in definition_stages]
        self.log.debug(names)
        return names

    async def get_parameters(self, definition: Definition, repository: Optional[RepositoryFilter] = None) -> list[str]:
        result = await self.build_web_api.get_run_parameters(definition, repository)
        template_parameters = result.get("templateParameters")
        if not isinstance(template_parameters, list) or not template_parameters:
            raise NotFoundError(f"Unable to detect <{definition.name}> ({definition.id}) definition template parameters")

        names = [parameter["name"] for parameter in template_parameters]
        self.log.debug(names)
        return names

    def confirm_required_stages(self, definition: Definition, stages: list[str], required: list[str]) -> None:
        if not stages:
            raise NotFoundError(f"No stages found in <{definition.name}> ({definition.id}) definition")
        for stage in required:
            if not _contains(stages, stage):
                raise NotFoundError(f"Definition <{definition.name}> ({definition.id}) does not contain <{stage}> stage")

    def confirm_parameters(self, definition: Definition, definition_parameters: list[str], parameters: BuildParameters) -> None:
        if not definition_parameters:
            raise NotFoundError(f"No template parameters found in <{definition.name}> ({definition.id}) definition")
        for name in parameters:
            if not _contains(definition_parameters, name):
                raise NotFoundError(f"Definition <{definition.name}> ({definition.id}) does not contain <{name}> parameter")

    def get_stages_to_skip(self, stages: list[str], required: list[str]) -> list[str]:
        stages_to_skip = get_stages_to_skip(stages, required)
        self.log.debug(stages_to_skip)
        return stages_to_skip
