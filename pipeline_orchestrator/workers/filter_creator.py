from __future__ import annotations
import logging

from pipeline_orchestrator.core.workflow import BuildResult, BuildStatus
from pipeline_orchestrator.models.run import (
    BuildFilter,
    Filters,
    PipelineFilter,
    RepositoryFilter,
    ResourcesFilter,
)

# Any queued, running or finished build is a candidate
CANDIDATE_BUILD_STATUS = [
    BuildStatus.NONE,
    BuildStatus.IN_PROGRESS,
    BuildStatus.COMPLETED,
    BuildStatus.NOT_STARTED,
]


def branch_ref(branch: str) -> str:
    return f"refs/heads/{branch}"


class FilterCreator:
    def __init__(self, logger: logging.Logger):
        self.log = logger.getChild(self.__class__.__name__)

    def create_resources_filter(self, filters: Filters) -> ResourcesFilter:
        resources = ResourcesFilter()

        if filters.branch_name:
            resources.repositories["self"] = RepositoryFilter(ref_name=branch_ref(filters.branch_name))

        for name, version in filters.pipeline_resources.items():
            resources.pipelines[name] = PipelineFilter(version=version)

        for name, branch in filters.repository_resources.items():
            resources.repositories[name] = RepositoryFilter(ref_name=branch_ref(branch))

        self.log.debug(resources)
        return resources

    def create_build_filter(self, filters: Filters) -> BuildFilter:
        build_filter = BuildFilter(
            build_status=list(CANDIDATE_BUILD_STATUS),
            build_result=BuildResult.parse(filters.build_result) if filters.build_result else None,
            tag_filters=list(filters.build_tags),
            branch_name=branch_ref(filters.branch_name) if filters.branch_name else "",
        )

        self.log.debug(build_filter)
        return build_filter
