from __future__ import annotations
import logging
from typing import Any

from pipeline_orchestrator.core.devops import DevOpsClient
from pipeline_orchestrator.core.errors import OrchestratorError
from pipeline_orchestrator.core.retry import RetryPolicy
from pipeline_orchestrator.models.devops import Build, Definition
from pipeline_orchestrator.models.run import BuildParameters, RepositoryFilter

API_VERSION = "5.0-preview.1"
RUN_DETAILS_PROVIDER = "ms.vss-build-web.run-details-data-provider"
RUN_PARAMETERS_PROVIDER = "ms.vss-build-web.pipeline-run-parameters-data-provider"


class BuildWebApi:
    """Run metadata served by the web data providers (stage lists, template parameters)."""

    def __init__(self, client: DevOpsClient, logger: logging.Logger, retry: RetryPolicy | None = None):
        self.client = client
        self.log = logger.getChild(self.__class__.__name__)
        self.retry = retry or RetryPolicy(logger=self.log)

    async def _query(self, project_id: str, provider: str, properties: dict, failure: str) -> Any:
        body = {
            "contributionIds": [provider],
            "dataProviderContext": {"properties": properties},
        }
        result = await self.client.post(f"_apis/Contribution/HierarchyQuery/project/{project_id}", API_VERSION, body) or {}
        data = (result.get("dataProviders") or {}).get(provider)
        if not data or result.get("dataProviderExceptions"):
            self.log.debug(result)
            raise OrchestratorError(failure)
        return data

    async def get_run_details(self, build: Build) -> dict:
        properties = {
            "buildId": str(build.id),
            "sourcePage": {
                "routeId": "ms.vss-build-web.ci-results-hub-route",
                "routeValues": {"project": build.project.name},
            },
        }
        failure = f"Unable to retrieve <{build.build_number}> ({build.id}) run details"
        return await self.retry.call(
            "getRunDetails",
            lambda: self._query(build.project.id, RUN_DETAILS_PROVIDER, properties, failure),
        )

    async def get_run_parameters(
        self,
        definition: Definition,
        repository: RepositoryFilter | None = None,
        parameters: BuildParameters | None = None,
    ) -> dict:
        properties = {
            "onlyFetchTemplateParameters": False,
            "pipelineId": definition.id,
            "sourceBranch": repository.ref_name if repository else "",
            "sourceVersion": repository.version if repository else "",
            "sourcePage": {
                "routeId": "ms.vss-build-web.pipeline-details-route",
                "routeValues": {"project": definition.project.name},
            },
            "templateParameters": dict(parameters) if parameters else {},
        }
        failure = f"Unable to retrieve <{definition.name}> ({definition.id}) run parameters"
        return await self.retry.call(
            "getRunParameters",
            lambda: self._query(definition.project.id, RUN_PARAMETERS_PROVIDER, properties, failure),
        )
