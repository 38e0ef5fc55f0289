from __future__ import annotations
import dataclasses
import logging
from typing import Optional

from pipeline_orchestrator.core.devops import DevOpsClient
from pipeline_orchestrator.core.errors import OrchestratorError
from pipeline_orchestrator.core.retry import RetryPolicy
from pipeline_orchestrator.core.workflow import BuildResult
from pipeline_orchestrator.models.devops import Build, Definition, Project, Timeline

API_VERSION = "7.1"
STAGE_API_VERSION = "7.1-preview.1"
QUEUE_TIME_DESCENDING = "queueTimeDescending"


class BuildApi:
    """Build endpoints used by the orchestrator, each retried under one policy."""

    def __init__(self, client: DevOpsClient, logger: logging.Logger, retry: RetryPolicy | None = None):
        self.client = client
        self.log = logger.getChild(self.__class__.__name__)
        self.retry = retry or RetryPolicy(logger=self.log)

    async def get_build(self, project: str, build_id: int, wait: bool = False) -> Optional[Build]:
        """Read one build. With wait, a missing build is retried until it appears."""
        async def request():
            data = await self.client.get(f"{project}/_apis/build/builds/{build_id}", API_VERSION, missing_ok=True)
            return Build.from_json(data) if data else None

        policy = dataclasses.replace(self.retry, empty=True) if wait else self.retry
        return await policy.call("getBuild", request)

    async def get_builds(
        self,
        project: str,
        definitions: list[int],
        build_number: str | None = None,
        result_filter: BuildResult | None = None,
        tag_filters: list[str] | None = None,
        top: int | None = None,
        query_order: str | None = None,
        branch_name: str | None = None,
    ) -> list[Build]:
        params = {"definitions": ",".join(str(d) for d in definitions)}
        if build_number:
            params["buildNumber"] = build_number
        if result_filter is not None:
            params["resultFilter"] = result_filter.wire
        if tag_filters:
            params["tagFilters"] = ",".join(tag_filters)
        if top:
            params["$top"] = str(top)
        if query_order:
            params["queryOrder"] = query_order
        if branch_name:
            params["branchName"] = branch_name

        async def request():
            data = await self.client.get(f"{project}/_apis/build/builds", API_VERSION, params=params)
            return [Build.from_json(b) for b in (data or {}).get("value", [])]

        return await self.retry.call("getBuilds", request)

    async def get_build_timeline(self, project: str, build_id: int, timeline_id: str | None = None) -> Optional[Timeline]:
        path = f"{project}/_apis/build/builds/{build_id}/timeline"
        if timeline_id:
            path = f"{path}/{timeline_id}"

        async def request():
            data = await self.client.get(path, API_VERSION, missing_ok=True)
            return Timeline.from_json(data) if data else None

        return await self.retry.call("getBuildTimeline", request)

    async def update_build(self, project: str, build_id: int, body: dict, retry: bool = False) -> Build:
        async def request():
            data = await self.client.patch(
                f"{project}/_apis/build/builds/{build_id}",
                API_VERSION,
                body,
                params={"retry": str(retry).lower()},
            )
            return Build.from_json(data)

        return await self.retry.call("updateBuild", request)

    async def get_definition(self, project: Project, definition_id: int) -> Optional[Definition]:
        async def request():
            data = await self.client.get(f"{project.name}/_apis/build/definitions/{definition_id}", API_VERSION, missing_ok=True)
            return Definition.from_json(data, project) if data else None

        return await self.retry.call("getDefinition", request)

    async def get_definitions(self, project: str, name: str) -> list[dict]:
        async def request():
            data = await self.client.get(f"{project}/_apis/build/definitions", API_VERSION, params={"name": name})
            return (data or {}).get("value", [])

        return await self.retry.call("getDefinitions", request)

    async def update_stage(self, project: str, build_id: int, stage_ref_name: str, body: dict) -> None:
        async def request():
            r = await self.client.send(
                "PATCH",
                f"{project}/_apis/build/builds/{build_id}/stages/{stage_ref_name}",
                body=body,
                api_version=STAGE_API_VERSION,
            )
            if r.status_code not in (200, 204):
                raise OrchestratorError(f"Unable to update <{stage_ref_name}> stage status ({r.status_code})")
            return True

        await self.retry.call("updateStage", request)
