from __future__ import annotations
import logging

import httpx

from pipeline_orchestrator.core.devops import DevOpsClient
from pipeline_orchestrator.core.errors import OrchestratorError
from pipeline_orchestrator.core.retry import RetryPolicy
from pipeline_orchestrator.models.devops import Build, Definition

API_VERSION = "7.1"


class PipelinesApi:
    def __init__(self, client: DevOpsClient, logger: logging.Logger, retry: RetryPolicy | None = None):
        self.client = client
        self.log = logger.getChild(self.__class__.__name__)
        self.retry = retry or RetryPolicy(logger=self.log)

    async def queue_run(self, definition: Definition, request: dict) -> dict:
        async def queue():
            run = await self.client.post(f"{definition.project.name}/_apis/pipelines/{definition.id}/runs", API_VERSION, request)
            if not run:
                raise OrchestratorError(f"Unable to create <{definition.name}> ({definition.id}) definition run")
            return run

        return await self.retry.call("queueRun", queue)

    # Not retried, the stage approver submits again on its next attempt
    async def update_approval(self, build: Build, request: dict) -> dict:
        try:
            result = await self.client.patch(f"{build.project.name}/_apis/pipelines/approvals", API_VERSION, [request])
        except httpx.HTTPError as e:
            raise OrchestratorError(f"Unable to update <{build.build_number}> ({build.id}) build approval: {e}") from e
        decisions = (result or {}).get("value") or []
        if not decisions:
            raise OrchestratorError(f"Unable to update <{build.build_number}> ({build.id}) build approval")
        return decisions[0]

