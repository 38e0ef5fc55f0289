from __future__ import annotations
import logging
from typing import Optional

from pipeline_orchestrator.core.devops import DevOpsClient
from pipeline_orchestrator.core.retry import RetryPolicy
from pipeline_orchestrator.models.devops import Project

API_VERSION = "7.1"


class CoreApi:
    def __init__(self, client: DevOpsClient, logger: logging.Logger, retry: RetryPolicy | None = None):
        self.client = client
        self.log = logger.getChild(self.__class__.__name__)
        self.retry = retry or RetryPolicy(logger=self.log)

    async def get_project(self, project_id: str) -> Optional[Project]:
        async def request():
            data = await self.client.get(f"_apis/projects/{project_id}", API_VERSION, missing_ok=True)
            return Project.from_json(data) if data else None

        return await self.retry.call("getProject", request)
