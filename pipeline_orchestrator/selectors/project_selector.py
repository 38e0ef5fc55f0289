from __future__ import annotations
import logging

from pipeline_orchestrator.core.errors import NotFoundError
from pipeline_orchestrator.models.devops import Project
from pipeline_orchestrator.services.core_api import CoreApi


class ProjectSelector:
    def __init__(self, core_api: CoreApi, logger: logging.Logger):
        self.core_api = core_api
        self.log = logger.getChild(self.__class__.__name__)

    async def get_project(self, project_id: str) -> Project:
        project = await self.core_api.get_project(project_id)
        if not project:
            self.log.error(f"Project <{project_id}> not found")
            raise NotFoundError(f"Project <{project_id}> not found")

        self.log.debug(project)
        return project
