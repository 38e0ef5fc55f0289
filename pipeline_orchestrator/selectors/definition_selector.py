from __future__ import annotations
import logging

from pipeline_orchestrator.core.errors import NotFoundError
from pipeline_orchestrator.models.devops import Definition, Project
from pipeline_orchestrator.services.build_api import BuildApi


class DefinitionSelector:
    def __init__(self, build_api: BuildApi, logger: logging.Logger):
        self.build_api = build_api
        self.log = logger.getChild(self.__class__.__name__)

    async def get_definition(self, project: Project, definition_name: str) -> Definition:
        """Resolve a definition by name, then read the full definition by id."""
        matches = await self.build_api.get_definitions(project.name, definition_name)
        self.log.debug([f"{d.get('name')} ({d.get('id')})" for d in matches])

        if not matches:
            raise NotFoundError(f"Definition <{definition_name}> not found")

        definition = await self.build_api.get_definition(project, matches[0]["id"])
        if not definition:
            raise NotFoundError(f"Definition <{definition_name}> ({matches[0]['id']}) not found")

        self.log.debug(definition)
        return definition
