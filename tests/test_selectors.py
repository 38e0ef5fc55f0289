"""Tests for project and definition lookup."""
from unittest.mock import AsyncMock, MagicMock
import pytest
from pipeline_orchestrator.core.errors import NotFoundError
from pipeline_orchestrator.selectors.definition_selector import DefinitionSelector
from pipeline_orchestrator.selectors.project_selector import ProjectSelector


@pytest.mark.asyncio
async def test_get_project(logger, project):
    """Test that a project is returned as read."""
    core_api = MagicMock()
    core_api.get_project = AsyncMock(return_value=project)

    result = await ProjectSelector(core_api, logger).get_project("Payments")

    assert result is project
    core_api.get_project.assert_awaited_once_with("Payments")


@pytest.mark.asyncio
async def test_get_project_missing(logger):
    """Test NotFoundError for an unknown project."""
    core_api = MagicMock()
    core_api.get_project = AsyncMock(return_value=None)

    with pytest.raises(NotFoundError, match="Project <Nope> not found"):
        await ProjectSelector(core_api, logger).get_project("Nope")


@pytest.mark.asyncio
async def test_get_definition_reads_first_match(logger, project, definition):
    """Test that the first name match is re-read by id."""
    build_api = MagicMock()
    build_api.get_definitions = AsyncMock(return_value=[{"id": 42, "name": "payments-release"}, {"id": 43, "name": "payments-release"}])
    build_api.get_definition = AsyncMock(return_value=definition)

    result = await DefinitionSelector(build_api, logger).get_definition(project, "payments-release")

    assert result is definition
    build_api.get_definitions.assert_awaited_once_with("Payments", "payments-release")
    build_api.get_definition.assert_awaited_once_with(project, 42)


@pytest.mark.asyncio
async def test_get_definition_missing(logger, project):
    """Test NotFoundError when no definition matches the name."""
    build_api = MagicMock()
    build_api.get_definitions = AsyncMock(return_value=[])
    build_api.get_definition = AsyncMock()

    with pytest.raises(NotFoundError):
        await DefinitionSelector(build_api, logger).get_definition(project, "payments-release")

    build_api.get_definition.assert_not_awaited()
