"""Shared fixtures for orchestration tests (no network calls)."""
import logging
import pytest
from pipeline_orchestrator.core.workflow import BuildStatus
from pipeline_orchestrator.models.devops import Build, Definition, Project
from pipeline_orchestrator.models.run import RunSettings


@pytest.fixture
def logger():
    return logging.getLogger("tests")


@pytest.fixture
def project():
    return Project(
        id="6f1c",
        name="Payments",
        url="https://dev.azure.com/contoso/_apis/projects/6f1c",
        web_url="https://dev.azure.com/contoso/Payments",
    )


@pytest.fixture
def definition(project):
    return Definition(id=42, name="payments-release", project=project)


@pytest.fixture
def build(project):
    return Build(
        id=1001,
        build_number="20261017.1",
        project=project,
        status=BuildStatus.IN_PROGRESS,
        definition_id=42,
        plan_id="plan-1",
    )


@pytest.fixture
def settings():
    return RunSettings(
        update_interval=0,
        stage_start_attempts=3,
        stage_start_interval=0,
        approval_interval=0,
        approval_attempts=3,
    )
