from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union

from pipeline_orchestrator.core.workflow import BuildResult, BuildStatus, Strategy
from pipeline_orchestrator.models.devops import Build, Definition, Project

BuildParameters = dict[str, Union[str, bool]]


@dataclass
class RunSettings:
    """Polling configuration of one run. Intervals are in milliseconds."""
    update_interval: int = 5000
    stage_start_attempts: int = 12
    stage_start_interval: int = 5000
    approval_interval: int = 60000
    approval_attempts: int = 10
    cancel_failed_checkpoint: bool = False
    proceed_skipped_stages: bool = False
    skip_tracking: bool = False


@dataclass
class RunStage:
    id: str
    name: str
    target: bool


@dataclass
class Run:
    project: Project
    definition: Definition
    build: Build
    stages: list[RunStage]
    settings: RunSettings


@dataclass
class Filters:
    build_number: str = ""
    branch_name: str = ""
    build_result: str = ""
    build_tags: list[str] = field(default_factory=list)
    pipeline_resources: dict[str, str] = field(default_factory=dict)
    repository_resources: dict[str, str] = field(default_factory=dict)


@dataclass
class RepositoryFilter:
    ref_name: str
    version: str = ""

    def to_json(self) -> dict:
        return {"refName": self.ref_name, "version": self.version}


@dataclass
class PipelineFilter:
    version: str

    def to_json(self) -> dict:
        return {"version": self.version}


@dataclass
class ResourcesFilter:
    repositories: dict[str, RepositoryFilter] = field(default_factory=dict)
    pipelines: dict[str, PipelineFilter] = field(default_factory=dict)

    def to_json(self) -> dict:
        return {
            "repositories": {name: f.to_json() for name, f in self.repositories.items()},
            "pipelines": {name: f.to_json() for name, f in self.pipelines.items()},
        }


@dataclass
class BuildFilter:
    build_status: list[BuildStatus]
    build_result: Optional[BuildResult]
    tag_filters: list[str]
    branch_name: str


@dataclass
class Details:
    """Who asked for the orchestration, for the run summary."""
    project_name: str = ""
    requester_name: str = ""


@dataclass
class Parameters:
    strategy: Strategy
    project_name: str
    definition_name: str
    stages: list[str] = field(default_factory=list)
    parameters: BuildParameters = field(default_factory=dict)
    filters: Filters = field(default_factory=Filters)
    settings: RunSettings = field(default_factory=RunSettings)
    details: Details = field(default_factory=Details)
