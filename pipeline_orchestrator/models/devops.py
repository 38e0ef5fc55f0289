"""Projections of the vendor REST payloads the orchestrator reads."""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from pipeline_orchestrator.core.workflow import BuildResult, BuildStatus, TaskResult, TimelineRecordState

_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_time(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = _FRACTION.sub(r"\1", str(value)).replace("Z", "+00:00")
    return datetime.fromisoformat(text)


@dataclass
class Project:
    id: str
    name: str
    url: str = ""
    web_url: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "Project":
        links = data.get("_links") or {}
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            url=data.get("url", ""),
            web_url=(links.get("web") or {}).get("href", ""),
        )


@dataclass
class Definition:
    id: int
    name: str
    project: Project
    url: str = ""

    @classmethod
    def from_json(cls, data: dict, project: Project | None = None) -> "Definition":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            project=project or Project.from_json(data.get("project") or {}),
            url=data.get("url", ""),
        )


@dataclass
class Build:
    id: int
    build_number: str
    project: Project
    status: Optional[BuildStatus] = None
    result: Optional[BuildResult] = None
    definition_id: Optional[int] = None
    plan_id: Optional[str] = None
    url: str = ""
    logs_url: str = ""
    queue_time: Optional[datetime] = None
    requested_for: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "Build":
        plan = data.get("orchestrationPlan") or {}
        return cls(
            id=data["id"],
            build_number=data.get("buildNumber", ""),
            project=Project.from_json(data.get("project") or {}),
            status=BuildStatus.parse(data.get("status")),
            result=BuildResult.parse(data.get("result")),
            definition_id=(data.get("definition") or {}).get("id"),
            plan_id=plan.get("planId"),
            url=data.get("url", ""),
            logs_url=(data.get("logs") or {}).get("url", ""),
            queue_time=parse_time(data.get("queueTime")),
            requested_for=(data.get("requestedFor") or {}).get("displayName", ""),
        )


@dataclass
class TimelineRecord:
    id: str
    type: str
    name: str
    parent_id: Optional[str] = None
    order: int = 0
    state: TimelineRecordState = TimelineRecordState.PENDING
    result: Optional[TaskResult] = None
    start_time: Optional[datetime] = None
    finish_time: Optional[datetime] = None
    attempt: int = 0
    worker_name: str = ""

    @classmethod
    def from_json(cls, data: dict) -> "TimelineRecord":
        return cls(
            id=data["id"],
            type=data.get("type", ""),
            name=data.get("name", ""),
            parent_id=data.get("parentId"),
            order=data.get("order") or 0,
            state=TimelineRecordState.parse(data.get("state")) or TimelineRecordState.PENDING,
            result=TaskResult.parse(data.get("result")),
            start_time=parse_time(data.get("startTime")),
            finish_time=parse_time(data.get("finishTime")),
            attempt=data.get("attempt") or 0,
            worker_name=data.get("workerName") or "",
        )


@dataclass
class Timeline:
    id: str
    records: list[TimelineRecord] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Timeline":
        return cls(
            id=data.get("id", ""),
            records=[TimelineRecord.from_json(r) for r in data.get("records") or []],
        )
