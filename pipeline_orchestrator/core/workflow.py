from __future__ import annotations
import re
from enum import Enum, IntEnum


def _wire_name(member_name: str) -> str:
    """IN_PROGRESS -> inProgress"""
    head, *tail = member_name.lower().split("_")
    return head + "".join(part.capitalize() for part in tail)


class WireEnum(IntEnum):
    """Vendor enumeration that arrives either as an integer code or a camelCase name."""

    @property
    def wire(self) -> str:
        return _wire_name(self.name)

    @classmethod
    def parse(cls, value):
        if value is None or value == "":
            return None
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        key = re.sub(r"[^a-z]", "", text.lower())
        for member in cls:
            if member.name.replace("_", "").lower() == key:
                return member
        raise ValueError(f"Unknown {cls.__name__} value <{value}>")


class TimelineRecordState(WireEnum):
    PENDING = 0
    IN_PROGRESS = 1
    COMPLETED = 2


class TaskResult(WireEnum):
    SUCCEEDED = 0
    SUCCEEDED_WITH_ISSUES = 1
    FAILED = 2
    CANCELED = 3
    SKIPPED = 4
    ABANDONED = 5


class BuildStatus(WireEnum):
    NONE = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    CANCELLING = 4
    POSTPONED = 8
    NOT_STARTED = 32
    ALL = 47


class BuildResult(WireEnum):
    NONE = 0
    SUCCEEDED = 2
    PARTIALLY_SUCCEEDED = 4
    FAILED = 8
    CANCELED = 32


class RunStatus(str, Enum):
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    PARTIALLY_SUCCEEDED = "PartiallySucceeded"
    FAILED = "Failed"


class Strategy(str, Enum):
    NEW = "New"
    LATEST = "Latest"
    SPECIFIC = "Specific"


# Results that fail the whole run once every stage is completed
FAILED_RESULTS = (TaskResult.FAILED, TaskResult.CANCELED, TaskResult.ABANDONED)
