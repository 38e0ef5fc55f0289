from __future__ import annotations
import asyncio
import logging
import re

KEY_VALUE_PATTERN = re.compile(r"^\s*([\w.\-\s]+)\s*=\s*(.*)?\s*$")


class CommonHelper:
    def __init__(self, logger: logging.Logger):
        self.log = logger.getChild(self.__class__.__name__)

    async def wait(self, milliseconds: int) -> None:
        self.log.debug("Waiting <%s> milliseconds", milliseconds)
        await asyncio.sleep(milliseconds / 1000)

    def parse_key_value(self, value: str) -> tuple[str, str]:
        """Split `name=value` input into a stripped (name, value) pair."""
        match = KEY_VALUE_PATTERN.match(value)
        if match is None:
            raise ValueError(f"Unable to parse <{value}> input")
        key = match.group(1).strip()
        parsed = match.group(2).strip() if match.group(2) else ""
        return key, parsed
