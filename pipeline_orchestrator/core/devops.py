from __future__ import annotations
import logging
import httpx
from dataclasses import dataclass, field
from typing import Any
from pipeline_orchestrator.core.config import settings

log = logging.getLogger(__name__)


@dataclass
class DevOpsClient:
    """Thin REST transport for the pipelines service.

    API versions travel in the Accept header, one per call.
    """
    token: str
    base_url: str = settings.devops_url
    timeout: float = settings.devops_timeout
    transport: httpx.AsyncBaseTransport | None = field(default=None, repr=False)

    def _headers(self, api_version: str | None = None) -> dict:
        accept = "application/json"
        if api_version:
            accept = f"{accept};api-version={api_version}"
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": accept,
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def send(
        self,
        method: str,
        path: str,
        body: Any = None,
        api_version: str | None = None,
        params: dict | None = None,
    ) -> httpx.Response:
        url = self._url(path)
        log.debug(f"Making <{url}> API <{method}> call")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.request(
                method,
                url,
                headers=self._headers(api_version),
                params=params,
                json=body,
            )
        log.debug(f"Response status code <{r.status_code}> received")
        return r

    async def _json(self, method: str, path: str, body: Any = None, api_version: str | None = None, params: dict | None = None, missing_ok: bool = False) -> Any:
        r = await self.send(method, path, body=body, api_version=api_version, params=params)
        if missing_ok and r.status_code == 404:
            return None
        r.raise_for_status()
        if not r.content:
            return None
        return r.json()

    async def get(self, path: str, api_version: str | None = None, params: dict | None = None, missing_ok: bool = False) -> Any:
        return await self._json("GET", path, api_version=api_version, params=params, missing_ok=missing_ok)

    async def post(self, path: str, api_version: str | None = None, body: Any = None) -> Any:
        return await self._json("POST", path, body=body, api_version=api_version)

    async def patch(self, path: str, api_version: str | None = None, body: Any = None, params: dict | None = None) -> Any:
        return await self._json("PATCH", path, body=body, api_version=api_version, params=params)
