import json
import logging
from collections.abc import AsyncIterator, Sequence
from types import TracebackType
from typing import Any, Self

import httpx
from pydantic import ValidationError

from modhandler.schemas.catalog import CatalogResponse
from modhandler.schemas.mod import AuthorFolder, CommitResult, DraftMod, PreviewInfo
from modhandler.schemas.preview import PreviewKind, PreviewProgressEvent

logger = logging.getLogger(__name__)


class EngineError(Exception):
    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail or f"Engine returned HTTP {status_code}")


def _error_detail(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text.strip()
    if isinstance(data, dict) and data.get("detail"):
        return str(data["detail"])
    return resp.text.strip()


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


class EngineClient:
    def __init__(self, base_url: str, *, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json"},
            timeout=self._timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("EngineClient not entered as context manager")
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self.client.request(method, path, **kwargs)
        if resp.is_error:
            raise EngineError(resp.status_code, _error_detail(resp))
        if not resp.content:
            return None
        return resp.json()

    async def scan_author_folder(
        self,
        author_dir: str,
        default_author: str | None = None,
        default_download_url: str | None = None,
    ) -> list[dict[str, Any]]:
        data = await self._request(
            "POST",
            "/api/v1/import/dry-run",
            json={
                "author_dir": author_dir,
                "default_author": _blank_to_none(default_author),
                "default_download_url": _blank_to_none(default_download_url),
            },
        )
        return list(data or [])

    async def commit_drafts(self, drafts: Sequence[DraftMod]) -> CommitResult:
        data = await self._request(
            "POST",
            "/api/v1/import/commit",
            json={"drafts": [d.model_dump(mode="json") for d in drafts]},
        )
        if isinstance(data, list) and len(data) == 2:
            return CommitResult(inserted=data[0], updated=data[1])
        if isinstance(data, dict):
            return CommitResult.model_validate(data)
        return CommitResult()

    async def list_author_folders(self, library_root: str) -> list[AuthorFolder]:
        data = await self._request(
            "POST", "/api/v1/library/author-folders", json={"root": library_root}
        )
        return [AuthorFolder.model_validate(item) for item in data or []]

    async def get_library_roots(self) -> list[str]:
        data = await self._request("GET", "/api/v1/settings")
        dirs = data.get("library_dirs") if isinstance(data, dict) else None
        if not isinstance(dirs, list):
            return []
        roots: list[str] = []
        for raw in dirs:
            if isinstance(raw, str) and raw.strip() and raw not in roots:
                roots.append(raw)
        return roots

    async def start_generation(self, kind: PreviewKind) -> None:
        await self._request("POST", f"/api/v1/previews/{kind.value}/generate")

    async def start_image_generation(self) -> None:
        await self.start_generation(PreviewKind.IMAGE)

    async def start_video_generation(self) -> None:
        await self.start_generation(PreviewKind.VIDEO)

    async def cancel_generation(self, kind: PreviewKind) -> None:
        await self._request("POST", f"/api/v1/previews/{kind.value}/cancel")

    async def list_catalog(self) -> CatalogResponse:
        data = await self._request("GET", "/api/v1/catalog")
        return CatalogResponse.model_validate(data or {})

    async def get_mod_preview(self, mod_id: int) -> PreviewInfo:
        data = await self._request("GET", f"/api/v1/mods/{mod_id}/preview")
        return PreviewInfo.model_validate({"mod_id": mod_id, **(data or {})})

    async def stream_progress(self) -> AsyncIterator[PreviewProgressEvent]:
        """Yield progress events from the engine's server-sent event stream."""
        timeout = httpx.Timeout(self._timeout, read=None)
        async with self.client.stream(
            "GET",
            "/api/v1/previews/events",
            headers={"Accept": "text/event-stream"},
            timeout=timeout,
        ) as resp:
            if resp.is_error:
                await resp.aread()
                raise EngineError(resp.status_code, _error_detail(resp))
            data_lines: list[str] = []
            async for line in resp.aiter_lines():
                if line.startswith("data:"):
                    data_lines.append(line[5:].strip())
                    continue
                if line.strip() or not data_lines:
                    continue
                payload = "\n".join(data_lines)
                data_lines = []
                event = _parse_event(payload)
                if event is not None:
                    yield event


def _parse_event(payload: str) -> PreviewProgressEvent | None:
    try:
        return PreviewProgressEvent.model_validate(json.loads(payload))
    except (ValueError, ValidationError):
        logger.warning("Skipping malformed progress event: %s", payload[:200])
        return None
