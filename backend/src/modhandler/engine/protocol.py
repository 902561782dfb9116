"""Operations the sidecar consumes from the mod library engine."""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

from modhandler.schemas.catalog import CatalogResponse
from modhandler.schemas.mod import AuthorFolder, CommitResult, DraftMod, PreviewInfo
from modhandler.schemas.preview import PreviewKind, PreviewProgressEvent


class LibraryEngine(Protocol):
    async def scan_author_folder(
        self,
        author_dir: str,
        default_author: str | None = None,
        default_download_url: str | None = None,
    ) -> list[dict[str, Any]]: ...

    async def commit_drafts(self, drafts: Sequence[DraftMod]) -> CommitResult: ...

    async def list_author_folders(self, library_root: str) -> list[AuthorFolder]: ...

    async def get_library_roots(self) -> list[str]: ...

    async def start_generation(self, kind: PreviewKind) -> None: ...

    async def cancel_generation(self, kind: PreviewKind) -> None: ...

    async def list_catalog(self) -> CatalogResponse: ...

    async def get_mod_preview(self, mod_id: int) -> PreviewInfo: ...

    def stream_progress(self) -> AsyncIterator[PreviewProgressEvent]: ...
