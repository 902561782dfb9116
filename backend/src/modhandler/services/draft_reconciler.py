"""Normalize and deduplicate raw scan results into editable drafts."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from modhandler.schemas.mod import DraftMod

logger = logging.getLogger(__name__)


def reconcile_drafts(raw: Iterable[DraftMod | Mapping[str, Any]]) -> list[DraftMod]:
    """Return one draft per distinct ``folder_path``.

    A later record replaces an earlier one with the same path but keeps the
    position where that path first appeared. Missing ``character_id`` and
    ``costume_id`` come out as ``None``.
    """
    by_path: dict[str, DraftMod] = {}
    for record in raw:
        draft = (
            record.model_copy()
            if isinstance(record, DraftMod)
            else DraftMod.model_validate(dict(record))
        )
        if draft.folder_path in by_path:
            logger.debug("Duplicate draft for %s, keeping the later record", draft.folder_path)
        by_path[draft.folder_path] = draft
    return list(by_path.values())
