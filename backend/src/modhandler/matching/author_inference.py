"""Map author folder names to canonical author identities via an alias table."""

import logging
from collections.abc import Mapping

from modhandler.constants import AUTHOR_ALIASES, UNKNOWN_AUTHOR
from modhandler.matching.normalization import folder_basename, normalize_folder_name

logger = logging.getLogger(__name__)


class AuthorInferenceEngine:
    """Longest-substring alias lookup over a flat ``key -> canonical`` mapping.

    When several keys of the same maximal length match, the first one in the
    mapping's iteration order is returned and the tie is logged.
    """

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self.aliases: Mapping[str, str] = AUTHOR_ALIASES if aliases is None else aliases

    def matching_keys(self, folder_name: str) -> list[str]:
        normalized = normalize_folder_name(folder_name)
        if not normalized:
            return []
        return [key for key in self.aliases if key in normalized]

    def infer(self, folder_name: str) -> str:
        matches = self.matching_keys(folder_name)
        if not matches:
            return UNKNOWN_AUTHOR

        best = matches[0]
        for key in matches[1:]:
            if len(key) > len(best):
                best = key

        tied = [k for k in matches if len(k) == len(best) and k != best]
        if tied:
            logger.warning(
                "Ambiguous author alias for %r: %s ties with %s, using %s",
                folder_name,
                best,
                ", ".join(tied),
                self.aliases[best],
            )
        return self.aliases[best]

    def infer_from_path(self, path: str) -> str:
        """Infer from the last path segment; empty paths yield an empty string."""
        name = folder_basename(path)
        if not name:
            return ""
        return self.infer(name)


_default_engine = AuthorInferenceEngine()


def infer_author_name(folder_name: str) -> str:
    return _default_engine.infer(folder_name)
