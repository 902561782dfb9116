import logging

from modhandler.engine.protocol import LibraryEngine
from modhandler.schemas.catalog import CatalogCharacter, CatalogCostume, CatalogOut

logger = logging.getLogger(__name__)


class CatalogCache:
    """Session-lifetime copy of the character and costume reference lists."""

    def __init__(self, engine: LibraryEngine) -> None:
        self._engine = engine
        self.characters: list[CatalogCharacter] = []
        self.costumes: list[CatalogCostume] = []
        self.loaded = False

    async def refresh(self) -> bool:
        try:
            res = await self._engine.list_catalog()
        except Exception:
            logger.warning("Failed to load catalog", exc_info=True)
            self.characters = []
            self.costumes = []
            self.loaded = False
            return False
        self.characters = list(res.characters)
        self.costumes = list(res.costumes)
        self.loaded = True
        logger.info(
            "Catalog loaded: %d characters, %d costumes",
            len(self.characters),
            len(self.costumes),
        )
        return True

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.refresh()

    def costumes_for(self, character_id: int | None) -> list[CatalogCostume]:
        if not character_id:
            return []
        return [c for c in self.costumes if c.character_id == character_id]

    def costume(self, costume_id: int) -> CatalogCostume | None:
        return next((c for c in self.costumes if c.id == costume_id), None)

    def to_out(self) -> CatalogOut:
        return CatalogOut(characters=self.characters, costumes=self.costumes, loaded=self.loaded)
