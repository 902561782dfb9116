from pydantic import BaseModel, ConfigDict


class CatalogCharacter(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    slug: str
    display_name: str


class CatalogCostume(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    character_id: int
    slug: str
    display_name: str


class CatalogResponse(BaseModel):
    characters: list[CatalogCharacter] = []
    costumes: list[CatalogCostume] = []


class CatalogOut(CatalogResponse):
    loaded: bool = False
