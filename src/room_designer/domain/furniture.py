"""Furniture catalog records."""

from pydantic import BaseModel, ConfigDict

FURNITURE_CATEGORIES = ("Chairs", "Sofas", "Tables", "Lamps", "Rugs")
FURNITURE_STYLES = ("modern", "scandinavian", "bohemian", "industrial")


class Dimensions(BaseModel):
    """Bounding box of a furniture item."""

    model_config = ConfigDict(frozen=True)

    width: float
    height: float
    depth: float


class FurnitureItemRef(BaseModel):
    """Immutable catalog entry passed to the layout and viewport."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str
    name: str
    category: str
    style: str
    dimensions: Dimensions
    model_path: str
