"""Placed furniture state for the design view."""

from dataclasses import dataclass, field

from room_designer.domain.furniture import FurnitureItemRef


@dataclass
class DesignWorkspace:
    """Furniture placed in the current room and the active selection."""

    placed: list[FurnitureItemRef] = field(default_factory=list)
    selected_id: str | None = None

    @property
    def selected(self) -> FurnitureItemRef | None:
        return self._find(self.selected_id)

    def add(self, item: FurnitureItemRef) -> bool:
        """Place an item; returns False if it is already placed."""
        if self._find(item.id) is not None:
            return False
        self.placed.append(item)
        return True

    def remove(self, item_id: str) -> bool:
        """Remove a placed item and drop the selection if it pointed at it."""
        remaining = [item for item in self.placed if item.id != item_id]
        removed = len(remaining) != len(self.placed)
        self.placed = remaining
        if self.selected_id == item_id:
            self.selected_id = None
        return removed

    def select(self, item_id: str | None) -> FurnitureItemRef | None:
        """Select a placed item; unknown ids clear the selection."""
        item = self._find(item_id)
        self.selected_id = item.id if item else None
        return item

    def clear(self) -> None:
        self.placed = []
        self.selected_id = None

    def layout(self) -> list[dict[str, object]]:
        """Serializable snapshot of the placed items."""
        return [item.model_dump() for item in self.placed]

    def _find(self, item_id: str | None) -> FurnitureItemRef | None:
        if item_id is None:
            return None
        for item in self.placed:
            if item.id == item_id:
                return item
        return None
