"""Render a dungeon shape to an ASCII debug display."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from dungeon_constants import GRID_HEIGHT, GRID_WIDTH
from dungeon_geometry import GridPos

if TYPE_CHECKING:
    from dungeon_shape import ShapeCell

HEX_CHARS = "0123456789ABCDEF"


class ShapeRendererMixin:
    """Provides the debug display for DungeonShape."""

    name: str

    def cell(self, pos: GridPos) -> ShapeCell:
        raise NotImplementedError

    def get_debug_display(self) -> str:
        """Cell types on the left, the hex required-door mask of each cell on the right."""
        header_digits = "".join(str(x) for x in range(GRID_WIDTH))
        lines: List[str] = [f"Map of {self.name}", f"   {header_digits}   {header_digits}"]
        for y in range(GRID_HEIGHT):
            types = []
            masks = []
            for x in range(GRID_WIDTH):
                cell = self.cell(GridPos(x, y))
                types.append(cell.type.value)
                masks.append(HEX_CHARS[int(cell.required_doors) & 0xF] if cell.is_occupied else " ")
            lines.append(f"{y}: {''.join(types)}   {''.join(masks)}")
        return "\n".join(lines)
