"""Shared constants for dungeon regeneration."""

from __future__ import annotations

from dungeon_geometry import RoomEntrances

GRID_WIDTH = 8
GRID_HEIGHT = 8

# Rooms are laid out in blocks; the tile map is TILES_PER_BLOCK times finer.
TILES_PER_BLOCK = 2
ROOM_BLOCK_WIDTH = 16
ROOM_BLOCK_HEIGHT = 11
ROOM_TILE_WIDTH = ROOM_BLOCK_WIDTH * TILES_PER_BLOCK
ROOM_TILE_HEIGHT = ROOM_BLOCK_HEIGHT * TILES_PER_BLOCK

# Size of a room in world pixels; used to derive world-entry coordinates from grid cells.
ROOM_PIXEL_WIDTH = 256
ROOM_PIXEL_HEIGHT = 176

# Block the player has to reach to use a door on each side.
DOOR_PROBE_BLOCKS = {
    RoomEntrances.EAST: (13, 5),
    RoomEntrances.WEST: (2, 5),
    RoomEntrances.NORTH: (7, 2),
    RoomEntrances.SOUTH: (7, 8),
}

# Chance of adding a door between two cells that are already connected some other way.
BONUS_DOOR_PROBABILITY = 0.5
DEFAULT_SIZE_VARIANCE = 2
MAX_DOOR_ATTEMPTS = 100
MAX_REFIT_DOORS = 100
MAX_ITEM_ATTEMPTS = 100
