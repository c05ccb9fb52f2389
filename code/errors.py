"""Exception types raised while regenerating dungeon layouts."""

from __future__ import annotations


class RandomizerError(Exception):
    """A fatal failure; the attempt for this seed is over."""


class PoolExhaustedError(RandomizerError):
    """A pool (rooms or items) ran dry before every cell was served."""


class UnsolvableRoomError(RandomizerError):
    """A room has no usable exit, or no way to walk between its exits."""


class TransportPairingError(RandomizerError):
    """Transport staircases can only exist in pairs."""


class RecoverableRandomizerError(RandomizerError):
    """The layout for this seed is unsatisfiable; retrying with another seed may succeed."""
