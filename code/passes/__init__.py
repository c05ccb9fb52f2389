from .room_fitter import run_fit_normal_rooms_pass, run_fit_special_rooms_pass
from .transport_linker import run_transport_linker_pass
from .monster_fitter import run_monster_fitter_pass
from .item_placement import run_completability_check, run_item_check_pass, run_item_placement_pass
from .door_solver import run_door_solver_pass
from .room_normalizer import run_room_normalizer_pass

__all__ = [
    "run_fit_special_rooms_pass",
    "run_fit_normal_rooms_pass",
    "run_transport_linker_pass",
    "run_monster_fitter_pass",
    "run_item_placement_pass",
    "run_item_check_pass",
    "run_completability_check",
    "run_door_solver_pass",
    "run_room_normalizer_pass",
]
