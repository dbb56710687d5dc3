from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from novadefense.core.model.layout import Layout


AIM_COLS = 16
AIM_ROWS = 9
# Bande du sol (batteries, villes) exclue de la grille de visée.
GROUND_MARGIN = 60.0


class ActionType(Enum):
    HOLD = "HOLD"
    FIRE = "FIRE"


@dataclass(frozen=True, slots=True)
class Hold:
    pass


@dataclass(frozen=True, slots=True)
class Fire:
    cell: int


Action = Hold | Fire


@dataclass(frozen=True, slots=True)
class ActionSpaceSpec:
    layout_name: str
    aim_cols: int
    aim_rows: int
    aim_points: tuple[tuple[float, float], ...]
    hold: int
    fire_offset: int
    num_actions: int


def action_space_spec(
    layout: Layout,
    *,
    aim_cols: int = AIM_COLS,
    aim_rows: int = AIM_ROWS,
    ground_margin: float = GROUND_MARGIN,
) -> ActionSpaceSpec:
    if aim_cols < 1 or aim_rows < 1:
        raise ValueError(f"aim grid must be at least 1x1, got {aim_cols}x{aim_rows}")
    sky_height = max(1.0, float(layout.height) - ground_margin)
    cell_w = float(layout.width) / aim_cols
    cell_h = sky_height / aim_rows
    points = tuple(
        ((col + 0.5) * cell_w, (row + 0.5) * cell_h)
        for row in range(aim_rows)
        for col in range(aim_cols)
    )
    return ActionSpaceSpec(
        layout_name=layout.name,
        aim_cols=aim_cols,
        aim_rows=aim_rows,
        aim_points=points,
        hold=0,
        fire_offset=1,
        num_actions=1 + len(points),
    )


def nearest_aim_cell(spec: ActionSpaceSpec, x: float, y: float) -> int:
    best = 0
    best_dist = float("inf")
    for idx, (px, py) in enumerate(spec.aim_points):
        d = (px - x) ** 2 + (py - y) ** 2
        if d < best_dist:
            best_dist = d
            best = idx
    return best


def flatten(action: Action, spec: ActionSpaceSpec) -> int:
    if isinstance(action, Hold):
        return spec.hold
    if isinstance(action, Fire):
        if action.cell < 0 or action.cell >= len(spec.aim_points):
            raise ValueError(f"Invalid cell={action.cell}")
        return spec.fire_offset + action.cell
    raise TypeError(f"Unsupported action {action!r}")


def unflatten(action_id: int, spec: ActionSpaceSpec) -> Action:
    if action_id == spec.hold:
        return Hold()
    cell = action_id - spec.fire_offset
    if 0 <= cell < len(spec.aim_points):
        return Fire(cell=cell)
    raise ValueError(f"Invalid action_id={action_id}")


def action_to_dict(action: Action) -> dict:
    if isinstance(action, Hold):
        return {"type": ActionType.HOLD.value}
    if isinstance(action, Fire):
        return {"type": ActionType.FIRE.value, "cell": int(action.cell)}
    raise TypeError(f"Unsupported action {action!r}")


def action_from_dict(data: dict) -> Action:
    raw_type = str(data.get("type", "")).upper()
    if raw_type == ActionType.HOLD.value:
        return Hold()
    if raw_type == ActionType.FIRE.value:
        return Fire(cell=int(data.get("cell", 0)))
    raise ValueError(f"Unknown action type {raw_type!r}")
