from __future__ import annotations

from .actions import ActionSpaceSpec


def can_fire(state) -> bool:
    if getattr(state, "phase", "menu") != "playing":
        return False
    return any(not b.destroyed and b.ammo > 0 for b in getattr(state, "batteries", []) or [])


def compute_action_mask(state, spec: ActionSpaceSpec) -> list[bool]:
    mask = [False] * spec.num_actions
    mask[spec.hold] = True
    if can_fire(state):
        for idx in range(len(spec.aim_points)):
            mask[spec.fire_offset + idx] = True
    return mask
