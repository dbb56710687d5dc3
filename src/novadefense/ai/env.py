from __future__ import annotations

from pathlib import Path
import logging
import time
from typing import Any

import gymnasium as gym
import numpy as np

from novadefense.core.config import DEFAULT_CONFIG, SimConfig
from novadefense.core.engine import Engine, Snapshot, config_for_layout
from novadefense.core.model.layout import Layout, default_layout, load_layout_json

from .actions import (
    AIM_COLS,
    AIM_ROWS,
    Action,
    Fire,
    Hold,
    action_space_spec,
    flatten,
    unflatten,
)
from .masking import compute_action_mask
from .obs import MAX_ROCKETS, ROCKET_SLOT_FEATURES, build_observation
from .obs_flatten import SCALAR_KEYS, flatten_observation
from .rewards import RewardConfig, compute_reward, reward_state_from


logger = logging.getLogger(__name__)

FireCommand = tuple[int, float, float]


class NovaDefenseEnv(gym.Env):
    """
    Gymnasium wrapper: one agent step = one optional fire command, then `frame_skip` ticks.
    """
    metadata = {"render_modes": []}

    def __init__(
        self,
        *,
        layout: Layout | None = None,
        layout_path: str | Path | None = None,
        sim_config: SimConfig | None = None,
        reward_config: RewardConfig | None = None,
        frame_skip: int = 4,
        max_ticks: int = 20000,
        aim_cols: int = AIM_COLS,
        aim_rows: int = AIM_ROWS,
        max_rockets: int = MAX_ROCKETS,
        strict_invalid_actions: bool = False,
        log_dir: str | Path | None = None,
        log_prefix: str | None = None,
    ) -> None:
        super().__init__()
        if frame_skip < 1:
            raise ValueError(f"frame_skip must be >= 1, got {frame_skip}")
        self.sim_config = sim_config if sim_config is not None else DEFAULT_CONFIG
        if layout is None:
            if layout_path is not None:
                layout = load_layout_json(layout_path)
            else:
                layout = default_layout(self.sim_config.world_width, self.sim_config.world_height)
        self.layout = layout
        self.sim_config = config_for_layout(self.sim_config, layout)
        self.reward_config = reward_config if reward_config is not None else RewardConfig()
        self.frame_skip = int(frame_skip)
        self.max_ticks = int(max_ticks)
        self.max_rockets = int(max_rockets)
        self.strict_invalid_actions = strict_invalid_actions

        self.action_spec = action_space_spec(self.layout, aim_cols=aim_cols, aim_rows=aim_rows)
        self.action_space = gym.spaces.Discrete(self.action_spec.num_actions)
        self._slot_size = len(ROCKET_SLOT_FEATURES)
        self._obs_dim = len(SCALAR_KEYS) + self.max_rockets * self._slot_size
        self.observation_space = gym.spaces.Box(
            low=0.0,
            high=1.0,
            shape=(self._obs_dim,),
            dtype=np.float32,
        )

        self.engine: Engine | None = None
        self.episode_seed: int | None = None
        self.episode_commands: list[FireCommand] = []
        self._last_action_mask: np.ndarray | None = None
        self._last_obs_dict: dict[str, Any] | None = None

        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.log_prefix = log_prefix or "env"
        self._log_handle = None

    @property
    def last_obs(self) -> dict[str, Any] | None:
        return self._last_obs_dict

    def __getstate__(self):
        state = dict(self.__dict__)
        # Pas de handle de fichier dans un pickle (SubprocVecEnv).
        state["_log_handle"] = None
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)

    def _log_line(self, message: str) -> None:
        if self.log_dir is None:
            return
        if self._log_handle is None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._log_handle = (self.log_dir / f"{self.log_prefix}.log").open("a", encoding="utf-8")
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        self._log_handle.write(f"{timestamp} {message}\n")
        self._log_handle.flush()

    def reset(self, *, seed: int | None = None, options: dict[str, Any] | None = None) -> tuple[np.ndarray, dict]:
        super().reset(seed=seed)
        engine_seed = int(self.np_random.integers(1, 2**31 - 1))
        if options and options.get("engine_seed") is not None:
            engine_seed = int(options["engine_seed"])
        self.engine = Engine(self.layout, self.sim_config, seed=engine_seed)
        snapshot = self.engine.restart()
        self.episode_seed = self.engine.seed
        self.episode_commands = []

        obs = self._observe()
        self._last_action_mask = self._compute_action_mask()
        self._log_line(f"reset layout={self.layout.name} seed={seed} engine_seed={self.episode_seed}")
        info = {
            "engine_seed": self.episode_seed,
            "action_mask": self._last_action_mask,
            **self._snapshot_info(snapshot),
        }
        return obs, info

    def _observe(self) -> np.ndarray:
        if self.engine is None:
            raise RuntimeError("Environment not reset")
        obs_dict = build_observation(self.engine.state, config=self.sim_config, max_rockets=self.max_rockets)
        self._last_obs_dict = obs_dict
        return np.asarray(
            flatten_observation(obs_dict, max_rockets=self.max_rockets, slot_size=self._slot_size),
            dtype=np.float32,
        )

    def _compute_action_mask(self) -> np.ndarray:
        if self.engine is None:
            raise RuntimeError("Environment not reset")
        return np.asarray(compute_action_mask(self.engine.state, self.action_spec), dtype=bool)

    def action_masks(self) -> np.ndarray:
        if self._last_action_mask is None:
            self._last_action_mask = self._compute_action_mask()
        return self._last_action_mask

    def get_action_mask(self) -> np.ndarray:
        return self.action_masks()

    def step(self, action: Action | int) -> tuple[np.ndarray, float, bool, bool, dict[str, Any]]:
        if self.engine is None:
            raise RuntimeError("Environment not reset")
        if self.engine.phase != "playing":
            raise RuntimeError(f"step() called in phase={self.engine.phase!r}; call reset()")

        invalid_action = False
        if isinstance(action, (int, np.integer)):
            try:
                action_obj = unflatten(int(action), self.action_spec)
                action_id = int(action)
            except ValueError as exc:
                if self.strict_invalid_actions:
                    raise ValueError(f"Invalid action id {action!r}") from exc
                action_obj, action_id, invalid_action = Hold(), self.action_spec.hold, True
        else:
            action_obj = action
            try:
                action_id = flatten(action_obj, self.action_spec)
            except (TypeError, ValueError) as exc:
                if self.strict_invalid_actions:
                    raise ValueError(f"Invalid action {action_obj!r}") from exc
                action_obj, action_id, invalid_action = Hold(), self.action_spec.hold, True

        mask_before = self.action_masks()
        if not bool(mask_before[action_id]):
            if self.strict_invalid_actions:
                raise ValueError(f"Action not valid in current state: {action_obj!r}")
            action_obj, invalid_action = Hold(), True

        prev_state = reward_state_from(self.engine.state)
        fired = False
        if isinstance(action_obj, Fire):
            x, y = self.action_spec.aim_points[action_obj.cell]
            tick_index = int(self.engine.state.ticks)
            if self.engine.fire(x, y) is not None:
                fired = True
                self.episode_commands.append((tick_index, float(x), float(y)))

        snapshot = self.engine.snapshot()
        for _ in range(self.frame_skip):
            snapshot = self.engine.tick()
            if snapshot.phase != "playing":
                break

        terminated = snapshot.phase in ("won", "lost")
        truncated = not terminated and self.engine.state.ticks >= self.max_ticks
        new_state = reward_state_from(self.engine.state)
        reward = compute_reward(
            prev_state,
            new_state,
            config=self.reward_config,
            fired=fired,
            invalid_action=invalid_action,
            episode_done=terminated,
            game_won=snapshot.phase == "won",
        )

        obs = self._observe()
        self._last_action_mask = self._compute_action_mask()
        info: dict[str, Any] = {
            "invalid_action": invalid_action,
            "fired": fired,
            "action_mask": self._last_action_mask,
            **self._snapshot_info(snapshot),
        }
        if terminated or truncated:
            message = "episode_done phase={} ticks={} score={} truncated={}".format(
                snapshot.phase,
                self.engine.state.ticks,
                snapshot.score,
                truncated,
            )
            self._log_line(message)
            logger.info(message)
        return obs, float(reward), terminated, truncated, info

    def _snapshot_info(self, snapshot: Snapshot) -> dict[str, Any]:
        return {
            "phase": snapshot.phase,
            "score": snapshot.score,
            "ammo": (snapshot.ammo.left, snapshot.ammo.center, snapshot.ammo.right),
            "ticks": int(self.engine.state.ticks) if self.engine is not None else 0,
        }

    def render(self) -> None:
        return None

    def close(self) -> None:
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None
        return None
