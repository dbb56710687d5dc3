from __future__ import annotations

from dataclasses import fields
import hashlib
import json
from pathlib import Path
from typing import Any

from novadefense.core.config import SimConfig, sim_config_from_dict

from .rewards import RewardConfig


_SUPPORTED_SCHEMA_VERSIONS = {1}
_ALLOWED_KEYS: dict[str, Any] = {
    "schema_version": None,
    "run": {
        "seed": None,
        "policy": None,
        "max_ticks": None,
    },
    "layout": {
        "path": None,
    },
    "sim": {f.name: None for f in fields(SimConfig)},
    "env": {
        "frame_skip": None,
        "max_ticks": None,
        "aim_cols": None,
        "aim_rows": None,
        "max_rockets": None,
        "strict_invalid_actions": None,
    },
    "reward": {f.name: None for f in fields(RewardConfig)},
}


def load_json_config(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError(f"config root must be a JSON object: {p}")
    _validate_config(payload)
    return payload


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in out and isinstance(out[key], dict) and isinstance(value, dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = value
    return out


def apply_overrides(cfg: dict[str, Any], overrides_list: list[str] | None) -> dict[str, Any]:
    if not overrides_list:
        return cfg

    out = cfg
    for item in overrides_list:
        if "=" not in item:
            raise ValueError(f"override must contain '=': {item}")
        path_str, value_str = item.split("=", 1)
        if not path_str:
            raise ValueError(f"override path empty: {item}")
        keys = path_str.split(".")
        if any(not key for key in keys):
            raise ValueError(f"override path has empty segment: {item}")
        value = _cast_scalar(value_str)

        cursor = out
        for key in keys[:-1]:
            if key not in cursor or not isinstance(cursor[key], dict):
                cursor[key] = {}
            cursor = cursor[key]
        cursor[keys[-1]] = value
    return out


def dump_effective_config(run_dir: str | Path, cfg: dict[str, Any]) -> str:
    run_path = Path(run_dir)
    run_path.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(cfg, sort_keys=True, ensure_ascii=False, indent=2).encode("utf-8")
    sha = hashlib.sha256(payload).hexdigest()

    eff_path = run_path / "effective_config.json"
    with eff_path.open("w", encoding="utf-8") as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2, sort_keys=True)

    (run_path / "effective_config.sha256").write_text(sha + "\n", encoding="utf-8")
    return sha


def sim_config_from(cfg: dict[str, Any]) -> SimConfig:
    return sim_config_from_dict(cfg.get("sim"))


def reward_config_from(cfg: dict[str, Any]) -> RewardConfig:
    section = cfg.get("reward") or {}
    return RewardConfig(**{key: float(value) for key, value in section.items()})


def env_kwargs_from(cfg: dict[str, Any]) -> dict[str, Any]:
    env_cfg = dict(cfg.get("env") or {})
    layout_path = (cfg.get("layout") or {}).get("path")
    if layout_path:
        env_cfg["layout_path"] = str(layout_path)
    env_cfg["sim_config"] = sim_config_from(cfg)
    env_cfg["reward_config"] = reward_config_from(cfg)
    return env_cfg


def _cast_scalar(value: str) -> Any:
    lowered = value.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in ("null", "none"):
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_positive_int(parent: dict[str, Any], key: str, *, section: str) -> None:
    if key not in parent:
        return
    value = parent[key]
    if not _is_number(value) or int(value) != value:
        raise ValueError(f"{section}.{key} must be an integer")
    if value < 1:
        raise ValueError(f"{section}.{key} must be >= 1")


def _validate_config(cfg: dict[str, Any]) -> None:
    unknown = _find_unknown_keys(cfg, _ALLOWED_KEYS, path="")
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ValueError(f"unknown config keys: {unknown_str}")

    schema_version = cfg.get("schema_version")
    if schema_version not in _SUPPORTED_SCHEMA_VERSIONS:
        raise ValueError(f"unsupported schema_version: {schema_version}")

    for section in ("run", "layout", "sim", "env", "reward"):
        value = cfg.get(section)
        if value is not None and not isinstance(value, dict):
            raise ValueError(f"config '{section}' must be a JSON object")

    env_cfg = cfg.get("env") or {}
    for key in ("frame_skip", "max_ticks", "aim_cols", "aim_rows", "max_rockets"):
        _require_positive_int(env_cfg, key, section="env")
    strict = env_cfg.get("strict_invalid_actions")
    if strict is not None and not isinstance(strict, bool):
        raise ValueError("env.strict_invalid_actions must be a boolean")

    run_cfg = cfg.get("run") or {}
    _require_positive_int(run_cfg, "max_ticks", section="run")
    seed = run_cfg.get("seed")
    if seed is not None and (not _is_number(seed) or int(seed) != seed):
        raise ValueError("run.seed must be an integer or null")

    for key, value in (cfg.get("reward") or {}).items():
        if not _is_number(value):
            raise ValueError(f"reward.{key} must be a number")

    # SimConfig porte ses propres bornes.
    sim_config_from_dict(cfg.get("sim"))


def _find_unknown_keys(value: Any, allowed: Any, *, path: str) -> list[str]:
    if not isinstance(value, dict) or not isinstance(allowed, dict):
        return []
    unknown: list[str] = []
    for key, sub_value in value.items():
        if key not in allowed:
            unknown.append(f"{path}{key}" if path else key)
            continue
        sub_allowed = allowed[key]
        if isinstance(sub_value, dict) and isinstance(sub_allowed, dict):
            child_path = f"{path}{key}."
            unknown.extend(_find_unknown_keys(sub_value, sub_allowed, path=child_path))
    return unknown
