from __future__ import annotations
from pathlib import Path
import argparse
import logging

from novadefense.ai.config_loader import apply_overrides, env_kwargs_from, load_json_config
from novadefense.ai.env import NovaDefenseEnv
from novadefense.ai.policies.baseline import make_policy
from novadefense.io.replay import (
    FireCommand,
    Replay,
    build_state_check,
    load_replay,
    run_replay_headless,
    save_replay,
    summarize,
)


logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(message)s",
    )


def run_episode(env: NovaDefenseEnv, policy, *, seed: int | None) -> dict:
    env.reset(seed=seed)
    policy.reset(env)
    terminated = truncated = False
    total_reward = 0.0
    while not (terminated or truncated):
        action = policy.next_action(env)
        _, reward, terminated, truncated, _ = env.step(action)
        total_reward += reward
    if env.engine is None:
        raise RuntimeError("Environment lost its engine")
    summary = summarize(env.engine.state)
    summary["reward"] = total_reward
    summary["truncated"] = bool(truncated)
    return summary


def main() -> int:
    ap = argparse.ArgumentParser(description="Run one headless Nova Defense round with a scripted policy.")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--policy", choices=["heuristic", "random", "idle"], default=None)
    ap.add_argument("--max-ticks", type=int, default=None)
    ap.add_argument("--frame-skip", type=int, default=None)
    ap.add_argument("--config", default=None, help="JSON config (schema_version 1)")
    ap.add_argument("--set", dest="overrides", action="append", default=None, help="key.path=value override")
    ap.add_argument("--save-replay", default=None, help="Write the round's command log to this path")
    ap.add_argument("--check-replay", default=None, help="Re-simulate a saved replay and exit")
    ap.add_argument("--verbose", action=argparse.BooleanOptionalAction, default=False)
    args = ap.parse_args()

    _configure_logging(args.verbose)

    cfg: dict = {"schema_version": 1}
    if args.config:
        cfg = load_json_config(args.config)
    cfg = apply_overrides(cfg, args.overrides)

    env_kwargs = env_kwargs_from(cfg)
    run_cfg = cfg.get("run") or {}

    if args.check_replay:
        replay = load_replay(args.check_replay)
        # Les overrides sim.* explicites priment sur la config enregistrée.
        sim_config = env_kwargs["sim_config"] if cfg.get("sim") else None
        summary = run_replay_headless(replay, config=sim_config)
        print(f"replay ok phase={summary['phase']} score={summary['score']} ticks={summary['ticks']}")
        return 0

    if args.max_ticks is not None:
        env_kwargs["max_ticks"] = args.max_ticks
    elif run_cfg.get("max_ticks") is not None:
        env_kwargs["max_ticks"] = int(run_cfg["max_ticks"])
    if args.frame_skip is not None:
        env_kwargs["frame_skip"] = args.frame_skip

    seed = args.seed if args.seed is not None else run_cfg.get("seed")
    policy_name = args.policy if args.policy else str(run_cfg.get("policy") or "heuristic")

    env = NovaDefenseEnv(**env_kwargs)
    try:
        policy = make_policy(policy_name, seed=seed, verbose=args.verbose)
        summary = run_episode(env, policy, seed=seed)

        if args.save_replay and env.engine is not None:
            replay = Replay(
                seed=int(env.episode_seed or 1),
                ticks=int(env.engine.state.ticks),
                commands=[FireCommand(tick=t, x=x, y=y) for t, x, y in env.episode_commands],
                layout_path=env_kwargs.get("layout_path"),
                state_hashes=[build_state_check(env.engine.state)],
                final_summary=summarize(env.engine.state),
                sim_config=env.sim_config.to_dict(),
            )
            save_replay(Path(args.save_replay), replay)
            logger.info("replay_path=%s", args.save_replay)
    finally:
        env.close()

    ammo = "/".join(str(a) for a in summary["ammo"])
    print(
        f"phase={summary['phase']} score={summary['score']} ticks={summary['ticks']} ammo={ammo} "
        f"batteries_alive={summary['batteries_alive']} cities_alive={summary['cities_alive']}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
