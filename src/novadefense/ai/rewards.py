from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RewardState:
    score: int
    ammo: int
    batteries_alive: int
    cities_alive: int


@dataclass(frozen=True, slots=True)
class RewardConfig:
    score_weight: float = 0.05
    battery_loss_penalty: float = 10.0
    city_loss_penalty: float = 5.0
    shot_penalty: float = 0.1
    invalid_action_penalty: float = 0.0
    terminal_win_bonus: float = 100.0
    terminal_loss_penalty: float = 100.0


def reward_state_from(state) -> RewardState:
    batteries = list(getattr(state, "batteries", []) or [])
    cities = list(getattr(state, "cities", []) or [])
    return RewardState(
        score=int(getattr(state, "score", 0)),
        ammo=sum(int(b.ammo) for b in batteries),
        batteries_alive=sum(1 for b in batteries if not b.destroyed),
        cities_alive=sum(1 for c in cities if not c.destroyed),
    )


def compute_reward_breakdown(
    prev_state: RewardState,
    new_state: RewardState,
    *,
    config: RewardConfig,
    fired: bool = False,
    invalid_action: bool = False,
    episode_done: bool = False,
    game_won: bool = False,
) -> dict[str, float]:
    score_delta = float(new_state.score - prev_state.score)
    batteries_lost = float(max(0, prev_state.batteries_alive - new_state.batteries_alive))
    cities_lost = float(max(0, prev_state.cities_alive - new_state.cities_alive))

    score_reward = score_delta * config.score_weight
    battery_penalty = batteries_lost * config.battery_loss_penalty
    city_penalty = cities_lost * config.city_loss_penalty
    shot_penalty = float(config.shot_penalty) if fired else 0.0
    invalid_action_penalty = float(config.invalid_action_penalty) if invalid_action else 0.0
    terminal_bonus = 0.0
    terminal_penalty = 0.0
    if episode_done:
        if game_won:
            terminal_bonus = float(config.terminal_win_bonus)
        else:
            terminal_penalty = float(config.terminal_loss_penalty)

    total = (
        score_reward
        - battery_penalty
        - city_penalty
        - shot_penalty
        - invalid_action_penalty
        + terminal_bonus
        - terminal_penalty
    )
    return {
        "total": float(total),
        "score_delta": score_delta,
        "batteries_lost": batteries_lost,
        "cities_lost": cities_lost,
        "battery_loss_penalty": battery_penalty,
        "city_loss_penalty": city_penalty,
        "shot_penalty": shot_penalty,
        "invalid_action_penalty": invalid_action_penalty,
        "terminal_bonus": terminal_bonus,
        "terminal_penalty": terminal_penalty,
    }


def compute_reward(
    prev_state: RewardState,
    new_state: RewardState,
    *,
    config: RewardConfig,
    fired: bool = False,
    invalid_action: bool = False,
    episode_done: bool = False,
    game_won: bool = False,
) -> float:
    return compute_reward_breakdown(
        prev_state,
        new_state,
        config=config,
        fired=fired,
        invalid_action=invalid_action,
        episode_done=episode_done,
        game_won=game_won,
    )["total"]
