from __future__ import annotations

# Park-Miller "minimal standard" : state in [1, 2^31 - 2].
_MODULUS = 0x7FFFFFFF
_MULTIPLIER = 16807


def normalize_seed(seed: int | None) -> int:
    if seed is None:
        return 1
    seed_val = int(seed) & _MODULUS
    if seed_val == _MODULUS:
        seed_val -= 1
    return seed_val if seed_val != 0 else 1


def seed_state(state, seed: int | None) -> int:
    seed_val = normalize_seed(seed)
    setattr(state, "rng_state", seed_val)
    if hasattr(state, "rng_calls"):
        setattr(state, "rng_calls", 0)
    return seed_val


def get_state_seed(state) -> int:
    return int(getattr(state, "rng_state", 1))


def rand_next(state) -> int:
    value = (get_state_seed(state) * _MULTIPLIER) % _MODULUS
    state.rng_state = value
    if hasattr(state, "rng_calls"):
        state.rng_calls += 1
    return value


def rand_float(state) -> float:
    """Uniform float in [0, 1)."""
    return (rand_next(state) - 1) / (_MODULUS - 1)


def rand_uniform(state, low: float, high: float) -> float:
    return low + rand_float(state) * (high - low)


def rand_index(state, count: int) -> int:
    if count <= 0:
        raise ValueError(f"rand_index needs a positive count, got {count}")
    return min(count - 1, int(rand_float(state) * count))
