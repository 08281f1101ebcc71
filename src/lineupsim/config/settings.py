"""Environment-driven engine defaults."""

from __future__ import annotations

import logging
import os


logger = logging.getLogger(__name__)

OPTIMIZATION_TIMEOUT_ENV = "LINEUPSIM_OPTIMIZATION_TIMEOUT"
SIM_WORKERS_ENV = "LINEUPSIM_SIM_WORKERS"
SIM_BLOCK_SIZE_ENV = "LINEUPSIM_SIM_BLOCK_SIZE"
SIM_ITERATIONS_ENV = "LINEUPSIM_SIM_ITERATIONS"
MAX_ATTEMPTS_ENV = "LINEUPSIM_MAX_ATTEMPTS"

OPTIMIZATION_TIMEOUT_DEFAULT = 30.0
SIM_BLOCK_SIZE_DEFAULT = 2_000
SIM_ITERATIONS_DEFAULT = 10_000
MAX_ATTEMPTS_DEFAULT = 25


def _env_float(name: str, default: float, *, clamp_min: float | None = None, clamp_max: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid int for %s: %s; using default %d", name, raw, default)
        return default
    if min_value is not None:
        value = max(min_value, value)
    return value


def optimization_timeout() -> float:
    return _env_float(OPTIMIZATION_TIMEOUT_ENV, OPTIMIZATION_TIMEOUT_DEFAULT, clamp_min=0.0)


def sim_workers() -> int:
    return _env_int(SIM_WORKERS_ENV, os.cpu_count() or 1, min_value=1)


def sim_block_size() -> int:
    return _env_int(SIM_BLOCK_SIZE_ENV, SIM_BLOCK_SIZE_DEFAULT, min_value=1)


def sim_iterations() -> int:
    return _env_int(SIM_ITERATIONS_ENV, SIM_ITERATIONS_DEFAULT, min_value=1)


def max_attempts() -> int:
    return _env_int(MAX_ATTEMPTS_ENV, MAX_ATTEMPTS_DEFAULT, min_value=1)
