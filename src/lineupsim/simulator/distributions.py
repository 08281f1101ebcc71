"""Per-player outcome distributions fitted from floor / projection / ceiling."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Literal, Optional, Tuple

import numpy as np

from lineupsim.models.player import Player


DEFAULT_K = 4.0
LOGNORMAL_CEILING_RATIO = 2.5

DistributionKind = Literal["normal", "lognormal", "beta"]


@dataclass(frozen=True)
class Distribution:
    """Sampling distribution matched to a player's mean and spread.

    ``params`` depends on ``kind``: ``(mean, sd)`` for normal, ``(mu, sigma)``
    of the underlying normal for lognormal, and ``(alpha, beta, low, high)``
    for beta.
    """

    kind: DistributionKind
    mean: float
    sd: float
    params: Tuple[float, ...]

    @property
    def degenerate(self) -> bool:
        return self.sd <= 0.0

    @property
    def variance(self) -> float:
        return self.sd * self.sd

    def sample(self, rng: np.random.Generator, size: Optional[int] = None):
        if self.degenerate:
            if size is None:
                return float(self.mean)
            return np.full(size, self.mean, dtype=float)
        if self.kind == "lognormal":
            mu, sigma = self.params
            return rng.lognormal(mu, sigma, size)
        if self.kind == "beta":
            alpha, beta, low, high = self.params
            return low + (high - low) * rng.beta(alpha, beta, size)
        return rng.normal(self.mean, self.sd, size)

    def standardized(self, values) -> np.ndarray:
        """Zero-mean, unit-variance deviations of draws from this distribution."""

        values = np.asarray(values, dtype=float)
        if self.degenerate:
            return np.zeros_like(values)
        return (values - self.mean) / self.sd


def normal(mean: float, sd: float) -> Distribution:
    sd = max(0.0, float(sd))
    return Distribution(kind="normal", mean=float(mean), sd=sd, params=(float(mean), sd))


def lognormal(mean: float, sd: float) -> Distribution:
    """Log-normal whose own mean and standard deviation equal ``mean`` and ``sd``."""

    sigma_sq = math.log1p((sd * sd) / (mean * mean))
    mu = math.log(mean) - sigma_sq / 2.0
    return Distribution(kind="lognormal", mean=float(mean), sd=float(sd), params=(mu, math.sqrt(sigma_sq)))


def beta(mean: float, sd: float, low: float, high: float) -> Optional[Distribution]:
    """Moment-matched beta on ``[low, high]``; ``None`` when no beta fits."""

    width = high - low
    if width <= 0.0:
        return None
    m = (mean - low) / width
    v = (sd * sd) / (width * width)
    if not 0.0 < m < 1.0 or v <= 0.0 or v >= m * (1.0 - m):
        return None
    common = m * (1.0 - m) / v - 1.0
    return Distribution(
        kind="beta",
        mean=float(mean),
        sd=float(sd),
        params=(m * common, (1.0 - m) * common, float(low), float(high)),
    )


def build_distribution(player: Player, *, k: float = DEFAULT_K) -> Distribution:
    """Pick and fit a distribution for one player.

    Boom-or-bust players (ceiling more than 2.5x the projection) get a
    log-normal, strongly left-skewed ranges get a beta bounded by floor and
    ceiling, everyone else a normal. Zero spread gives a degenerate normal
    that always returns the projection.
    """

    mean = float(player.projection)
    floor = float(player.floor)
    ceiling = float(player.ceiling)
    sd = (ceiling - floor) / k if k > 0 else 0.0
    if sd <= 0.0:
        return normal(mean, 0.0)
    if mean > 0.0 and ceiling > LOGNORMAL_CEILING_RATIO * mean:
        return lognormal(mean, sd)
    if ceiling - mean < (mean - floor) / 2.0:
        fitted = beta(mean, sd, floor, ceiling)
        if fitted is not None:
            return fitted
    return normal(mean, sd)


def sample(dist: Distribution, rng: np.random.Generator, size: Optional[int] = None):
    return dist.sample(rng, size)
