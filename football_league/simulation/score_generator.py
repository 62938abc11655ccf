"""
Score Generator: turns two team strengths into a football scoreline.

Expected goals start at a 1.5 baseline per side and move by strength
difference / 20 (10 rating points is roughly half a goal), floored at 0.3.
Goals are then drawn with a geometric-trial approximation of a Poisson draw:
multiply uniform draws until the running product drops to e^(-expected) and
count the trials. This is a fast stylised approximation, not a calibrated
Poisson sampler; the accuracy gap is a known compromise.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from .rng import SeededRNG

HOME_ADVANTAGE = 5
BASELINE_EXPECTED_GOALS = 1.5
STRENGTH_DIFF_PER_GOAL = 20.0
MIN_EXPECTED_GOALS = 0.3


@dataclass(frozen=True)
class ExpectedGoals:
    home: float
    away: float


def expected_goals(
    home_strength: int,
    away_strength: int,
    home_advantage: int = HOME_ADVANTAGE,
) -> ExpectedGoals:
    """Per-side expected goals after home advantage, floored at MIN_EXPECTED_GOALS."""
    diff = (home_strength + home_advantage) - away_strength
    shift = diff / STRENGTH_DIFF_PER_GOAL
    return ExpectedGoals(
        home=max(MIN_EXPECTED_GOALS, BASELINE_EXPECTED_GOALS + shift),
        away=max(MIN_EXPECTED_GOALS, BASELINE_EXPECTED_GOALS - shift),
    )


def goals_from_expected(expected: float, rng: SeededRNG) -> int:
    """Geometric-trial Poisson approximation. Never negative."""
    threshold = math.exp(-expected)
    probability = 1.0
    trials = 0
    while probability > threshold:
        probability *= rng.random()
        trials += 1
    return max(0, trials - 1)


class ScoreGenerator:
    """
    Stateless apart from its RNG. Pass a seeded RNG for reproducible results;
    the default is seeded from system entropy.
    """

    def __init__(self, rng: SeededRNG | None = None, home_advantage: int = HOME_ADVANTAGE) -> None:
        self._rng = rng or SeededRNG()
        self.home_advantage = home_advantage

    def generate(self, home_strength: int, away_strength: int) -> tuple[int, int]:
        xg = expected_goals(home_strength, away_strength, self.home_advantage)
        home_goals = goals_from_expected(xg.home, self._rng)
        away_goals = goals_from_expected(xg.away, self._rng)
        return home_goals, away_goals
