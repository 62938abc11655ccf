"""
Match simulation: seeded RNG and the scoreline model.
"""
from .rng import SeededRNG
from .score_generator import (
    HOME_ADVANTAGE,
    ExpectedGoals,
    ScoreGenerator,
    expected_goals,
    goals_from_expected,
)

__all__ = [
    "SeededRNG",
    "HOME_ADVANTAGE",
    "ExpectedGoals",
    "ScoreGenerator",
    "expected_goals",
    "goals_from_expected",
]
