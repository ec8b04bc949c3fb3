from __future__ import annotations

from ...core.constants import DEFAULT_LEVEL_STEP, DEFAULT_STAR_STEP
from ...core.exceptions import ValidationError
from .base import LevelCalculator


class StepLevelCalculator(LevelCalculator):
    """Fixed steps: level = balance // level_step + 1, stars = balance // star_step."""

    def __init__(self, *, level_step: int = DEFAULT_LEVEL_STEP, star_step: int = DEFAULT_STAR_STEP):
        if level_step <= 0 or star_step <= 0:
            raise ValidationError("Level and star steps must be greater than 0")
        self.level_step = int(level_step)
        self.star_step = int(star_step)

    def level(self, balance: int) -> int:
        return max(int(balance), 0) // self.level_step + 1

    def stars(self, balance: int) -> int:
        return max(int(balance), 0) // self.star_step
