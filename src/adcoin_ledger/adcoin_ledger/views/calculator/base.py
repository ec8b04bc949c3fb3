from __future__ import annotations

from abc import ABC, abstractmethod


class LevelCalculator(ABC):
    """Calculator interface (Strategy Pattern for student levels)."""

    @abstractmethod
    def level(self, balance: int) -> int:
        raise NotImplementedError

    @abstractmethod
    def stars(self, balance: int) -> int:
        raise NotImplementedError
