"""Error types for squares board extraction and EV analysis."""

from __future__ import annotations


class SquaresError(ValueError):
    """Base error for deterministic input-validation failures."""


class InvalidOdds(SquaresError):
    """Raised when an American odds quotation is zero."""


class MalformedDigitAxis(SquaresError):
    """Raised when a board axis is not a permutation of 0-9."""


class MalformedBoardShape(SquaresError):
    """Raised when the ownership grid is not 10x10."""


class IncompleteOddsCoverage(SquaresError):
    """Raised when a market is missing one or more digit combinations."""

    def __init__(self, market: str, missing: list[tuple[int, int]], *, sample_size: int = 8):
        self.market = market
        self.missing = list(missing)
        sample = ", ".join(f"away={away} home={home}" for away, home in self.missing[:sample_size])
        super().__init__(f"{market}: missing {len(self.missing)} digit combos ({sample})")


class DegenerateProbabilityMass(SquaresError):
    """Raised when blended probabilities cannot be normalized."""


class IncompleteOwnershipGrid(SquaresError):
    """Raised when fewer than 10 usable ownership rows are found."""


class UnderfilledPastedInput(SquaresError):
    """Raised when pasted text has fewer than 10 non-blank rows."""
