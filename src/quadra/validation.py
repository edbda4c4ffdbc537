"""Validation errors and score rules for quadra.

Every error raised by the engine derives from ValidationError. They are
caller-recoverable: the message names the group, fixture or entrant at fault
so the calling workflow can show actionable feedback.
"""

from typing import Optional


class ValidationError(Exception):
    """Raised when validation fails.

    Attributes:
        field: Name of the offending input (group, fixture, parameter), if known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class UnsupportedCohortSize(ValidationError):
    """Cohort size has no fixed rotation table (Super-X needs 8 or 12)."""

    pass


class InvalidGroupSize(ValidationError):
    """Group does not have exactly four entrants."""

    pass


class TooManySeeds(ValidationError):
    """More seeded entrants than groups."""

    pass


class ImbalancedCohort(ValidationError):
    """Entrants cannot be split into complete groups or pairs."""

    pass


class InsufficientQualifiers(ValidationError):
    """Fewer than two qualifiers for an elimination bracket."""

    pass


class EditWindowClosed(ValidationError):
    """Result can no longer be changed (the stage has moved on)."""

    pass


class RevertWithoutApply(ValidationError):
    """Attempt to reverse a result that was never applied."""

    pass


class InvalidScore(ValidationError):
    """Set score is not a legal single-set result."""

    pass


class UnknownStatRecord(ValidationError):
    """Result touches an entrant that was never admitted to the scope."""

    pass


def validate_set_score(games_a: int, games_b: int) -> tuple[bool, str]:
    """Validate a single set score.

    Rules:
    - Games cannot be negative
    - A set cannot end tied (there must be a winner)

    Args:
        games_a: Games won by side A
        games_b: Games won by side B

    Returns:
        Tuple of (is_valid, error_message)
        - is_valid: True if the set score is valid
        - error_message: Empty string if valid, otherwise the error description

    Examples:
        >>> validate_set_score(6, 4)
        (True, '')
        >>> validate_set_score(7, 6)
        (True, '')
        >>> validate_set_score(5, 5)
        (False, 'A set cannot end tied (there must be a winner)')
    """
    if not isinstance(games_a, int) or not isinstance(games_b, int):
        return False, "Games must be whole numbers"

    if games_a < 0 or games_b < 0:
        return False, "Games cannot be negative"

    if games_a == games_b:
        return False, "A set cannot end tied (there must be a winner)"

    return True, ""


def validate_match_score(sets: list[tuple[int, int]]) -> tuple[bool, str]:
    """Validate a match score.

    Matches are decided in a single set, so exactly one set must be given.

    Args:
        sets: List of (games_a, games_b) tuples

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_match_score([(6, 3)])
        (True, '')
        >>> validate_match_score([(6, 3), (6, 4)])
        (False, 'A match is a single set (got 2 sets)')
    """
    if not sets:
        return False, "A match must have one set"

    if len(sets) != 1:
        return False, f"A match is a single set (got {len(sets)} sets)"

    is_valid, error_msg = validate_set_score(*sets[0])
    if not is_valid:
        return False, f"Set 1: {error_msg}"

    return True, ""
