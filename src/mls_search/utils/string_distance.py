"""
String Distance Utility Functions

Edit-distance helpers used for typo-tolerant location matching.
"""
from rapidfuzz.distance import Levenshtein


def levenshtein_distance(first: str, second: str) -> int:
    """
    Calculate the Levenshtein edit distance between two strings.

    Each single-character insertion, deletion or substitution costs 1.

    Args:
        first: First string
        second: Second string

    Returns:
        Minimum number of edits needed to turn ``first`` into ``second``

    Example:
        >>> levenshtein_distance("pedrigal", "pedregal")
        1
    """
    return Levenshtein.distance(first, second)


def fuzzy_threshold(candidate: str, max_distance: int = 3) -> int:
    """
    Maximum edit distance accepted for a candidate, scaled to its length.

    Short names tolerate fewer typos: a 6-letter name accepts 2 edits,
    anything of 9+ letters accepts ``max_distance``.

    Args:
        candidate: Candidate value (already lowercased)
        max_distance: Upper bound regardless of length

    Returns:
        Accepted distance threshold
    """
    return min(max_distance, len(candidate) // 3)
