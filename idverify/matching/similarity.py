"""Coarse string similarity used to compare OCR text with application data.

The score is a character-bag overlap, not an edit distance: every character
of the shorter string that occurs anywhere in the longer one counts as a
match. It tolerates OCR noise and reordering, and can over-score
anagram-like inputs.
"""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def similarity(a: str, b: str) -> int:
    """Score how alike two strings are on a 0-100 scale.

    Args:
        a: First string.
        b: Second string.

    Returns:
        100 for strings equal after trimming and case-folding, 0 when either
        input is empty, otherwise the share of the longer string's length
        covered by characters of the shorter string found in the longer.
    """
    if not a or not b:
        return 0

    s1 = a.strip().casefold()
    s2 = b.strip().casefold()
    if s1 == s2:
        return 100

    longer, shorter = (s1, s2) if len(s1) > len(s2) else (s2, s1)

    matches = sum(1 for ch in shorter if ch in longer)
    return round_half_up(matches / len(longer) * 100)
