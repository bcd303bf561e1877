"""
Jaro-Winkler string similarity for supply names.

Scoring rules:
    - Names are compared after lowercasing and trimming, nothing else.
      Accents, punctuation and units are left alone so that scores stay
      identical to the ones the supply team already reviewed.
    - Identical names score 1.0, an empty name scores 0.0 against anything.
    - The Winkler bonus rewards up to 4 shared leading characters with a
      scaling factor of 0.1.
"""

from typing import List, Optional, Tuple

PREFIX_SCALE = 0.1
MAX_PREFIX_LENGTH = 4


def normalize_name(name: Optional[str]) -> str:
    """Lowercase and trim a supply name. ``None`` becomes the empty string."""
    if not isinstance(name, str):
        return ""
    return name.lower().strip()


def _match_flags(str1: str, str2: str) -> Tuple[int, List[bool], List[bool]]:
    """
    Greedy left-to-right character matching inside the Jaro window.

    Each character of str1 takes the first unmatched equal character of
    str2 within the window; there is no backtracking.
    """
    len1, len2 = len(str1), len(str2)
    match_window = max(len1, len2) // 2 - 1
    str1_matches: List[bool] = [False] * len1
    str2_matches: List[bool] = [False] * len2
    matches = 0

    for i, char in enumerate(str1):
        start = max(0, i - match_window)
        end = min(i + match_window + 1, len2)
        for j in range(start, end):
            if str2_matches[j] or str2[j] != char:
                continue
            str1_matches[i] = str2_matches[j] = True
            matches += 1
            break

    return matches, str1_matches, str2_matches


def _count_transpositions(str1: str, str2: str, str1_matches: List[bool], str2_matches: List[bool]) -> int:
    # Raw count of out-of-order matched characters; halved by the caller.
    transpositions = 0
    k = 0
    for i, char in enumerate(str1):
        if not str1_matches[i]:
            continue
        while not str2_matches[k]:
            k += 1
        if char != str2[k]:
            transpositions += 1
        k += 1
    return transpositions


def _jaro(str1: str, str2: str) -> float:
    matches, str1_matches, str2_matches = _match_flags(str1, str2)
    if matches == 0:
        return 0.0
    transpositions = _count_transpositions(str1, str2, str1_matches, str2_matches)
    return (
        matches / len(str1)
        + matches / len(str2)
        + (matches - transpositions / 2) / matches
    ) / 3


def _common_prefix_length(str1: str, str2: str) -> int:
    prefix = 0
    for a, b in zip(str1[:MAX_PREFIX_LENGTH], str2[:MAX_PREFIX_LENGTH]):
        if a != b:
            break
        prefix += 1
    return prefix


def jaro_similarity(s1: Optional[str], s2: Optional[str]) -> float:
    """Plain Jaro similarity (no prefix bonus) on normalized names."""
    str1 = normalize_name(s1)
    str2 = normalize_name(s2)
    if str1 == str2 and str1:
        return 1.0
    if not str1 or not str2:
        return 0.0
    return _jaro(str1, str2)


def jaro_winkler(s1: Optional[str], s2: Optional[str]) -> float:
    """
    Jaro-Winkler similarity between two supply names, in [0, 1].

    Steps:
        1. Normalize (lowercase, trim). Equal names return 1.0 and an empty
           name returns 0.0 before any scoring.
        2. Jaro: greedy matching inside a window of
           ``max(len1, len2) // 2 - 1``, transpositions halved.
        3. Winkler: ``jaro + prefix * 0.1 * (1 - jaro)`` with the common
           prefix capped at 4 characters.

    Example:
        jaro_winkler("MARTHA", "MARHTA")  -> 0.9611...
    """
    str1 = normalize_name(s1)
    str2 = normalize_name(s2)

    if str1 == str2:
        # Two empty names are "equal" too, but carry no information
        return 1.0 if str1 else 0.0
    if not str1 or not str2:
        return 0.0

    jaro = _jaro(str1, str2)
    prefix = _common_prefix_length(str1, str2)
    return jaro + prefix * PREFIX_SCALE * (1 - jaro)


def rapidfuzz_scorer(query, choice, **kwargs) -> float:
    """
    Adapter so :func:`jaro_winkler` can be used as a rapidfuzz ``scorer``.

    rapidfuzz passes ``score_cutoff`` (and possibly other options) as keyword
    arguments; they are accepted and ignored.
    """
    return jaro_winkler(query, choice)
