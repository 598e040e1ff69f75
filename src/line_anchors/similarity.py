"""Text similarity and fingerprinting for anchor relocation.

Provides normalized Levenshtein similarity between context windows and the
short content fingerprint stored on every anchor. All functions are pure
Python and deterministic; comparisons are codepoint-literal (no case or
unicode folding).
"""

import hashlib

# Truncated SHA-256 hex digest length used for content fingerprints
HASH_LENGTH = 12


def levenshtein_distance(s1: str, s2: str) -> int:
    """Compute Levenshtein edit distance with unit costs.

    Uses the Wagner-Fischer dynamic programming algorithm.
    Time complexity: O(m*n) where m, n are string lengths.
    Space complexity: O(min(m,n)) with row optimization.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Minimum number of single-character inserts, deletes and substitutions
    """
    if s1 == s2:
        return 0

    # Ensure s1 is the shorter string (optimize memory)
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    if not s1:
        return len(s2)

    prev_row = list(range(len(s1) + 1))
    curr_row = [0] * (len(s1) + 1)

    for i, c2 in enumerate(s2, start=1):
        curr_row[0] = i
        for j, c1 in enumerate(s1, start=1):
            if c1 == c2:
                curr_row[j] = prev_row[j - 1]
            else:
                curr_row[j] = 1 + min(
                    prev_row[j],  # deletion
                    curr_row[j - 1],  # insertion
                    prev_row[j - 1],  # substitution
                )
        prev_row, curr_row = curr_row, prev_row

    return prev_row[len(s1)]


def similarity(a: str, b: str) -> float:
    """Compute normalized similarity between two snippets (0-1 scale).

    Exact equality short-circuits to 1.0 before any other work. Otherwise an
    empty side scores 0.0, and the remaining comparison runs on the
    whitespace-trimmed strings: ``1 - distance / max_len``.

    Args:
        a: First snippet (typically a stored context window)
        b: Second snippet (typically a candidate context window)

    Returns:
        Similarity score from 0.0 (completely different) to 1.0 (identical)
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    trimmed_a = a.strip()
    trimmed_b = b.strip()
    if trimmed_a == trimmed_b:
        return 1.0
    if not trimmed_a or not trimmed_b:
        return 0.0

    distance = levenshtein_distance(trimmed_a, trimmed_b)
    max_len = max(len(trimmed_a), len(trimmed_b))
    return 1.0 - (distance / max_len)


def compute_content_hash(text: str) -> str:
    """Fingerprint text content for change detection.

    Args:
        text: Text to hash (hashed exactly as given, UTF-8 encoded)

    Returns:
        First 12 hex characters of the SHA-256 digest (e.g., "3f2a9c0d41be")
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:HASH_LENGTH]
