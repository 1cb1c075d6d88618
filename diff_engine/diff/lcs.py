"""Longest common subsequence over line sequences.

Classical O(m*n) dynamic programming.  Lines match only on exact string
equality; there is no trimming or fuzzy matching.  The backtrack moves up
only when that strictly keeps a longer subsequence, and moves left on ties,
so the chosen alignment is stable for identical inputs.
"""

from __future__ import annotations

from collections.abc import Sequence


def lcs_table(a: Sequence[str], b: Sequence[str]) -> list[list[int]]:
    """Return the ``(len(a)+1) x (len(b)+1)`` LCS length table."""
    m = len(a)
    n = len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(1, m + 1):
        row = dp[i]
        prev = dp[i - 1]
        a_line = a[i - 1]
        for j in range(1, n + 1):
            if a_line == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    return dp


def compute_lcs(a: Sequence[str], b: Sequence[str]) -> list[str]:
    """Return one longest common subsequence of *a* and *b*."""
    dp = lcs_table(a, b)

    lcs: list[str] = []
    i, j = len(a), len(b)
    while i > 0 and j > 0:
        if a[i - 1] == b[j - 1]:
            lcs.append(a[i - 1])
            i -= 1
            j -= 1
        elif dp[i - 1][j] > dp[i][j - 1]:
            i -= 1
        else:
            j -= 1

    lcs.reverse()
    return lcs
