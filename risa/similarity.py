"""Edit-distance string similarity.

Pure functions. No state, no I/O.
"""


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute cost."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j - 1] + (char_a != char_b),
                previous[j] + 1,
                current[j - 1] + 1,
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0, 1].

    1 - distance / max(len(a), len(b)), compared case-folded.
    Two empty strings are identical (1.0).
    """
    a = a.casefold()
    b = b.casefold()
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / max_len
