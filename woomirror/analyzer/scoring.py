"""WooMirror: RFM Scoring Rules.

Fixed breakpoints mapping recency, frequency and monetary value onto a
1-5 ordinal scale, plus the segment rule built on those scores.
"""

CHAMPIONS = "Champions"
LOYAL = "Loyal"
PROMISING = "Promising"
AT_RISK = "At Risk"

# (upper bound in days, score); checked top to bottom
RECENCY_BREAKPOINTS = [(7, 5), (30, 4), (90, 3), (180, 2)]
# (lower bound, score)
FREQUENCY_BREAKPOINTS = [(10, 5), (5, 4), (3, 3), (2, 2)]
MONETARY_BREAKPOINTS = [(1000, 5), (500, 4), (200, 3), (100, 2)]


def score_recency(days: int) -> int:
    for bound, score in RECENCY_BREAKPOINTS:
        if days <= bound:
            return score
    return 1


def score_frequency(count: int) -> int:
    for bound, score in FREQUENCY_BREAKPOINTS:
        if count >= bound:
            return score
    return 1


def score_monetary(amount: float) -> int:
    for bound, score in MONETARY_BREAKPOINTS:
        if amount >= bound:
            return score
    return 1


def rfm_score(r: int, f: int, m: int) -> int:
    """Digits concatenated: R4 F3 M2 -> 432."""
    return int(f"{r}{f}{m}")


def segment_label(r: int, f: int, m: int) -> str:
    if r >= 4 and f >= 4 and m >= 4:
        return CHAMPIONS
    if r >= 3 and f >= 3:
        return LOYAL
    if r >= 3 and f <= 2:
        return PROMISING
    return AT_RISK
