"""Fuzzy matching of legacy (artist, title) pairs to catalog search results."""

from collections.abc import Sequence

from rapidfuzz import fuzz


def match_score(
    artist: str, title: str, candidate_artist: str, candidate_title: str
) -> float:
    """Similarity (0-100) of a candidate; the weaker of artist and title wins.

    token_set_ratio tolerates word order and extra words such as
    "- Remastered 2011" or featured artists.
    """
    artist_score = fuzz.token_set_ratio(artist.lower(), candidate_artist.lower())
    title_score = fuzz.token_set_ratio(title.lower(), candidate_title.lower())
    return min(artist_score, title_score)


def best_candidate(
    artist: str,
    title: str,
    candidates: Sequence[tuple[str, str]],
    min_score: float,
) -> int | None:
    """Index of the best candidate meeting `min_score`, or None.

    Args:
        artist: Requested artist name
        title: Requested track name
        candidates: (artist name, track name) per candidate, in relevance order
        min_score: Acceptance threshold

    Ties keep the candidate ranked first by the search.
    """
    best_index, best_score = None, min_score
    for index, (candidate_artist, candidate_title) in enumerate(candidates):
        score = match_score(artist, title, candidate_artist, candidate_title)
        if score > best_score or (best_index is None and score >= min_score):
            best_index, best_score = index, score
    return best_index
