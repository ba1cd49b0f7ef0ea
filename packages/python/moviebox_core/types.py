import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict

TmdbId = int
LocalMovieId = str  # uuid of a row in the `movies` table

MovieDict = Dict[str, Any]  # raw TMDB movie record

_YEAR_PREFIX = re.compile(r"^(\d{4})")


@dataclass
class StoredMovie:
    """Locally cached copy of a TMDB movie (`movies` table)."""

    id: LocalMovieId
    tmdb_id: TmdbId
    title: str
    year: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class InteractedMovie:
    """A movie a user liked, rated, listed or dismissed, joined to its stored row."""

    movie_id: LocalMovieId
    tmdb_id: TmdbId
    metadata: dict[str, Any] = field(default_factory=dict)
    score: int | None = None  # ratings only

    def release_year(self) -> int | None:
        return release_year((self.metadata or {}).get("release_date"))


def release_year(release_date: str | None) -> int | None:
    """Year of a TMDB release date (`YYYY-MM-DD`, `YYYY-MM` or `YYYY`); None when unparseable."""
    if not release_date:
        return None
    text = str(release_date).strip()
    try:
        return date.fromisoformat(text[:10]).year
    except ValueError:
        match = _YEAR_PREFIX.match(text)
        return int(match.group(1)) if match else None
