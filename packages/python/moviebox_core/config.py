TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/"
TMDB_DEFAULT_LANGUAGE = "en-US"

# TMDB movie genre ids -> display names
GENRE_NAMES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}
UNKNOWN_GENRE_NAME = "movies"

# Recommendations
DEFAULT_AVERAGE_RATING = 7.0
MIN_PREFERRED_YEAR = 1990  # exclusive
MAX_RECOMMENDATION_LIMIT = 50
DEFAULT_RECOMMENDATION_LIMIT = 20
TOP_GENRES_COUNT = 3
HIGH_RATING_THRESHOLD = 7
HIGH_RATED_SEED_COUNT = 5
RECENT_YEARS_SPAN = 3

# Cache-Control values for the recommendations endpoint
CACHE_CONTROL_PRIVATE = "private, max-age=300, stale-while-revalidate=600"
CACHE_CONTROL_NO_STORE = "no-cache, no-store, must-revalidate"

# Batch status
BATCH_STATUS_MAX_IDS = 50
BATCH_STATUS_ITEM_TIMEOUT_SEC = 10.0


def genre_name(genre_id: int) -> str:
    return GENRE_NAMES.get(genre_id, UNKNOWN_GENRE_NAME)
