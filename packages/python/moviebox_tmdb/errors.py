class TMDBError(Exception):
    """Raised when a TMDB request fails after retries."""

    def __init__(self, message: str, *, status_code: int | None = None, path: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.path = path


class TMDBAuthError(TMDBError):
    pass


class TMDBNotFound(TMDBError):
    pass


class TMDBRateLimited(TMDBError):
    pass
