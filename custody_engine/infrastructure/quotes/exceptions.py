"""Quote service errors."""


class QuoteError(Exception):
    """Base class for quote acquisition errors."""


class QuoteRequestError(QuoteError):
    """Network or HTTP failure talking to one quote endpoint."""


class InvalidQuoteError(QuoteError):
    """Structurally invalid quote response (not JSON, missing ``to``, bad numbers)."""


class NoQuoteAvailableError(QuoteError):
    """Raised when every configured quote endpoint failed for one request."""

    def __init__(self, tried: list[str], last_error: Exception | None) -> None:
        detail = str(last_error) if last_error else "unknown error"
        super().__init__(
            f"Unable to get a swap quote from any quote endpoint ({', '.join(tried) or 'none configured'}). "
            f"Last error: {detail}"
        )
        self.tried = tried
        self.last_error = last_error
