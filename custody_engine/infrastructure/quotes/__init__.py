"""Swap quote acquisition."""

from .broker import NATIVE_PLACEHOLDER_ADDRESS, ZERO_ADDRESS, QuoteBroker
from .exceptions import InvalidQuoteError, NoQuoteAvailableError, QuoteError, QuoteRequestError
from .models import SwapQuote

__all__ = [
    "InvalidQuoteError",
    "NATIVE_PLACEHOLDER_ADDRESS",
    "NoQuoteAvailableError",
    "QuoteBroker",
    "QuoteError",
    "QuoteRequestError",
    "SwapQuote",
    "ZERO_ADDRESS",
]
