class TickerTapeError(Exception):
    """Base class for tickertape domain errors."""


class NetworkFailure(TickerTapeError):
    """Timeout, connectivity or transport error talking to the quote provider."""


class DecodeFailure(TickerTapeError):
    """Provider payload is missing required fields or is malformed."""


class DuplicateTickerError(TickerTapeError):
    def __init__(self, ticker: str) -> None:
        super().__init__(f"DUPLICATE_TICKER:{ticker}")
        self.ticker = ticker
