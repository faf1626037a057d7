from __future__ import annotations

from tickertape.schemas.quote import Quote

PLACEHOLDER_TEXT = "Click to Add Ticker"
ITEM_SPACING_PX = 20.0
CHAR_WIDTH_PX = 7.0


def format_quote_label(quote: Quote) -> str:
    if quote.is_pending:
        return f"{quote.ticker} --"
    sign = "+" if quote.change >= 0 else ""
    return f"{quote.ticker} ${quote.price:.2f} ({sign}{quote.change * 100:.2f}%)"


def loading_label(count: int) -> str:
    return f"Fetching {count} Quotes"


def marquee_labels(quotes: list[Quote]) -> list[str]:
    return [format_quote_label(q) for q in quotes]


def estimate_content_width(
    labels: list[str],
    *,
    char_width: float = CHAR_WIDTH_PX,
    spacing: float = ITEM_SPACING_PX,
) -> float:
    """Approximate rendered width of labels laid out in one row."""
    if not labels:
        return 0.0
    text_width = sum(len(label) for label in labels) * char_width
    return text_width + spacing * (len(labels) - 1)
