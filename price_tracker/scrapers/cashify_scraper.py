# price_tracker/scrapers/cashify_scraper.py

"""Scraper for Cashify refurbished-phone product pages."""

import logging
import math
import re
from urllib.parse import urljoin

from price_tracker.config.settings import Settings
from price_tracker.errors import ExtractionFailure
from price_tracker.models.extraction import ExtractionResult
from price_tracker.scrapers.base_scraper import BaseScraper
from price_tracker.scrapers.extraction_rules import (
    FieldCascade,
    Page,
    SelectorRule,
    non_empty,
    normalize_condition,
    parse_price,
    percent,
    regex,
    short_token,
)

logger = logging.getLogger("price_tracker.cashify")

# Placeholder prices for unavailable items whose prices are hidden
OUT_OF_STOCK_LIST_PRICE = 50000
OUT_OF_STOCK_SALE_PRICE = 45000
OUT_OF_STOCK_LIST_OFFSET = 5000

DEFAULT_TITLE = "Cashify Product"
DEFAULT_CONDITION = "Good"
DEFAULT_CAPACITY = "128GB"
TITLE_MAX_LENGTH = 100

OUT_OF_STOCK_MARKER = re.compile(
    r'<h6[^>]*class="[^"]*subtitle1[^"]*text-center[^"]*py-2[^"]*px-1'
    r'[^"]*sm:py-3[^"]*w-full[^"]*bg-primary/70'
    r'[^"]*text-primary-text-contrast[^"]*"[^>]*>Out of Stock</h6>',
    re.IGNORECASE,
)

_VENDOR_SUFFIX = re.compile(r"\s*-\s*Cashify.*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_RAM_AND_CAPACITY = re.compile(
    r"(\d+\s*GB)\s*/\s*(\d+\s*[GT]B)", re.IGNORECASE
)
_BARE_CAPACITY = re.compile(r"(\d+\s*[GT]B)", re.IGNORECASE)

TITLE = FieldCascade(
    "title",
    (
        SelectorRule("h1"),
        SelectorRule("title"),
    ),
    non_empty,
)

LIST_PRICE = FieldCascade(
    "list_price",
    (
        regex(
            r'<h6[^>]*class="[^"]*subtitle1[^"]*line-through'
            r'[^"]*text-surface-text[^"]*"[^>]*>₹([0-9,]+)</h6>'
        ),
        regex(r"<h6[^>]*line-through[^>]*>₹([0-9,]+)</h6>"),
        regex(r"<[^>]*line-through[^>]*>₹([0-9,]+)</[^>]*>"),
        regex(r"₹([0-9,]+)[^0-9]*</del>"),
        regex(r"₹([0-9,]+)[^0-9]*</s>"),
    ),
    parse_price,
)

SALE_PRICE = FieldCascade(
    "sale_price",
    (
        regex(
            r'<span[^>]*class="[^"]*h1[^"]*"[^>]*itemprop="price"'
            r'[^>]*>₹([0-9,]+)</span>'
        ),
        regex(r'<span[^>]*itemprop="price"[^>]*>₹([0-9,]+)</span>'),
        regex(r'<span[^>]*class="[^"]*h1[^"]*"[^>]*>₹([0-9,]+)</span>'),
        regex(r'"price"[^:]*:\s*"?₹?\s*([0-9,]+)"?'),
        regex(r'class="[^"]*price[^"]*"[^>]*>₹\s*([0-9,]+)'),
    ),
    parse_price,
)

DISCOUNT = FieldCascade(
    "discount",
    (
        regex(
            r'<div[^>]*class="[^"]*h1[^"]*text-error[^"]*"[^>]*>'
            r"-<!--\s*-->([0-9]+)<!--\s*-->%</div>"
        ),
        regex(r"<div[^>]*text-error[^>]*>-[^0-9]*([0-9]+)[^0-9]*%</div>"),
        regex(r"([0-9]+)%\s*OFF"),
        regex(r"-([0-9]+)%"),
    ),
    percent,
)

DESCRIPTION_LINE = FieldCascade(
    "description",
    (SelectorRule("div.body2.mb-2.text-surface-text"),),
    non_empty,
)

CONDITION = FieldCascade(
    "condition",
    (
        regex(r"Cashify Warranty[^,]*,\s*([^,]+)"),
        regex(r'"condition"[^:]*:\s*"([^"]+)"'),
        regex(r"(Fair|Good|Excellent|Superb)"),
        regex(r"Condition[^>]*>([^<]+)<"),
        regex(r"Grade[^>]*>([^<]+)<"),
    ),
    normalize_condition,
)

_CAPACITY_PATTERNS: tuple[str, ...] = (
    r"(\d+\s*GB)",
    r"(\d+\s*TB)",
    r"Storage[^>]*>([^<]*\d+[^<]*[GT]B[^<]*)<",
    r"Memory[^>]*>([^<]*\d+[^<]*[GT]B[^<]*)<",
)

CAPACITY = FieldCascade(
    "capacity",
    tuple(regex(p, all_matches=True) for p in _CAPACITY_PATTERNS),
    short_token,
)

_IMAGE_EXT = r"\.(?:jpg|jpeg|png|webp)"

IMAGE_URL = FieldCascade(
    "image_url",
    (
        regex(rf"""<img[^>]+src=["']([^"']*product[^"']*{_IMAGE_EXT})[^"']*["']"""),
        regex(rf"""<img[^>]+src=["']([^"']*mobile[^"']*{_IMAGE_EXT})[^"']*["']"""),
        regex(rf"""<img[^>]+src=["']([^"']*phone[^"']*{_IMAGE_EXT})[^"']*["']"""),
        regex(rf"""<img[^>]+src=["']([^"']*iphone[^"']*{_IMAGE_EXT})[^"']*["']"""),
        regex(
            rf"""<img[^>]+src=["']([^"']*{_IMAGE_EXT})[^"']*["']"""
            r'[^>]*alt="[^"]*product[^"]*"'
        ),
    ),
    non_empty,
)


def clean_title(raw: str | None) -> str:
    """Strip the vendor suffix, collapse whitespace, cap the length."""
    if not raw:
        return DEFAULT_TITLE
    title = _WHITESPACE.sub(" ", _VENDOR_SUFFIX.sub("", raw)).strip()
    if len(title) > TITLE_MAX_LENGTH:
        title = title[:TITLE_MAX_LENGTH] + "..."
    return title or DEFAULT_TITLE


def compute_discount(list_price: int, sale_price: int) -> str:
    """Percent off list price, rounded half up; ``"0%"`` if not a markdown."""
    if list_price > 0 and sale_price > 0 and list_price > sale_price:
        off = (list_price - sale_price) / list_price * 100
        return f"{math.floor(off + 0.5)}%"
    return "0%"


def backfill_out_of_stock(
    list_price: int, sale_price: int,
) -> tuple[int, int, bool]:
    """Fill prices an unavailable listing no longer shows.

    Returns (list_price, sale_price, synthesized). A missing sale price
    reuses the list price and is not counted as synthesized.
    """
    if not list_price and not sale_price:
        return OUT_OF_STOCK_LIST_PRICE, OUT_OF_STOCK_SALE_PRICE, True
    if not list_price:
        return sale_price + OUT_OF_STOCK_LIST_OFFSET, sale_price, True
    if not sale_price:
        return list_price, list_price, False
    return list_price, sale_price, False


def _parse_description(
    line: str,
) -> tuple[str | None, str, str, str]:
    """Split the ``"Warranty, Grade, RAM / Storage, Colour"`` line.

    Returns (condition, ram, capacity, color); missing parts are empty.
    """
    parts = [part.strip() for part in line.split(",")]
    condition: str | None = None
    ram = capacity = color = ""

    if len(parts) >= 2:
        condition = normalize_condition(parts[1])
    if len(parts) >= 3:
        both = _RAM_AND_CAPACITY.search(parts[2])
        if both:
            ram = both.group(1).strip()
            capacity = both.group(2).strip()
        else:
            bare = _BARE_CAPACITY.search(parts[2])
            if bare:
                capacity = bare.group(1).strip()
    if len(parts) >= 4:
        color = parts[3]
    return condition, ram, capacity, color


def extract_product(html: str, url: str) -> ExtractionResult:
    """Recover product fields from a Cashify page.

    Raises:
        ExtractionFailure: if neither a list nor a sale price is found.
    """
    page = Page(html, url)
    out_of_stock = bool(OUT_OF_STOCK_MARKER.search(html))

    raw_title = TITLE.resolve(page)
    title = clean_title(raw_title)
    list_price = LIST_PRICE.resolve(page) or 0

    sale_price = 0
    discount = "0%"
    if not out_of_stock:
        sale_price = SALE_PRICE.resolve(page) or 0
        discount = DISCOUNT.resolve(page) or compute_discount(
            list_price, sale_price
        )

    condition: str | None = None
    ram = capacity = color = ""
    line = DESCRIPTION_LINE.resolve(page)
    if line:
        logger.debug("Description line for %s: %s", url, line)
        condition, ram, capacity, color = _parse_description(line)

    if condition is None:
        condition = CONDITION.resolve(page) or DEFAULT_CONDITION

    if not capacity:
        capacity = (
            CAPACITY.resolve(Page(raw_title or "", url))
            or CAPACITY.resolve(page)
            or ""
        )

    image_url = IMAGE_URL.resolve(page)
    if image_url:
        image_url = urljoin(url, image_url)

    synthesized = False
    if out_of_stock:
        list_price, sale_price, synthesized = backfill_out_of_stock(
            list_price, sale_price
        )
        if synthesized:
            logger.warning(
                "Out-of-stock item %s is missing prices, using "
                "placeholder list=%d sale=%d",
                url,
                list_price,
                sale_price,
            )

    if not list_price and not sale_price:
        raise ExtractionFailure("no price data")

    if ram and capacity:
        display_capacity = f"{ram} / {capacity}"
    else:
        display_capacity = capacity or ram or DEFAULT_CAPACITY

    return ExtractionResult(
        title=title,
        list_price=list_price or sale_price,
        sale_price=sale_price or list_price,
        discount=discount,
        condition=condition,
        capacity=display_capacity,
        ram=ram,
        color=color,
        image_url=image_url or "",
        out_of_stock=out_of_stock,
        prices_synthesized=synthesized,
    )


class CashifyScraper(BaseScraper):
    """Scraper for cashify.in refurbished listings."""

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__("cashify", settings)

    def _get_homepage(self) -> str:
        """Return the Cashify homepage URL."""
        return self.settings.SOURCE_HOMEPAGE

    def parse(self, html: str, url: str) -> ExtractionResult:
        """Extract product fields from a Cashify page."""
        result = extract_product(html, url)
        self.logger.info(
            "[cashify] %s: sale=%d list=%d %s",
            result.title,
            result.sale_price,
            result.list_price,
            "out of stock" if result.out_of_stock else "in stock",
        )
        return result
