# tests/test_cashify_scraper.py

"""Tests for Cashify product-page extraction."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from price_tracker.errors import ExtractionFailure, FetchFailure
from price_tracker.scrapers.cashify_scraper import (
    DEFAULT_CAPACITY,
    DEFAULT_TITLE,
    OUT_OF_STOCK_LIST_PRICE,
    OUT_OF_STOCK_SALE_PRICE,
    TITLE_MAX_LENGTH,
    CashifyScraper,
    backfill_out_of_stock,
    clean_title,
    compute_discount,
    extract_product,
)

FIXTURES = Path(__file__).parent / "fixtures"
PRODUCT_URL = (
    "https://www.cashify.in/buy-refurbished-mobile-phones/"
    "apple-iphone-12-refurbished"
)

OOS_MARKER = (
    '<h6 class="subtitle1 text-center py-2 px-1 sm:py-3 w-full '
    'bg-primary/70 text-primary-text-contrast">Out of Stock</h6>'
)


def _fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class TestExtractInStock(unittest.TestCase):
    """Primary selectors on a full product page."""

    def setUp(self) -> None:
        self.result = extract_product(
            _fixture("cashify_product.html"), PRODUCT_URL,
        )

    def test_prices(self) -> None:
        self.assertEqual(self.result.list_price, 49999)
        self.assertEqual(self.result.sale_price, 29499)
        self.assertEqual(self.result.discount, "41%")
        self.assertFalse(self.result.out_of_stock)
        self.assertFalse(self.result.prices_synthesized)

    def test_title_from_heading(self) -> None:
        self.assertEqual(self.result.title, "Apple iPhone 12 - Refurbished")

    def test_description_line(self) -> None:
        self.assertEqual(self.result.condition, "Fair")
        self.assertEqual(self.result.ram, "4 GB")
        self.assertEqual(self.result.capacity, "4 GB / 64 GB")
        self.assertEqual(self.result.color, "Blue")

    def test_image_skips_logo(self) -> None:
        self.assertEqual(
            self.result.image_url,
            "https://s3n.cashify.in/cashify/product/img/iphone-12.jpg",
        )


class TestExtractFallbacks(unittest.TestCase):
    """Looser rules take over when the primary markup is absent."""

    def setUp(self) -> None:
        self.url = (
            "https://www.cashify.in/buy-refurbished-mobile-phones/"
            "google-pixel-6a"
        )
        self.result = extract_product(
            _fixture("cashify_fallbacks.html"), self.url,
        )

    def test_title_from_document_title(self) -> None:
        self.assertEqual(self.result.title, "Google Pixel 6a (Refurbished)")

    def test_prices_from_loose_markup(self) -> None:
        self.assertEqual(self.result.list_price, 43999)
        self.assertEqual(self.result.sale_price, 18999)
        self.assertEqual(self.result.discount, "27%")

    def test_condition_from_structured_data(self) -> None:
        self.assertEqual(self.result.condition, "Excellent")

    def test_capacity_from_page_text(self) -> None:
        self.assertEqual(self.result.capacity, "128 GB")
        self.assertEqual(self.result.ram, "")

    def test_relative_image_resolved(self) -> None:
        self.assertEqual(
            self.result.image_url,
            "https://www.cashify.in/images/mobile/pixel-6a.webp",
        )


class TestExtractOutOfStock(unittest.TestCase):

    def test_placeholder_prices(self) -> None:
        with self.assertLogs("price_tracker.cashify", level="WARNING"):
            result = extract_product(
                _fixture("cashify_out_of_stock.html"), PRODUCT_URL,
            )
        self.assertTrue(result.out_of_stock)
        self.assertTrue(result.prices_synthesized)
        self.assertEqual(result.list_price, OUT_OF_STOCK_LIST_PRICE)
        self.assertEqual(result.sale_price, OUT_OF_STOCK_SALE_PRICE)
        self.assertEqual(result.discount, "0%")

    def test_other_fields(self) -> None:
        result = extract_product(
            _fixture("cashify_out_of_stock.html"), PRODUCT_URL,
        )
        self.assertEqual(result.title, "Samsung Galaxy S21 5G")
        self.assertEqual(result.condition, "Superb")
        self.assertEqual(result.capacity, DEFAULT_CAPACITY)

    def test_only_list_price_shown(self) -> None:
        html = (
            f"{OOS_MARKER}"
            '<h6 class="subtitle1 line-through text-surface-text">'
            "₹32,000</h6>"
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertTrue(result.out_of_stock)
        self.assertFalse(result.prices_synthesized)
        self.assertEqual(result.list_price, 32000)
        self.assertEqual(result.sale_price, 32000)

    def test_sale_price_ignored_when_unavailable(self) -> None:
        html = (
            f"{OOS_MARKER}"
            '<span class="h1" itemprop="price">₹20,000</span>'
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertTrue(result.prices_synthesized)
        self.assertEqual(result.list_price, OUT_OF_STOCK_LIST_PRICE)
        self.assertEqual(result.sale_price, OUT_OF_STOCK_SALE_PRICE)
        self.assertEqual(result.discount, "0%")

    def test_stray_structured_price_ignored_when_unavailable(self) -> None:
        html = (
            f"{OOS_MARKER}"
            '<h6 class="subtitle1 line-through text-surface-text">'
            "₹32,000</h6>"
            '<script>{"price": "28000"}</script>'
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertEqual(
            (result.list_price, result.sale_price), (32000, 32000),
        )
        self.assertFalse(result.prices_synthesized)

    def test_backfill_rules(self) -> None:
        self.assertEqual(backfill_out_of_stock(0, 0), (50000, 45000, True))
        self.assertEqual(backfill_out_of_stock(0, 100), (5100, 100, True))
        self.assertEqual(backfill_out_of_stock(900, 0), (900, 900, False))
        self.assertEqual(backfill_out_of_stock(900, 800), (900, 800, False))


class TestExtractEdgeCases(unittest.TestCase):

    def test_no_price_raises(self) -> None:
        with self.assertRaises(ExtractionFailure):
            extract_product(_fixture("cashify_no_price.html"), PRODUCT_URL)

    def test_discount_computed_when_missing(self) -> None:
        html = (
            '<h6 class="subtitle1 line-through text-surface-text">'
            "₹50,000</h6>"
            '<span class="h1" itemprop="price">₹40,000</span>'
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertEqual(result.discount, "20%")
        self.assertEqual(result.title, DEFAULT_TITLE)
        self.assertEqual(result.condition, "Good")
        self.assertEqual(result.capacity, DEFAULT_CAPACITY)

    def test_zero_discount_text_falls_back_to_computed(self) -> None:
        html = (
            '<h6 class="subtitle1 line-through text-surface-text">'
            "₹50,000</h6>"
            '<span class="h1" itemprop="price">₹40,000</span>'
            "<span>0% OFF</span>"
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertEqual(result.discount, "20%")

    def test_capacity_read_from_full_heading(self) -> None:
        """Storage past the display-length cut still comes from the heading."""
        heading = "Phone " + "x" * TITLE_MAX_LENGTH + " 256 GB"
        html = (
            "<p>Storage: 64 GB</p>"
            f"<h1>{heading}</h1>"
            '<span class="h1" itemprop="price">₹15,499</span>'
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertTrue(result.title.endswith("..."))
        self.assertEqual(result.capacity, "256 GB")

    def test_in_stock_missing_sale_mirrors_list(self) -> None:
        html = (
            '<h6 class="subtitle1 line-through text-surface-text">'
            "₹49,999</h6>"
        )
        result = extract_product(html, PRODUCT_URL)
        self.assertEqual(result.list_price, 49999)
        self.assertEqual(result.sale_price, 49999)
        self.assertEqual(result.discount, "0%")

    def test_in_stock_missing_list_mirrors_sale(self) -> None:
        html = '<span class="h1" itemprop="price">₹15,499</span>'
        result = extract_product(html, PRODUCT_URL)
        self.assertEqual(result.list_price, 15499)
        self.assertEqual(result.sale_price, 15499)


class TestHelpers(unittest.TestCase):

    def test_clean_title_truncates(self) -> None:
        title = clean_title("x" * 150)
        self.assertEqual(len(title), TITLE_MAX_LENGTH + 3)
        self.assertTrue(title.endswith("..."))

    def test_clean_title_defaults(self) -> None:
        self.assertEqual(clean_title(None), DEFAULT_TITLE)
        self.assertEqual(clean_title(" - Cashify"), DEFAULT_TITLE)

    def test_compute_discount_rounds_half_up(self) -> None:
        self.assertEqual(compute_discount(50000, 40000), "20%")
        self.assertEqual(compute_discount(8, 7), "13%")
        self.assertEqual(compute_discount(1000, 994), "1%")
        self.assertEqual(compute_discount(1000, 996), "0%")

    def test_compute_discount_no_markdown(self) -> None:
        self.assertEqual(compute_discount(100, 100), "0%")
        self.assertEqual(compute_discount(0, 100), "0%")
        self.assertEqual(compute_discount(100, 120), "0%")


@patch("price_tracker.scrapers.base_scraper.curl_requests.Session")
class TestCashifyScraper(unittest.TestCase):
    """Fetch-then-parse through the scraper class."""

    def test_scrape_fetches_and_parses(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        resp = MagicMock()
        resp.status_code = 200
        resp.text = _fixture("cashify_product.html")
        mock_session.get.return_value = resp

        result = CashifyScraper().scrape(PRODUCT_URL)

        self.assertEqual(result.sale_price, 29499)
        url = mock_session.get.call_args.args[0]
        self.assertEqual(url, PRODUCT_URL)
        headers = mock_session.get.call_args.kwargs["headers"]
        self.assertEqual(headers["Referer"], "https://www.cashify.in/")

    @patch("price_tracker.scrapers.base_scraper.cloudscraper")
    def test_scrape_raises_fetch_failure(
        self,
        mock_cloudscraper: MagicMock,
        mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.side_effect = ConnectionError("reset")
        mock_cloudscraper.create_scraper.return_value.get.side_effect = (
            ConnectionError("refused")
        )

        with self.assertRaises(FetchFailure) as ctx:
            CashifyScraper().scrape(PRODUCT_URL)
        self.assertIn("refused", ctx.exception.reason)


if __name__ == "__main__":
    unittest.main()
