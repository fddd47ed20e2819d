# tests/test_extraction_rules.py

"""Tests for the extraction cascade primitives and acceptors."""

import unittest

from price_tracker.scrapers.extraction_rules import (
    MAX_PRICE,
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


class TestParsePrice(unittest.TestCase):
    """Rupee amount parsing."""

    def test_strips_commas(self) -> None:
        self.assertEqual(parse_price("49,999"), 49999)
        self.assertEqual(parse_price("1,23,456"), 123456)

    def test_takes_first_digit_run(self) -> None:
        self.assertEqual(parse_price("₹ 18,999 only"), 18999)

    def test_rejects_empty_and_non_numeric(self) -> None:
        self.assertIsNone(parse_price(""))
        self.assertIsNone(parse_price(None))
        self.assertIsNone(parse_price("N/A"))

    def test_rejects_out_of_range(self) -> None:
        self.assertIsNone(parse_price("0"))
        self.assertIsNone(parse_price(str(MAX_PRICE)))
        self.assertEqual(parse_price(str(MAX_PRICE - 1)), MAX_PRICE - 1)


class TestAcceptors(unittest.TestCase):

    def test_normalize_condition_substring(self) -> None:
        self.assertEqual(normalize_condition("Used - Excellent"), "Excellent")
        self.assertEqual(normalize_condition(" superb "), "Superb")
        self.assertIsNone(normalize_condition("Like new"))
        self.assertIsNone(normalize_condition(None))

    def test_normalize_condition_prefers_vocabulary_order(self) -> None:
        """'Fair' is checked before 'Good' when both appear."""
        self.assertEqual(normalize_condition("Good to Fair"), "Fair")

    def test_short_token(self) -> None:
        self.assertEqual(short_token(" 128 GB "), "128 GB")
        self.assertIsNone(short_token("x" * 20))
        self.assertIsNone(short_token("   "))

    def test_percent(self) -> None:
        self.assertEqual(percent("07"), "7%")
        self.assertIsNone(percent("abc"))

    def test_percent_rejects_zero(self) -> None:
        """A literal 0% lets later rules or the computed value decide."""
        self.assertIsNone(percent("0"))
        self.assertIsNone(percent("00"))

    def test_non_empty(self) -> None:
        self.assertEqual(non_empty("  a "), "a")
        self.assertIsNone(non_empty("  "))


class TestFieldCascade(unittest.TestCase):
    """Ordered rule evaluation."""

    def test_first_accepted_candidate_wins(self) -> None:
        page = Page('<b>₹0</b><i>₹120</i><u>₹300</u>', "https://x")
        cascade = FieldCascade(
            "price",
            (
                regex(r"<b>₹([0-9,]+)</b>"),
                regex(r"<i>₹([0-9,]+)</i>"),
                regex(r"<u>₹([0-9,]+)</u>"),
            ),
            parse_price,
        )
        # The first rule's zero is rejected, so the second rule decides
        self.assertEqual(cascade.resolve(page), 120)

    def test_all_matches_tries_each_occurrence(self) -> None:
        page = Page("Size 123456789012345678901 GB then 64 GB", "https://x")
        cascade = FieldCascade(
            "capacity",
            (regex(r"([^ ]+ GB)", all_matches=True),),
            short_token,
        )
        self.assertEqual(cascade.resolve(page), "64 GB")

    def test_single_match_rule_proposes_only_first(self) -> None:
        page = Page("<i>₹0</i><i>₹99</i>", "https://x")
        cascade = FieldCascade(
            "price", (regex(r"<i>₹([0-9]+)</i>"),), parse_price,
        )
        self.assertIsNone(cascade.resolve(page))

    def test_returns_none_when_nothing_matches(self) -> None:
        page = Page("<p>nothing</p>", "https://x")
        cascade = FieldCascade("title", (SelectorRule("h1"),), non_empty)
        self.assertIsNone(cascade.resolve(page))


class TestSelectorRule(unittest.TestCase):

    def test_yields_element_text(self) -> None:
        page = Page("<h1>  Pixel <em>7</em> </h1>", "https://x")
        self.assertEqual(
            list(SelectorRule("h1").candidates(page)), ["Pixel 7"],
        )

    def test_yields_attribute(self) -> None:
        page = Page('<img class="hero" src="/a.png">', "https://x")
        rule = SelectorRule("img.hero", attr="src")
        self.assertEqual(list(rule.candidates(page)), ["/a.png"])

    def test_missing_attribute_yields_nothing(self) -> None:
        page = Page('<img class="hero">', "https://x")
        rule = SelectorRule("img.hero", attr="src")
        self.assertEqual(list(rule.candidates(page)), [])


if __name__ == "__main__":
    unittest.main()
