# price_tracker/scrapers/extraction_rules.py

"""Declarative extraction cascades over raw product-page markup.

A field is resolved by a :class:`FieldCascade`: an ordered tuple of
rules, each proposing candidate strings, and an acceptor that turns a
candidate into the field value or rejects it. The first accepted
candidate wins, so the primary (strict) rule goes first and looser
fallbacks follow.

Two rule variants exist:

* :class:`RegexRule` matches against the raw HTML text. Markup the DOM
  parser would normalise away (HTML comments inside a price, exact class
  order) is only visible here.
* :class:`SelectorRule` runs a CSS selector against the parsed
  BeautifulSoup tree and yields the element's text or an attribute.
"""

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from functools import cached_property
from typing import Generic, TypeVar

from bs4 import BeautifulSoup

T = TypeVar("T")

MAX_PRICE = 2_000_000

CONDITION_VOCABULARY: tuple[str, ...] = ("Fair", "Good", "Excellent", "Superb")


@dataclass(frozen=True)
class Page:
    """Raw markup plus the URL it came from; parsed lazily."""

    html: str
    url: str

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")


@dataclass(frozen=True)
class RegexRule:
    """Propose capture group *group* of a regex match.

    Only the first match is proposed unless *all_matches* is set, in
    which case every match is proposed in document order.
    """

    pattern: re.Pattern[str]
    group: int = 1
    all_matches: bool = False

    def candidates(self, page: Page) -> Iterator[str]:
        if self.all_matches:
            for match in self.pattern.finditer(page.html):
                yield match.group(self.group)
            return
        match = self.pattern.search(page.html)
        if match:
            yield match.group(self.group)


@dataclass(frozen=True)
class SelectorRule:
    """Propose the text (or *attr*) of the first element matching *selector*."""

    selector: str
    attr: str | None = None

    def candidates(self, page: Page) -> Iterator[str]:
        element = page.soup.select_one(self.selector)
        if element is None:
            return
        if self.attr is None:
            yield element.get_text(" ", strip=True)
            return
        value = element.get(self.attr)
        if isinstance(value, str):
            yield value


ExtractionRule = RegexRule | SelectorRule


@dataclass(frozen=True)
class FieldCascade(Generic[T]):
    """Ordered rules for one field; first accepted candidate wins."""

    name: str
    rules: tuple[ExtractionRule, ...]
    accept: Callable[[str], T | None]

    def resolve(self, page: Page) -> T | None:
        for rule in self.rules:
            for candidate in rule.candidates(page):
                value = self.accept(candidate)
                if value is not None:
                    return value
        return None


def regex(
    pattern: str,
    *,
    group: int = 1,
    all_matches: bool = False,
    flags: int = re.IGNORECASE,
) -> RegexRule:
    """Compile *pattern* into a :class:`RegexRule`."""
    return RegexRule(re.compile(pattern, flags), group, all_matches)


# ── Acceptors ────────────────────────────────────────────


def parse_price(text: str | None) -> int | None:
    """Parse a rupee amount like ``'49,999'`` into an int.

    Commas are stripped. Values outside ``(0, MAX_PRICE)`` are rejected.
    """
    if not text:
        return None
    digits = re.search(r"\d+", text.replace(",", ""))
    if not digits:
        return None
    price = int(digits.group(0))
    if 0 < price < MAX_PRICE:
        return price
    return None


def normalize_condition(text: str | None) -> str | None:
    """Map free text onto the condition vocabulary by substring match."""
    if not text:
        return None
    lowered = text.lower()
    for grade in CONDITION_VOCABULARY:
        if grade.lower() in lowered:
            return grade
    return None


def non_empty(text: str) -> str | None:
    stripped = text.strip()
    return stripped or None


def short_token(text: str) -> str | None:
    """Accept capacity-shaped tokens shorter than 20 characters."""
    stripped = text.strip()
    if stripped and len(stripped) < 20:
        return stripped
    return None


def percent(text: str) -> str | None:
    """Accept a non-zero percentage; ``"0"`` falls through to later rules."""
    if not text.isdigit() or int(text) == 0:
        return None
    return f"{int(text)}%"
