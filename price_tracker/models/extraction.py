# price_tracker/models/extraction.py

"""Field set recovered from one product page."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractionResult:
    """Transient output of the extractor; mapped onto a TrackedItem."""

    title: str
    list_price: int
    sale_price: int
    discount: str = "0%"
    condition: str = "Good"
    capacity: str = "128GB"
    ram: str = ""
    color: str = ""
    image_url: str = ""
    out_of_stock: bool = False
    # Set when out-of-stock placeholder prices were filled in
    prices_synthesized: bool = False
