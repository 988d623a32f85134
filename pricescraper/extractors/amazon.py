"""Amazon 商品ページの価格抽出.

取得戦略（上から順に試す）:
  1. 埋め込み JSON（buyingPrice / priceToPay / offerPrice）
  2. JSON-LD (schema.org/Product)
  3. priceToPay 要素
  4. オファーブロック（取り消し線の定価も拾う）
  5. a-price-whole / a-price-fraction の分割表示
"""

from __future__ import annotations

import re

from bs4 import Tag

from pricescraper.extractors.base import (
    PageDocument,
    PriceExtractor,
    SearchMethod,
    element_text,
    preferred_price_text,
)
from pricescraper.extractors.json_search import decode_json_after, first_present, iter_json_ld
from pricescraper.models import RawPriceCandidate
from pricescraper.price_parser import parse_price

_EMBEDDED_PRICE_PATTERNS = (
    re.compile(r'"buyingPrice"\s*:\s*(?=\{)'),
    re.compile(r'"priceToPay"\s*:\s*(?=\{)'),
    re.compile(r'"offerPrice"\s*:\s*(?=\{)'),
)

_PRICE_TO_PAY_SELECTORS = (
    "#priceToPay",
    '[class*="priceToPay"]',
    ".a-price.a-text-price.a-size-medium.apexPriceToPay",
)

_OFFER_SELECTORS = (
    '[data-a-color="price"]',
    ".a-price",
    ".a-price-whole",
)

_STRIKE_ATTRS = {"data-a-strike": "true"}

_CART_PRICE_RE = re.compile(
    r"see price in cart|add to cart to see price|price available in cart",
    re.IGNORECASE,
)
_NON_DIGIT_RE = re.compile(r"\D")


class AmazonExtractor(PriceExtractor):
    """Amazon 用ストラテジー."""

    vendor = "amazon"

    def build_methods(self) -> list[SearchMethod]:
        return [
            SearchMethod("embedded_json", self._from_embedded_json),
            SearchMethod("json_ld", self._from_json_ld),
            SearchMethod("price_to_pay", self._from_price_to_pay),
            SearchMethod("offers", self._from_offers),
            SearchMethod("core_price", self._from_core_price),
        ]

    def _from_embedded_json(self, document: PageDocument) -> RawPriceCandidate | None:
        for pattern in _EMBEDDED_PRICE_PATTERNS:
            for data in decode_json_after(document.html, pattern):
                if not isinstance(data, dict):
                    continue
                amount = first_present(data, "amount", "price", "value")
                if amount:
                    return {"price": amount, "currency": data.get("currency")}
        return None

    def _from_json_ld(self, document: PageDocument) -> RawPriceCandidate | None:
        for data in iter_json_ld(document.soup):
            product = _find_product(data)
            if product is None:
                continue

            offers = product.get("offers")
            if isinstance(offers, list):
                offers = offers[0] if offers else None
            if isinstance(offers, dict) and first_present(offers, "price"):
                return {"price": offers["price"], "currency": offers.get("priceCurrency")}
        return None

    def _from_price_to_pay(self, document: PageDocument) -> RawPriceCandidate | None:
        for selector in _PRICE_TO_PAY_SELECTORS:
            element = document.soup.select_one(selector)
            if element is None:
                continue
            text = preferred_price_text(element)
            if parse_price(text) is not None:
                return {"price": text}
        return None

    def _from_offers(self, document: PageDocument) -> RawPriceCandidate | None:
        for selector in _OFFER_SELECTORS:
            for element in document.soup.select(selector):
                text = preferred_price_text(element)
                if parse_price(text) is None:
                    continue

                candidate: RawPriceCandidate = {"price": text}
                strike = _strike_sibling(element)
                if strike is not None:
                    list_text = preferred_price_text(strike)
                    if parse_price(list_text) is not None:
                        candidate["list_price"] = list_text
                return candidate
        return None

    def _from_core_price(self, document: PageDocument) -> RawPriceCandidate | None:
        whole_el = document.soup.select_one('[class*="a-price-whole"]')
        if whole_el is None:
            return None

        whole = _NON_DIGIT_RE.sub("", element_text(whole_el))
        if not whole:
            return None

        fraction_el = document.soup.select_one('[class*="a-price-fraction"]')
        fraction = _NON_DIGIT_RE.sub("", element_text(fraction_el)) if fraction_el else ""
        return {"price": f"{whole}.{fraction or '00'}"}

    @staticmethod
    def is_cart_price(html: str) -> bool:
        """「カートで価格を表示」タイプのページかどうか."""
        if not html or not isinstance(html, str):
            return False
        return _CART_PRICE_RE.search(html) is not None


def _find_product(data) -> dict | None:
    if isinstance(data, dict) and data.get("@type") == "Product":
        return data
    if isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict) and entry.get("@type") == "Product":
                return entry
    return None


def _strike_sibling(element: Tag) -> Tag | None:
    """前後の兄弟要素から取り消し線（定価）要素を探す."""
    return element.find_next_sibling(attrs=_STRIKE_ATTRS) or element.find_previous_sibling(
        attrs=_STRIKE_ATTRS
    )
