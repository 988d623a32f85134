"""ベンダー非依存の価格抽出（未対応サイトやフォールバック用）.

取得戦略（上から順に試す）:
  1. JSON-LD（型を問わず price を再帰的に探す）
  2. Open Graph の product:price:amount / product:price:currency
  3. よくある CSS セレクタ
"""

from __future__ import annotations

from typing import Any

from pricescraper.extractors.base import PageDocument, PriceExtractor, SearchMethod, element_text
from pricescraper.extractors.json_search import find_in_json, iter_json_ld
from pricescraper.models import RawPriceCandidate
from pricescraper.price_parser import as_price_text, parse_price

_COMMON_SELECTORS = (
    ".price",
    ".product-price",
    '[class*="price"]',
    '[id*="price"]',
    "[data-price]",
    ".current-price",
    ".sale-price",
)


class GenericExtractor(PriceExtractor):
    """汎用ストラテジー."""

    vendor = "generic"

    def build_methods(self) -> list[SearchMethod]:
        return [
            SearchMethod("json_ld", self._from_json_ld),
            SearchMethod("open_graph", self._from_open_graph),
            SearchMethod("common_selectors", self._from_common_selectors),
        ]

    def _from_json_ld(self, document: PageDocument) -> RawPriceCandidate | None:
        for data in iter_json_ld(document.soup):
            candidate = find_price_in_json_ld(data)
            # パースできない price しかないブロックは次のブロックへ
            if candidate and parse_price(as_price_text(candidate.get("price"))) is not None:
                return candidate
        return None

    def _from_open_graph(self, document: PageDocument) -> RawPriceCandidate | None:
        amount = document.soup.find("meta", attrs={"property": "product:price:amount"})
        if amount is None or not amount.get("content"):
            return None

        currency = document.soup.find("meta", attrs={"property": "product:price:currency"})
        return {
            "price": amount["content"],
            "currency": currency.get("content") if currency is not None else None,
        }

    def _from_common_selectors(self, document: PageDocument) -> RawPriceCandidate | None:
        for selector in _COMMON_SELECTORS:
            element = document.soup.select_one(selector)
            if element is None:
                continue
            text = element_text(element) or element.get("data-price")
            if text and parse_price(text) is not None:
                return {"price": text}
        return None


def find_price_in_json_ld(data: Any) -> RawPriceCandidate | None:
    """JSON-LD の任意の深さから price（直接または offers 配下）を探す."""
    return find_in_json(data, _price_from_node)


def _price_from_node(node: dict) -> RawPriceCandidate | None:
    offers = node.get("offers")
    if not isinstance(offers, dict):
        offers = {}

    if "price" not in node and "price" not in offers:
        return None

    return {
        "price": node.get("price") or offers.get("price"),
        "currency": node.get("priceCurrency") or offers.get("priceCurrency"),
    }
