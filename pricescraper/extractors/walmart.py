"""Walmart 商品ページの価格抽出.

取得戦略（上から順に試す）:
  1. 埋め込み JSON ステート（__WML_REDUX_INITIAL_STATE__ / "product" / "pricing"）
  2. 価格表示要素（was-price があれば定価として拾う）
  3. Open Graph / itemprop="price" のメタ情報
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Iterator

from bs4 import Tag

from pricescraper.extractors.base import PageDocument, PriceExtractor, SearchMethod, element_text
from pricescraper.extractors.json_search import decode_json_after, find_in_json, first_present
from pricescraper.models import RawPriceCandidate
from pricescraper.price_parser import parse_price

# (パターン, デコード結果を包み直すキー)
_STATE_PATTERNS = (
    (re.compile(r"window\.__WML_REDUX_INITIAL_STATE__\s*=\s*(?=\{)"), None),
    (re.compile(r'"product"\s*:\s*(?=\{)'), "product"),
    (re.compile(r'"pricing"\s*:\s*(?=\{)'), "pricing"),
)

_PRICE_DISPLAY_SELECTORS = (
    '[data-testid="product-price"]',
    '[class*="PriceDisplay"]',
    '[class*="price-display"]',
    ".prod-PriceHero .price",
    '[itemprop="price"]',
)

_WAS_PRICE_SELECTOR = '[class*="was-price"]'

_ROLLBACK_RE = re.compile(r"rollback|reduced price", re.IGNORECASE)


class WalmartExtractor(PriceExtractor):
    """Walmart 用ストラテジー."""

    vendor = "walmart"

    def build_methods(self) -> list[SearchMethod]:
        return [
            SearchMethod("json_state", self._from_json_state),
            SearchMethod("price_display", self._from_price_display),
            SearchMethod("meta_tags", self._from_meta_tags),
        ]

    def _from_json_state(self, document: PageDocument) -> RawPriceCandidate | None:
        for text in self._state_sources(document):
            for pattern, wrap_key in _STATE_PATTERNS:
                for state in decode_json_after(text, pattern):
                    if wrap_key:
                        state = {wrap_key: state}
                    candidate = find_price_in_state(state)
                    if candidate is not None:
                        return candidate
        return None

    @staticmethod
    def _state_sources(document: PageDocument) -> Iterator[str]:
        # まず HTML 全体、次に script タグ単位で探す
        yield document.html
        for script in document.soup.find_all("script"):
            content = script.string
            if content:
                yield content

    def _from_price_display(self, document: PageDocument) -> RawPriceCandidate | None:
        for selector in _PRICE_DISPLAY_SELECTORS:
            element = document.soup.select_one(selector)
            if element is None:
                continue

            text = element_text(element) or element.get("content")
            if not text or parse_price(text) is None:
                continue

            candidate: RawPriceCandidate = {"price": text}
            was_text = _was_price_text(element)
            if was_text and parse_price(was_text) is not None:
                candidate["list_price"] = was_text
            return candidate
        return None

    def _from_meta_tags(self, document: PageDocument) -> RawPriceCandidate | None:
        og_price = document.soup.find("meta", attrs={"property": "product:price:amount"})
        if og_price is not None and og_price.get("content"):
            og_currency = document.soup.find("meta", attrs={"property": "product:price:currency"})
            return {
                "price": og_price["content"],
                "currency": og_currency.get("content") if og_currency is not None else None,
            }

        item_price = document.soup.find(attrs={"itemprop": "price"})
        if item_price is not None and item_price.get("content"):
            return {"price": item_price["content"]}
        return None

    @staticmethod
    def is_rollback_price(html: str) -> bool:
        """ロールバック（期間限定値下げ）表示があるかどうか."""
        if not html or not isinstance(html, str):
            return False
        return _ROLLBACK_RE.search(html) is not None


def find_price_in_state(state: Any) -> RawPriceCandidate | None:
    """Walmart の JSON ステートから最初に見つかった価格を返す."""
    return find_in_json(state, _price_from_node)


def _price_from_node(node: dict) -> RawPriceCandidate | None:
    if "price" in node:
        raw = node["price"]
        was = None
        if isinstance(raw, dict):
            current = raw.get("current")
            price = _scalar_price(current) or _scalar_price(raw.get("price"))
            was = _scalar_price(raw.get("was"))
        else:
            price = _scalar_price(raw)

        if price:
            list_price = (
                was
                or _scalar_price(node.get("wasPrice"))
                or _scalar_price(node.get("listPrice"))
            )
            currency = node.get("currency")
            if not currency and isinstance(raw, dict):
                currency = raw.get("currency")
            return {"price": price, "list_price": list_price, "currency": currency}

    pricing = node.get("pricing")
    if isinstance(pricing, dict):
        price = _scalar_price(first_present(pricing, "price", "currentPrice"))
        if price:
            list_price = _scalar_price(first_present(pricing, "wasPrice", "rollbackPrice"))
            return {"price": price, "list_price": list_price}
    return None


def _scalar_price(value: Any) -> Any:
    """{"price": 9.99} 形式ならその中身を、スカラー値ならそのまま返す."""
    if isinstance(value, dict):
        value = value.get("price")
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float, Decimal)) and value not in ("", 0):
        return value
    return None


def _was_price_text(element: Tag) -> str | None:
    was = element.find_next_sibling(class_=re.compile("was-price")) or element.find_previous_sibling(
        class_=re.compile("was-price")
    )
    if was is None and element.parent is not None:
        was = element.parent.select_one(_WAS_PRICE_SELECTOR)
    if was is None:
        return None
    return element_text(was)
