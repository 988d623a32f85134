"""価格抽出ストラテジーの共通部分.

各ストラテジーは SearchMethod を順番に試し、最初に正規化できた価格を返す。
メソッド内の例外は「そのメソッドは失敗」として扱い、次のメソッドへ進む。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from bs4 import BeautifulSoup, Tag

from pricescraper.models import NormalizedPrice, RawPriceCandidate
from pricescraper.price_parser import normalize_price

logger = logging.getLogger(__name__)


@dataclass
class PageDocument:
    """生 HTML とパース済み DOM の組."""

    html: str
    soup: BeautifulSoup = field(repr=False)

    @classmethod
    def from_html(cls, html: str) -> PageDocument:
        return cls(html=html, soup=BeautifulSoup(html, "html.parser"))


@dataclass(frozen=True)
class SearchMethod:
    """価格の所在に関する 1 つの仮説."""

    name: str
    search: Callable[[PageDocument], RawPriceCandidate | None]

    def __call__(self, document: PageDocument) -> RawPriceCandidate | None:
        return self.search(document)


class PriceExtractor:
    """ベンダー別ストラテジーの基底クラス."""

    vendor = "base"

    def __init__(self) -> None:
        self.methods: tuple[SearchMethod, ...] = tuple(self.build_methods())

    def build_methods(self) -> list[SearchMethod]:
        """試行順に並べた SearchMethod を返す."""
        raise NotImplementedError

    def extract(self, html: str) -> NormalizedPrice | None:
        """HTML から価格を抽出する.

        Returns:
            最初に成功したメソッドの正規化済み価格。見つからなければ None。
        """
        if not html or not isinstance(html, str):
            return None

        document = PageDocument.from_html(html)
        for method in self.methods:
            try:
                candidate = method(document)
            except Exception as e:
                logger.warning("%s.%s 失敗: %s", self.vendor, method.name, e)
                continue

            if not candidate:
                continue

            normalized = normalize_price(candidate)
            if normalized is not None:
                logger.debug("%s.%s で価格を抽出: %s", self.vendor, method.name, normalized.price)
                return normalized

        logger.debug("%s: 価格が見つかりませんでした", self.vendor)
        return None


def element_text(element: Tag) -> str:
    """要素の表示テキスト（前後の空白を除く）."""
    return element.get_text(strip=True)


def preferred_price_text(element: Tag) -> str:
    """読み上げ用の .a-offscreen 子要素があればそちらを優先する."""
    offscreen = element.select_one(".a-offscreen")
    if offscreen is not None:
        text = element_text(offscreen)
        if text:
            return text
    return element_text(element)
