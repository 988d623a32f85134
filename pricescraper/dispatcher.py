"""ベンダータグから価格抽出ストラテジーを選ぶディスパッチャ.

amazon / walmart は専用ストラテジーのみを使い、失敗しても汎用には戻らない。
それ以外のタグは generic → amazon → walmart の順にフォールバックする。
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from pricescraper.extractors.amazon import AmazonExtractor
from pricescraper.extractors.base import PriceExtractor
from pricescraper.extractors.generic import GenericExtractor
from pricescraper.extractors.walmart import WalmartExtractor
from pricescraper.models import NormalizedPrice

logger = logging.getLogger(__name__)


class ExtractionDispatcher:
    """ベンダータグ → ストラテジーの対応表とフォールバック順を持つ."""

    def __init__(
        self,
        extractors: Mapping[str, PriceExtractor] | None = None,
        fallback_order: Sequence[str] = ("generic", "amazon", "walmart"),
    ) -> None:
        self.extractors: dict[str, PriceExtractor] = dict(
            extractors
            or {
                "amazon": AmazonExtractor(),
                "walmart": WalmartExtractor(),
                "generic": GenericExtractor(),
            }
        )
        self.fallback_order = tuple(fallback_order)

    def chain_for(self, vendor: str) -> tuple[str, ...]:
        """vendor に対して試すストラテジー名を順に返す."""
        if vendor != "generic" and vendor in self.extractors:
            return (vendor,)
        return self.fallback_order

    def extract(self, html: str, vendor: str) -> NormalizedPrice | None:
        """HTML から価格を抽出する. ストラテジー内の例外は None 扱い."""
        for name in self.chain_for(vendor):
            extractor = self.extractors[name]
            try:
                result = extractor.extract(html)
            except Exception:
                logger.exception("価格抽出中にエラー: vendor=%s, extractor=%s", vendor, name)
                continue

            if result is not None:
                return result
            logger.info("抽出失敗: vendor=%s, extractor=%s", vendor, name)

        return None
