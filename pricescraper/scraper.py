"""商品ページ価格取得の公開 API.

処理フロー:
  1. URL からベンダーを判定
  2. スクレイピング API で HTML を取得
  3. 在庫切れ判定（allow_out_of_stock で無効化可）
  4. ディスパッチャでベンダー別ストラテジーを実行（正規化込み）
  5. バリデーションして PriceQueryResult を組み立てる
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Sequence

from pricescraper.config import ScraperConfig
from pricescraper.dispatcher import ExtractionDispatcher
from pricescraper.extractors.amazon import AmazonExtractor
from pricescraper.extractors.walmart import WalmartExtractor
from pricescraper.fetcher import FetchOptions, HtmlFetcher
from pricescraper.models import PriceQueryResult
from pricescraper.validator import is_out_of_stock, is_reasonable_price_change, validate_price_data

logger = logging.getLogger(__name__)

OUT_OF_STOCK_ERROR = "Product appears to be out of stock"
NO_PRICE_ERROR = "Could not extract price from page"
CART_PRICE_WARNING = "Price is only shown in cart; extracted price may be incomplete"
ROLLBACK_WARNING = "Rollback price detected"

# ホスト名の部分一致で判定する（上から順）
_VENDOR_MARKERS = (
    ("amazon", ("amazon.com", "amazon.")),
    ("walmart", ("walmart.com", "walmart.")),
    ("target", ("target.com",)),
    ("bestbuy", ("bestbuy.com",)),
)


def detect_vendor(url: str) -> str:
    """URL からベンダータグを判定する. 該当なしは "generic"."""
    lower_url = url.lower()
    for vendor, markers in _VENDOR_MARKERS:
        if any(marker in lower_url for marker in markers):
            return vendor
    return "generic"


class PriceScraper:
    """HTML 取得から価格レコード生成までをまとめるクラス."""

    def __init__(
        self,
        config: ScraperConfig,
        fetcher: HtmlFetcher | None = None,
        dispatcher: ExtractionDispatcher | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or HtmlFetcher(config)
        self.dispatcher = dispatcher or ExtractionDispatcher()

    def get_price_record(
        self,
        html: str,
        vendor: str,
        url: str = "",
        allow_out_of_stock: bool = False,
    ) -> PriceQueryResult:
        """取得済み HTML から価格レコードを組み立てる."""
        if is_out_of_stock(html) and not allow_out_of_stock:
            logger.info("在庫切れ: url=%s", url)
            return PriceQueryResult(url=url, vendor=vendor, available=False, error=OUT_OF_STOCK_ERROR)

        price = self.dispatcher.extract(html, vendor)
        if price is None:
            logger.warning("価格を抽出できませんでした: url=%s, vendor=%s", url, vendor)
            return PriceQueryResult(url=url, vendor=vendor, available=False, error=NO_PRICE_ERROR)

        validation = validate_price_data(price, self.config.min_price, self.config.max_price)
        if not validation.is_valid:
            logger.warning("バリデーション失敗: url=%s, errors=%s", url, validation.errors)
            return PriceQueryResult(
                url=url,
                vendor=vendor,
                available=False,
                error=f"Price validation failed: {', '.join(validation.errors)}",
                raw_price=price,
            )

        warnings = list(validation.errors)
        if vendor == "amazon" and AmazonExtractor.is_cart_price(html):
            warnings.append(CART_PRICE_WARNING)
        if vendor == "walmart" and WalmartExtractor.is_rollback_price(html):
            warnings.append(ROLLBACK_WARNING)

        return PriceQueryResult(
            url=url,
            vendor=vendor,
            available=True,
            price=price,
            scraped_at=datetime.now(timezone.utc).isoformat(),
            warnings=warnings,
        )

    def is_reasonable_change(self, old_price: Any, new_price: Any) -> bool:
        """設定の閾値で前回価格からの変動が妥当か判定する."""
        return is_reasonable_price_change(old_price, new_price, self.config.price_change_threshold)

    def get_price(
        self,
        url: str,
        options: FetchOptions | None = None,
        allow_out_of_stock: bool = False,
    ) -> PriceQueryResult:
        """URL の HTML を取得して価格レコードを返す.

        Raises:
            ValueError: url が空または文字列でない場合
            FetchError: HTML を取得できなかった場合
        """
        if not url or not isinstance(url, str):
            raise ValueError("Valid URL is required")

        vendor = detect_vendor(url)
        html = self.fetcher.fetch_html(url, options)
        if not html:
            raise ValueError("Failed to fetch HTML content")

        return self.get_price_record(html, vendor, url=url, allow_out_of_stock=allow_out_of_stock)

    def get_prices_batch(
        self,
        urls: Sequence[str],
        options: FetchOptions | None = None,
        allow_out_of_stock: bool = False,
    ) -> list[PriceQueryResult]:
        """複数 URL を並行に処理する.

        結果は入力順。個々の URL の失敗はエラーレコードになり、他には影響しない。
        """
        if not isinstance(urls, (list, tuple)):
            raise TypeError("URLs must be a list")
        if not urls:
            return []

        # 全 URL を待ち合わせなしで同時に投げる
        with ThreadPoolExecutor(max_workers=len(urls)) as executor:
            futures = [
                executor.submit(self.get_price, url, options, allow_out_of_stock)
                for url in urls
            ]

            results: list[PriceQueryResult] = []
            for url, future in zip(urls, futures):
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error("価格取得失敗: url=%s, error=%s", url, e)
                    results.append(
                        PriceQueryResult(
                            url=url if isinstance(url, str) else repr(url),
                            vendor=None,
                            available=False,
                            error=str(e) or "Unknown error",
                        )
                    )

        return results
