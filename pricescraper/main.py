"""商品価格取得 — メインエントリーポイント.

処理フロー:
  1. 設定（.env / 環境変数）を読み込む
  2. 指定 URL をまとめて並行取得
  3. 価格レコードを JSON で標準出力に書き出す
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime

from pricescraper.config import LOG_DIR, load_config
from pricescraper.fetcher import FetchOptions
from pricescraper.scraper import PriceScraper


def setup_logging() -> None:
    """ロギングの初期設定."""
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / f"pricescraper_{datetime.now().strftime('%Y%m%d')}.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="商品ページから価格を取得する")
    parser.add_argument("urls", nargs="+", help="商品ページの URL")
    parser.add_argument("--allow-out-of-stock", action="store_true", help="在庫切れ判定をスキップする")
    parser.add_argument("--no-render", action="store_true", help="JS レンダリングを無効にする")
    parser.add_argument("--wait-for", type=int, default=None, help="レンダリング待機時間（ミリ秒）")
    return parser.parse_args(argv)


def run(urls: list[str], options: FetchOptions, allow_out_of_stock: bool = False) -> list[dict]:
    """メイン処理."""
    logger = logging.getLogger(__name__)
    config = load_config()
    if not config.api_key:
        raise ValueError("DECODO_API_KEY not found in environment variables")

    logger.info("=== 価格取得 開始: %d 件 ===", len(urls))
    start_time = time.time()

    scraper = PriceScraper(config)
    results = scraper.get_prices_batch(urls, options, allow_out_of_stock=allow_out_of_stock)

    available = sum(1 for r in results if r.available)
    elapsed = time.time() - start_time
    logger.info("=== 価格取得 完了 ===")
    logger.info("取得成功: %d 件, 失敗: %d 件, 所要時間: %.1f 秒",
                available, len(results) - available, elapsed)
    return [r.as_dict() for r in results]


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging()

    options = FetchOptions(render=not args.no_render)
    if args.wait_for is not None:
        options.wait_for = args.wait_for

    try:
        records = run(args.urls, options, allow_out_of_stock=args.allow_out_of_stock)
    except ValueError as e:
        logging.getLogger(__name__).error("%s", e)
        return 1

    print(json.dumps(records, ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
