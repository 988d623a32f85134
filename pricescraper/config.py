"""設定モジュール — 環境変数・定数定義."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

# .env はプロジェクトルートに配置
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# --- スクレイピング API ---
DEFAULT_API_URL = "https://api.decodo.com/v1"

# --- User-Agent ---
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36"
)

# --- リクエスト設定 ---
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # 秒（初回リトライの待機時間）
DEFAULT_TIMEOUT = 30.0  # 秒
DEFAULT_WAIT_FOR_MS = 2000  # レンダリング待機（ミリ秒）

# --- 価格バリデーション ---
MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("1000000")
PRICE_CHANGE_THRESHOLD = 50  # %

# --- ログ ---
LOG_DIR = _PROJECT_ROOT / "logs"


@dataclass(frozen=True)
class ScraperConfig:
    """各コンポーネントに明示的に渡す設定値."""

    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    min_price: Decimal = MIN_PRICE
    max_price: Decimal = MAX_PRICE
    price_change_threshold: float = PRICE_CHANGE_THRESHOLD


def load_config() -> ScraperConfig:
    """環境変数から ScraperConfig を組み立てる.

    未設定の項目はモジュール定数のデフォルト値を使う。
    """
    return ScraperConfig(
        api_key=os.environ.get("DECODO_API_KEY", ""),
        api_url=os.environ.get("DECODO_API_URL", DEFAULT_API_URL),
        max_retries=int(os.environ.get("PRICESCRAPER_MAX_RETRIES", DEFAULT_MAX_RETRIES)),
        retry_delay=float(os.environ.get("PRICESCRAPER_RETRY_DELAY", DEFAULT_RETRY_DELAY)),
        timeout=float(os.environ.get("PRICESCRAPER_TIMEOUT", DEFAULT_TIMEOUT)),
    )
