"""スクレイピング API 経由で商品ページの HTML を取得するモジュール.

レンダリング付きスクレイピング API（Decodo 互換）に POST し、
失敗時は指数バックオフで max_retries 回まで再試行する。
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import backoff
import requests

from pricescraper.config import DEFAULT_WAIT_FOR_MS, ScraperConfig

logger = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """リトライ上限まで HTML を取得できなかった."""

    def __init__(self, url: str, attempts: int, message: str) -> None:
        super().__init__(message)
        self.url = url
        self.attempts = attempts


@dataclass
class FetchOptions:
    """1 リクエスト分の取得オプション."""

    render: bool = True
    wait_for: int = DEFAULT_WAIT_FOR_MS  # ミリ秒
    headers: dict[str, str] | None = None
    user_agent: str | None = None
    provider_options: dict[str, Any] = field(default_factory=dict)


class HtmlFetcher:
    """スクレイピング API クライアント."""

    def __init__(
        self,
        config: ScraperConfig,
        session: requests.Session | None = None,
    ) -> None:
        if not config.api_key:
            raise ValueError("Decodo API key is required")
        self.config = config
        self.session = session or requests.Session()

    def build_payload(self, url: str, options: FetchOptions) -> dict[str, Any]:
        """API に送る JSON ボディを組み立てる."""
        headers = options.headers or {
            "User-Agent": options.user_agent or self.config.user_agent,
        }
        return {
            "url": url,
            "render": options.render,
            "waitFor": options.wait_for,
            "headers": headers,
            **options.provider_options,
        }

    def fetch_html(self, url: str, options: FetchOptions | None = None) -> str:
        """商品ページの HTML を取得する.

        Raises:
            FetchError: max_retries 回試行しても取得できなかった場合
        """
        options = options or FetchOptions()
        payload = self.build_payload(url, options)
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        endpoint = f"{self.config.api_url.rstrip('/')}/scrape"
        max_retries = max(1, self.config.max_retries)
        started = 0.0

        def attempt() -> str:
            nonlocal started
            started = time.monotonic()
            resp = self.session.post(
                endpoint,
                json=payload,
                headers=headers,
                timeout=self.config.timeout,
            )
            resp.raise_for_status()
            return _html_from_response(resp)

        def remaining_delay(delay: float) -> float:
            # 待機時間は試行開始時刻から数える
            return max(0.0, delay - (time.monotonic() - started))

        def log_failure(details: dict[str, Any]) -> None:
            logger.warning(
                "HTML 取得失敗: url=%s, attempt=%d/%d, error=%s",
                url, details["tries"], max_retries, details["exception"],
            )

        retrying = backoff.on_exception(
            backoff.expo,
            (requests.RequestException, ValueError),
            max_tries=max_retries,
            factor=self.config.retry_delay,
            jitter=remaining_delay,
            on_backoff=log_failure,
            on_giveup=log_failure,
            logger=None,
        )(attempt)

        try:
            return retrying()
        except (requests.RequestException, ValueError) as e:
            raise FetchError(
                url,
                max_retries,
                f"Failed to fetch HTML after {max_retries} attempts: {e}",
            ) from e


def _html_from_response(resp: requests.Response) -> str:
    """API レスポンスから HTML を取り出す.

    {"html": ...} / {"content": ...} / 生の HTML 文字列のいずれかを受け付ける。
    """
    content_type = resp.headers.get("Content-Type", "")
    if "json" in content_type:
        data = resp.json()
        if isinstance(data, dict):
            if data.get("html"):
                return data["html"]
            if data.get("content"):
                return data["content"]
        if isinstance(data, str) and data:
            return data
        raise ValueError("Unexpected response format from Decodo API")

    if resp.text:
        return resp.text
    raise ValueError("Unexpected response format from Decodo API")
