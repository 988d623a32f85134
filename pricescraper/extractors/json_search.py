"""HTML に埋め込まれた JSON の探索ヘルパー."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterator, TypeVar

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

T = TypeVar("T")

_decoder = json.JSONDecoder()


def decode_json_after(text: str, pattern: re.Pattern[str]) -> Iterator[Any]:
    """pattern にマッチした位置の直後から JSON 値をデコードして順に返す.

    pattern は JSON 値の開始位置（通常は "{"）の直前で終わること。
    デコードできなかったマッチは読み飛ばす。
    """
    for match in pattern.finditer(text):
        try:
            value, _ = _decoder.raw_decode(text, match.end())
        except json.JSONDecodeError as e:
            logger.debug("埋め込み JSON パースエラー: pattern=%s, error=%s", pattern.pattern, e)
            continue
        yield value


def iter_json_ld(soup: BeautifulSoup) -> Iterator[Any]:
    """<script type="application/ld+json"> の中身をパースして順に返す."""
    for script in soup.find_all("script", type="application/ld+json"):
        content = script.string or script.get_text()
        if not content or not content.strip():
            continue
        try:
            yield json.loads(content)
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug("JSON-LD パースエラー: %s", e)
            continue


def find_in_json(node: Any, visit: Callable[[dict], T | None]) -> T | None:
    """ネストされた dict/list を深さ優先で走査し、最初にヒットした結果を返す.

    各 dict ではまず visit を呼び、ヒットしなければ値を定義順に降りていく。
    dict/list 以外の値は行き止まり。
    """
    if isinstance(node, dict):
        found = visit(node)
        if found is not None:
            return found
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None

    for child in children:
        if isinstance(child, (dict, list)):
            found = find_in_json(child, visit)
            if found is not None:
                return found
    return None


def first_present(data: dict, *keys: str) -> Any:
    """keys のうち最初に空でない値を返す."""
    for key in keys:
        value = data.get(key)
        if value not in (None, "", 0, False):
            return value
    return None
