"""価格文字列のパースと価格候補の正規化."""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pricescraper.models import NormalizedPrice, PriceValue, RawPriceCandidate

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"

# 判定順に並べる
CURRENCY_SYMBOLS = (
    ("$", "USD"),
    ("€", "EUR"),
    ("£", "GBP"),
    ("¥", "JPY"),
    ("₹", "INR"),
)

_CURRENCY_GLYPH_RE = re.compile(r"[$€£¥₹]")
_WHITESPACE_RE = re.compile(r"\s+")
# カンマ 1 つ + 末尾 2 桁のみ（例: 25,50）ならカンマを小数点とみなす
_DECIMAL_COMMA_RE = re.compile(r"\d,\d{2}(?!\d)")
_NON_NUMERIC_RE = re.compile(r"[^\d.]")
_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
# 先頭のマイナス記号は負の価格
_NEGATIVE_RE = re.compile(r"^[-\u2212]\.?\d")
_ISO_CODE_RE = re.compile(r"^[A-Za-z]{3}$")

_CENTS = Decimal("0.01")


def parse_price(text: str) -> Decimal | None:
    """価格文字列を小数 2 桁の Decimal に変換する.

    Args:
        text: "$29.99", "€25,50", "1,299.00" などの文字列

    Returns:
        正の Decimal。パース不能・0 以下・文字列以外は None。
    """
    if not text or not isinstance(text, str):
        return None

    cleaned = _CURRENCY_GLYPH_RE.sub("", text, count=1)
    cleaned = _WHITESPACE_RE.sub("", cleaned)
    if _NEGATIVE_RE.match(cleaned):
        return None

    if _is_decimal_comma(cleaned):
        cleaned = cleaned.replace(",", ".")
    else:
        cleaned = cleaned.replace(",", "")

    cleaned = _NON_NUMERIC_RE.sub("", cleaned)
    match = _LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return None

    try:
        value = Decimal(match.group(0))
        if not value.is_finite() or value <= 0:
            return None
        # 桁数が精度を超えると quantize が InvalidOperation を投げる
        rounded = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None

    if rounded <= 0:
        return None
    return rounded


def _is_decimal_comma(cleaned: str) -> bool:
    return (
        cleaned.count(",") == 1
        and "." not in cleaned
        and _DECIMAL_COMMA_RE.search(cleaned) is not None
    )


def extract_currency(text: str) -> str:
    """文字列中の通貨記号から通貨コードを推定する. 見つからなければ USD."""
    if not text or not isinstance(text, str):
        return DEFAULT_CURRENCY

    for symbol, code in CURRENCY_SYMBOLS:
        if symbol in text:
            return code
    return DEFAULT_CURRENCY


def _is_present(value: PriceValue | None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def as_price_text(value: PriceValue | None) -> str | None:
    """JSON 由来の数値も parse_price に渡せるよう文字列化する."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)):
        # 指数表記（1e-05 など）を避ける
        return format(Decimal(str(value)), "f")
    return None


def _resolve_currency(currency: str | None, price_text: str) -> str:
    if currency and isinstance(currency, str):
        currency = currency.strip()
        if _ISO_CODE_RE.match(currency):
            return currency.upper()
        if currency:
            return extract_currency(currency)
    return extract_currency(price_text)


def normalize_price(candidate: RawPriceCandidate | None) -> NormalizedPrice | None:
    """価格候補を NormalizedPrice に正規化する.

    最終価格は sale_price → price → list_price の順で最初に存在するものを使う。
    最終価格がパースできなければ None（部分的なレコードは作らない）。
    original_price は list_price → (セール時のみ) price → 最終価格の順。
    """
    if not candidate:
        return None

    price = candidate.get("price")
    sale_price = candidate.get("sale_price")
    list_price = candidate.get("list_price")

    final_raw = next(
        (value for value in (sale_price, price, list_price) if _is_present(value)),
        None,
    )
    final_text = as_price_text(final_raw)
    parsed = parse_price(final_text)
    if parsed is None:
        logger.debug("最終価格をパースできません: %r", final_raw)
        return None

    has_sale = _is_present(sale_price)

    original = None
    if _is_present(list_price):
        original = parse_price(as_price_text(list_price))
    if original is None and has_sale and _is_present(price):
        # 定価が無いセール価格は price を値引き前の価格とみなす
        original = parse_price(as_price_text(price))
    if original is None:
        original = parsed

    parsed_sale = None
    if has_sale:
        parsed_sale = parse_price(as_price_text(sale_price))

    return NormalizedPrice(
        price=parsed,
        original_price=original,
        sale_price=parsed_sale,
        currency=_resolve_currency(candidate.get("currency"), final_text),
        # 元の値同士で比較する（丸め後ではない）
        is_on_sale=has_sale and sale_price != price,
    )
