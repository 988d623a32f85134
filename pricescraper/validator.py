"""価格レコードのバリデーションと在庫切れ判定."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Mapping

from pricescraper.config import MAX_PRICE, MIN_PRICE, PRICE_CHANGE_THRESHOLD
from pricescraper.models import NormalizedPrice, ValidationResult

_OUT_OF_STOCK_PATTERNS = (
    re.compile(r"out of stock", re.IGNORECASE),
    re.compile(r"currently unavailable", re.IGNORECASE),
    re.compile(r"temporarily out of stock", re.IGNORECASE),
    re.compile(r"unavailable", re.IGNORECASE),
    re.compile(r"sold out", re.IGNORECASE),
)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return not math.isnan(value) and not math.isinf(value)
    return False


def is_valid_price_range(
    price: Any,
    min_price: Decimal = MIN_PRICE,
    max_price: Decimal = MAX_PRICE,
) -> bool:
    """価格が [min_price, max_price] に収まっているか."""
    if not _is_number(price):
        return False
    return Decimal(str(price)) >= min_price and Decimal(str(price)) <= max_price


def is_reasonable_price_change(
    old_price: Any,
    new_price: Any,
    threshold_percent: float = PRICE_CHANGE_THRESHOLD,
) -> bool:
    """旧価格 → 新価格の変動率が閾値以内か.

    どちらかの価格が無い場合は判定できないので True、数値でなければ False を返す。
    """
    if not old_price or not new_price:
        return True
    if not _is_number(old_price) or not _is_number(new_price):
        return False

    old = Decimal(str(old_price))
    new = Decimal(str(new_price))
    change_percent = abs((new - old) / old) * 100
    return change_percent <= Decimal(str(threshold_percent))


def validate_price_data(
    record: NormalizedPrice | Mapping[str, Any] | None,
    min_price: Decimal = MIN_PRICE,
    max_price: Decimal = MAX_PRICE,
) -> ValidationResult:
    """正規化済みレコードを検証する.

    通貨の欠落は警告として errors に積むだけで is_valid は変えない。
    """
    result = ValidationResult()

    if record is None:
        result.is_valid = False
        result.errors.append("missing record")
        return result

    price = _field(record, "price")
    currency = _field(record, "currency")

    if price is None or not _is_number(price):
        result.is_valid = False
        result.errors.append("Price is missing or invalid")
    elif not is_valid_price_range(price, min_price, max_price):
        result.is_valid = False
        result.errors.append(f"Price {price} is outside valid range")

    if not currency:
        result.errors.append("Currency is missing (using default: USD)")

    return result


def _field(record: NormalizedPrice | Mapping[str, Any], name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def is_out_of_stock(html: str) -> bool:
    """在庫切れを示す文言が HTML に含まれるか."""
    if not html or not isinstance(html, str):
        return False
    return any(pattern.search(html) for pattern in _OUT_OF_STOCK_PATTERNS)
