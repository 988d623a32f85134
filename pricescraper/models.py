"""データモデル定義."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, TypedDict, Union

PriceValue = Union[str, int, float, Decimal]


class RawPriceCandidate(TypedDict, total=False):
    """抽出メソッドが HTML から拾った未正規化の価格候補."""

    price: PriceValue | None
    sale_price: PriceValue | None
    list_price: PriceValue | None
    currency: str | None


@dataclass(frozen=True)
class NormalizedPrice:
    """正規化済みの価格レコード."""

    price: Decimal  # 最終価格（> 0、小数 2 桁）
    original_price: Decimal  # 値引き前価格。不明なら price と同じ
    currency: str  # ISO 4217 の 3 文字コード
    is_on_sale: bool = False
    sale_price: Decimal | None = None  # セール価格が指定された場合のみ

    def as_dict(self) -> dict[str, Any]:
        return {
            "price": self.price,
            "original_price": self.original_price,
            "sale_price": self.sale_price,
            "currency": self.currency,
            "is_on_sale": self.is_on_sale,
        }


@dataclass
class ValidationResult:
    """validate_price_data の結果.

    errors には致命的でない警告（通貨欠落など）も含まれる。
    """

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)


@dataclass
class PriceQueryResult:
    """呼び出し元に返す最終レコード."""

    url: str
    vendor: str | None
    available: bool
    price: NormalizedPrice | None = None
    scraped_at: str | None = None  # ISO 8601
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    raw_price: NormalizedPrice | None = None  # バリデーション失敗時の診断用

    def as_dict(self) -> dict[str, Any]:
        """設定されている項目だけを平坦な dict にする."""
        data: dict[str, Any] = {"url": self.url}
        if self.vendor is not None:
            data["vendor"] = self.vendor
        if self.price is not None:
            data.update(self.price.as_dict())
        data["available"] = self.available
        if self.scraped_at is not None:
            data["scraped_at"] = self.scraped_at
        if self.warnings:
            data["warnings"] = list(self.warnings)
        if self.error is not None:
            data["error"] = self.error
        if self.raw_price is not None:
            data["raw_price"] = self.raw_price.as_dict()
        return data
