"""ベンダー別価格抽出ストラテジーのユニットテスト."""

from decimal import Decimal
from pathlib import Path

import pytest

from pricescraper.extractors.amazon import AmazonExtractor
from pricescraper.extractors.base import PageDocument, PriceExtractor, SearchMethod
from pricescraper.extractors.generic import GenericExtractor, find_price_in_json_ld
from pricescraper.extractors.json_search import find_in_json
from pricescraper.extractors.walmart import WalmartExtractor, find_price_in_state

FIXTURES_DIR = Path(__file__).parent / "fixtures"

NO_PRICE_HTML = "<html><head><title>About us</title></head><body><p>Hello</p></body></html>"


def _load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def _page(body: str, head: str = "") -> str:
    return f"<html><head>{head}</head><body>{body}</body></html>"


class TestPriceExtractorBase:
    """PriceExtractor の共通動作のテスト."""

    class _Stub(PriceExtractor):
        vendor = "stub"

        def __init__(self, methods):
            self._methods = methods
            super().__init__()

        def build_methods(self):
            return self._methods

    def test_first_success_wins(self):
        calls = []

        def first(doc):
            calls.append("first")
            return {"price": "$10.00"}

        def second(doc):
            calls.append("second")
            return {"price": "$20.00"}

        extractor = self._Stub([SearchMethod("first", first), SearchMethod("second", second)])
        result = extractor.extract("<html></html>")

        assert result.price == Decimal("10.00")
        assert calls == ["first"]

    def test_exception_moves_to_next_method(self):
        """メソッド内の例外は握りつぶして次のメソッドへ進むこと."""

        def broken(doc):
            raise KeyError("boom")

        extractor = self._Stub([
            SearchMethod("broken", broken),
            SearchMethod("ok", lambda doc: {"price": "5.50"}),
        ])
        assert extractor.extract("<html></html>").price == Decimal("5.50")

    def test_unnormalizable_candidate_moves_to_next_method(self):
        extractor = self._Stub([
            SearchMethod("bad", lambda doc: {"price": "n/a"}),
            SearchMethod("ok", lambda doc: {"price": "7"}),
        ])
        assert extractor.extract("<html></html>").price == Decimal("7.00")

    def test_no_merge_across_methods(self):
        """list_price を別メソッドから補完しないこと."""
        extractor = self._Stub([
            SearchMethod("price", lambda doc: {"price": "$10.00"}),
            SearchMethod("list", lambda doc: {"price": "$10.00", "list_price": "$15.00"}),
        ])
        assert extractor.extract("<html></html>").original_price == Decimal("10.00")

    @pytest.mark.parametrize("html", ["", None])
    def test_empty_html(self, html):
        extractor = self._Stub([SearchMethod("ok", lambda doc: {"price": "1"})])
        assert extractor.extract(html) is None

    def test_page_document(self):
        document = PageDocument.from_html("<p class='x'>hi</p>")
        assert document.soup.select_one(".x").get_text() == "hi"


class TestFindInJson:
    """find_in_json のテスト."""

    def test_checks_node_before_children(self):
        data = {"price": 1, "child": {"price": 2}}
        assert find_in_json(data, lambda n: n.get("price")) == 1

    def test_property_order(self):
        data = {"a": {"b": {"price": "first"}}, "c": {"price": "second"}}
        assert find_in_json(data, lambda n: n.get("price")) == "first"

    def test_lists(self):
        data = [1, "x", [{"nothing": True}, {"price": 3}]]
        assert find_in_json(data, lambda n: n.get("price")) == 3

    @pytest.mark.parametrize("leaf", [None, 1, "price", True])
    def test_leaves_are_dead_ends(self, leaf):
        assert find_in_json(leaf, lambda n: n.get("price")) is None


class TestAmazonExtractor:
    """AmazonExtractor のテスト."""

    def setup_method(self):
        self.extractor = AmazonExtractor()

    def test_method_order(self):
        names = [m.name for m in self.extractor.methods]
        assert names == ["embedded_json", "json_ld", "price_to_pay", "offers", "core_price"]

    def test_embedded_json(self):
        html = _load_fixture("amazon_embedded_json.html")
        result = self.extractor.extract(html)

        assert result.price == Decimal("24.99")
        assert result.currency == "USD"
        assert result.is_on_sale is False

    def test_embedded_json_price_key(self):
        html = _page('<script>var data = {"priceToPay": {"price": "£12.50"}};</script>')
        result = self.extractor.extract(html)

        assert result.price == Decimal("12.50")
        assert result.currency == "GBP"

    def test_embedded_json_malformed_falls_through(self):
        """壊れた埋め込み JSON は無視して次のメソッドを試すこと."""
        html = _page(
            '<script>{"offerPrice": {amount: 12.00,}}</script>'
            '<span id="priceToPay"><span class="a-offscreen">$8.49</span></span>'
        )
        assert self.extractor.extract(html).price == Decimal("8.49")

    def test_json_ld_product(self):
        html = _page(
            "",
            head='<script type="application/ld+json">'
            '{"@type": "Product", "offers": [{"price": "15.99", "priceCurrency": "EUR"}]}'
            "</script>",
        )
        result = self.extractor.extract(html)

        assert result.price == Decimal("15.99")
        assert result.currency == "EUR"

    def test_json_ld_product_in_list(self):
        html = _page(
            "",
            head='<script type="application/ld+json">'
            '[{"@type": "Organization"}, {"@type": "Product", "offers": {"price": 42}}]'
            "</script>",
        )
        assert self.extractor.extract(html).price == Decimal("42.00")

    def test_json_ld_ignores_other_types(self):
        html = _page(
            "",
            head='<script type="application/ld+json">{"@type": "Offer", "price": "3.00"}</script>',
        )
        assert self.extractor.extract(html) is None

    def test_price_to_pay_prefers_offscreen_text(self):
        html = _page(
            '<div class="a-section priceToPay">'
            '<span class="a-offscreen">$1,049.00</span><span aria-hidden="true">$1,04900</span>'
            "</div>"
        )
        assert self.extractor.extract(html).price == Decimal("1049.00")

    def test_price_to_pay_visible_text(self):
        html = _page('<span id="priceToPay">$22.10</span>')
        assert self.extractor.extract(html).price == Decimal("22.10")

    def test_offers_with_strike_price(self):
        html = _load_fixture("amazon_offers.html")
        result = self.extractor.extract(html)

        assert result.price == Decimal("19.99")
        assert result.original_price == Decimal("29.99")
        assert result.sale_price is None
        assert result.is_on_sale is False

    def test_offers_skip_unparseable_elements(self):
        html = _page(
            '<span class="a-price"><span class="a-offscreen">See options</span></span>'
            '<span class="a-price"><span class="a-offscreen">$5.25</span></span>'
        )
        assert self.extractor.extract(html).price == Decimal("5.25")

    def test_core_price_split(self):
        doc = PageDocument.from_html(
            _page('<span class="x a-price-whole">1,299.</span><span class="a-price-fraction">95</span>')
        )
        candidate = self.extractor._from_core_price(doc)
        assert candidate == {"price": "1299.95"}

    def test_core_price_default_fraction(self):
        doc = PageDocument.from_html(_page('<span class="a-price-whole">64</span>'))
        assert self.extractor._from_core_price(doc) == {"price": "64.00"}

    def test_no_match(self):
        assert self.extractor.extract(NO_PRICE_HTML) is None

    def test_walmart_markup_not_matched(self):
        html = _load_fixture("walmart_state.html")
        assert self.extractor.extract(html) is None

    @pytest.mark.parametrize(
        "html, expected",
        [
            ("<p>See price in cart</p>", True),
            ("<p>Add to cart to see price</p>", True),
            ("<p>$19.99</p>", False),
            ("", False),
        ],
    )
    def test_is_cart_price(self, html, expected):
        assert AmazonExtractor.is_cart_price(html) is expected


class TestWalmartExtractor:
    """WalmartExtractor のテスト."""

    def setup_method(self):
        self.extractor = WalmartExtractor()

    def test_method_order(self):
        assert [m.name for m in self.extractor.methods] == ["json_state", "price_display", "meta_tags"]

    def test_redux_state(self):
        html = _load_fixture("walmart_state.html")
        result = self.extractor.extract(html)

        assert result.price == Decimal("49.88")
        assert result.original_price == Decimal("59.99")
        assert result.currency == "USD"

    def test_product_key_state(self):
        html = _page(
            '<script>self.__next_f.push({"props": {"product": {"id": 1, "price": "18.47", "wasPrice": "21.00"}}})</script>'
        )
        result = self.extractor.extract(html)

        assert result.price == Decimal("18.47")
        assert result.original_price == Decimal("21.00")

    def test_pricing_key_state(self):
        html = _page('<script>load({"pricing": {"currentPrice": 9.96, "rollbackPrice": 12.5}});</script>')
        result = self.extractor.extract(html)

        assert result.price == Decimal("9.96")
        assert result.original_price == Decimal("12.50")

    def test_state_sources(self):
        """HTML 全体の次に script タグの中身を順に探すこと."""
        html = _page("<script>var a = 1;</script><script></script><script>var b = 2;</script>")
        sources = list(WalmartExtractor._state_sources(PageDocument.from_html(html)))

        assert sources == [html, "var a = 1;", "var b = 2;"]

    def test_price_display_with_was_price(self):
        html = _load_fixture("walmart_display.html")
        result = self.extractor.extract(html)

        assert result.price == Decimal("12.97")
        assert result.original_price == Decimal("15.00")

    def test_price_display_was_price_in_parent(self):
        html = _page(
            '<div class="hero"><span class="price-display">$7.00</span>'
            '<div><span class="was-price-label">$9.00</span></div></div>'
        )
        result = self.extractor.extract(html)

        assert result.price == Decimal("7.00")
        assert result.original_price == Decimal("9.00")

    def test_itemprop_content_attribute(self):
        html = _page('<span data-testid="product-price" content="33.33"></span>')
        assert self.extractor.extract(html).price == Decimal("33.33")

    def test_open_graph(self):
        html = _page(
            "",
            head='<meta property="product:price:amount" content="27.00">'
            '<meta property="product:price:currency" content="CAD">',
        )
        result = self.extractor.extract(html)

        assert result.price == Decimal("27.00")
        assert result.currency == "CAD"

    def test_itemprop_meta(self):
        html = _page("", head='<meta itemprop="price" content="13.13">')
        assert self.extractor.extract(html).price == Decimal("13.13")

    def test_no_match(self):
        assert self.extractor.extract(NO_PRICE_HTML) is None

    def test_amazon_markup_not_matched(self):
        html = _load_fixture("amazon_embedded_json.html")
        assert self.extractor.extract(html) is None

    @pytest.mark.parametrize(
        "html, expected",
        [("<span>Rollback</span>", True), ("<span>Reduced price</span>", True), ("<span>$5</span>", False)],
    )
    def test_is_rollback_price(self, html, expected):
        assert WalmartExtractor.is_rollback_price(html) is expected


class TestFindPriceInState:
    """find_price_in_state のテスト."""

    def test_nested_current_price(self):
        state = {"a": {"price": {"current": {"price": 5}, "was": 6}}}
        assert find_price_in_state(state) == {"price": 5, "list_price": 6, "currency": None}

    def test_price_object_price_field(self):
        state = {"price": {"price": "3.50"}, "listPrice": "4.00", "currency": "USD"}
        assert find_price_in_state(state) == {"price": "3.50", "list_price": "4.00", "currency": "USD"}

    def test_skips_empty_price(self):
        """値の無い price は無視してさらに下を探すこと."""
        state = {"price": None, "item": {"price": 2}}
        assert find_price_in_state(state)["price"] == 2

    def test_pricing(self):
        state = {"pricing": {"price": "8.00", "wasPrice": "10.00"}}
        assert find_price_in_state(state) == {"price": "8.00", "list_price": "10.00"}

    def test_not_found(self):
        assert find_price_in_state({"a": [1, 2, {"b": "c"}]}) is None


class TestGenericExtractor:
    """GenericExtractor のテスト."""

    def setup_method(self):
        self.extractor = GenericExtractor()

    def test_method_order(self):
        assert [m.name for m in self.extractor.methods] == ["json_ld", "open_graph", "common_selectors"]

    def test_json_ld_graph(self):
        html = _load_fixture("generic_json_ld.html")
        result = self.extractor.extract(html)

        assert result.price == Decimal("189.50")
        assert result.currency == "EUR"

    def test_json_ld_skips_unparseable_block(self):
        html = _page(
            "",
            head='<script type="application/ld+json">{"price": "call us"}</script>'
            '<script type="application/ld+json">{"offers": {"price": 11, "priceCurrency": "GBP"}}</script>',
        )
        result = self.extractor.extract(html)

        assert result.price == Decimal("11.00")
        assert result.currency == "GBP"

    def test_json_ld_malformed(self):
        html = _page(
            '<span class="product-price">$3.99</span>',
            head='<script type="application/ld+json">{"price": </script>',
        )
        assert self.extractor.extract(html).price == Decimal("3.99")

    def test_open_graph(self):
        html = _page(
            '<span class="price">$1.00</span>',
            head='<meta property="product:price:amount" content="64.95">'
            '<meta property="product:price:currency" content="USD">',
        )
        result = self.extractor.extract(html)

        assert result.price == Decimal("64.95")
        assert result.currency == "USD"

    @pytest.mark.parametrize(
        "body, expected",
        [
            ('<div class="price">€25,50</div>', Decimal("25.50")),
            ('<div class="product-price">$10</div>', Decimal("10.00")),
            ('<div class="pdp-price-current">$11.11</div>', Decimal("11.11")),
            ('<div id="main-price">$12.12</div>', Decimal("12.12")),
            ('<div data-price="13.13"></div>', Decimal("13.13")),
        ],
    )
    def test_common_selectors(self, body, expected):
        assert self.extractor.extract(_page(body)).price == expected

    def test_no_match(self):
        assert self.extractor.extract(NO_PRICE_HTML) is None


class TestFindPriceInJsonLd:
    """find_price_in_json_ld のテスト."""

    def test_direct_price(self):
        assert find_price_in_json_ld({"price": "1.00", "priceCurrency": "USD"}) == {
            "price": "1.00",
            "currency": "USD",
        }

    def test_offers_price(self):
        data = {"@type": "Product", "offers": {"price": 2, "priceCurrency": "JPY"}}
        assert find_price_in_json_ld(data) == {"price": 2, "currency": "JPY"}

    def test_deep_nesting(self):
        data = {"@graph": [{"mainEntity": {"offers": [{"price": "3"}]}}]}
        assert find_price_in_json_ld(data) == {"price": "3", "currency": None}

    def test_not_found(self):
        assert find_price_in_json_ld({"@type": "Organization", "name": "x"}) is None
