import httpx
import pytest
from decimal import Decimal

from pricewatch.domain.errors import TransientFetchError
from pricewatch.infrastructure.pricing.fetcher import HttpPriceFetcher, parse_price_to_decimal

@pytest.mark.parametrize("raw, expected", [
    ("EGP 2,013.50", Decimal("2013.50")),
    ("2.013,50 EUR", Decimal("2013.50")),
    ("2,013", Decimal("2013")),
    ("19,99 €", Decimal("19.99")),
    ("Was $120.00 now $99.95", Decimal("99.95")),
    ("1 299,00", Decimal("299.00")),
    ("Price: 42.", Decimal("42")),
])
def test_parse_price_to_decimal(raw, expected):
    assert parse_price_to_decimal(raw) == expected

@pytest.mark.parametrize("raw", [None, "", "sold out", "---"])
def test_parse_price_without_number(raw):
    assert parse_price_to_decimal(raw) is None

def _fetcher(handler) -> HttpPriceFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPriceFetcher(client=client)

@pytest.mark.asyncio
async def test_fetch_reads_json_price():
    fetcher = _fetcher(lambda request: httpx.Response(200, json={"data": {"price": "129.90"}}))
    assert await fetcher.fetch("https://shop.example.com/api/1") == Decimal("129.90")
    await fetcher.aclose()

@pytest.mark.asyncio
async def test_fetch_reads_numeric_json_price():
    fetcher = _fetcher(lambda request: httpx.Response(200, json={"price": 15}))
    assert await fetcher.fetch("https://shop.example.com/api/2") == Decimal("15")
    await fetcher.aclose()

@pytest.mark.asyncio
async def test_fetch_falls_back_to_text_body():
    fetcher = _fetcher(lambda request: httpx.Response(200, text="Our price today: 1,249.00 USD"))
    assert await fetcher.fetch("https://shop.example.com/p/3") == Decimal("1249.00")
    await fetcher.aclose()

@pytest.mark.asyncio
async def test_http_error_status_is_transient():
    fetcher = _fetcher(lambda request: httpx.Response(503, text="busy"))
    with pytest.raises(TransientFetchError) as exc_info:
        await fetcher.fetch("https://shop.example.com/p/4")
    assert exc_info.value.url == "https://shop.example.com/p/4"
    await fetcher.aclose()

@pytest.mark.asyncio
async def test_network_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    fetcher = _fetcher(handler)
    with pytest.raises(TransientFetchError):
        await fetcher.fetch("https://shop.example.com/p/5")
    await fetcher.aclose()

@pytest.mark.asyncio
async def test_body_without_price_is_transient():
    fetcher = _fetcher(lambda request: httpx.Response(200, json={"name": "thing"}))
    with pytest.raises(TransientFetchError):
        await fetcher.fetch("https://shop.example.com/p/6")
    await fetcher.aclose()
