from __future__ import annotations

from shared.models import AggregatedOracleData, ApiError, OracleKind, OracleResponse
from shared.response_formatter import format_failure, format_oracle_data, get_or_default


def _data(aggregated_value, **extra):
    return AggregatedOracleData(aggregatedValue=aggregated_value, **extra)


def test_price_feed_scenario():
    data = _data(
        {"price": 3500.5, "change24h": -2.13, "volume24h": 1000000, "marketCap": 400000000},
        sources=["chainlink"],
        confidence=0.92,
        executionTime=120,
    )
    text = format_oracle_data(OracleKind.PRICE_FEED, data, {"symbol": "ETH/USD"})

    assert "**ETH/USD Price Data**" in text
    assert "$3,500.5" in text
    assert "-2.13%" in text
    assert "$1,000,000" in text
    assert "$400,000,000" in text
    assert "**Source:** chainlink" in text
    assert "92.0%" in text
    assert "120ms" in text


def test_price_feed_positive_change_has_plus_sign():
    text = format_oracle_data("price_feed", _data({"price": 64000, "change24h": 1.5}), {"symbol": "BTC/USD"})
    assert "**24h Change:** +1.50%" in text
    assert "$64,000" in text


def test_price_feed_missing_fields_use_placeholders():
    text = format_oracle_data(OracleKind.PRICE_FEED, _data({}), {})

    assert "**ETH/USD Price Data**" in text
    assert "**Current Price:** N/A" in text
    assert "**24h Change:** +0.00%" in text
    assert "**24h Volume:** $0" in text
    assert "**Market Cap:** $0" in text
    assert "**Source:** Chainlink" in text
    assert "**Confidence:** 0.0%" in text
    assert "**Execution Time:** 0ms" in text


def test_price_rounds_to_three_decimals_like_locale_grouping():
    text = format_oracle_data(OracleKind.PRICE_FEED, _data({"price": 1234.56789}), {})
    assert "$1,234.568" in text


def test_weather_prefers_payload_location_and_formats_coordinates():
    data = _data(
        {
            "location": "Tokyo, JP",
            "temperature": 18.4,
            "condition": "Clouds",
            "humidity": 70,
            "pressure": 1012,
            "windSpeed": 3.6,
            "coordinates": {"lat": 35.6895, "lon": 139.69171},
        },
        confidence=0.875,
    )
    text = format_oracle_data(OracleKind.WEATHER, data, {"city": "Tokyo"})

    assert text.startswith("🌤️ **Weather in Tokyo, JP**")
    assert "**Temperature:** 18.4°C" in text
    assert "**Condition:** Clouds" in text
    assert "**Humidity:** 70%" in text
    assert "**Pressure:** 1012 hPa" in text
    assert "**Wind Speed:** 3.6 km/h" in text
    assert "**Coordinates:** 35.6895, 139.6917" in text
    assert "**Source:** OpenWeatherMap" in text
    assert "**Confidence:** 87.5%" in text


def test_weather_missing_fields_render_na():
    text = format_oracle_data(OracleKind.WEATHER, _data({"temperature": 0}), {"city": "Oslo"})

    assert "**Weather in Oslo**" in text
    assert "**Temperature:** 0°C" in text
    assert "**Condition:** N/A" in text
    assert "**Coordinates:** N/A, N/A" in text


def test_space_lists_first_five_asteroids():
    asteroids = [
        {
            "name": f"({2020 + i} AB)",
            "diameter": {"min": 10 + i, "max": 20.5 + i},
            "missDistance": 1234567.891,
            "velocity": 45000,
            "isPotentiallyHazardous": i == 0,
        }
        for i in range(7)
    ]
    data = _data({"data": asteroids, "date": "2024-01-15"}, sources=["nasa"], confidence=1)
    text = format_oracle_data(OracleKind.SPACE, data, {"date": "2024-01-15"})

    assert "🚀 **NASA Space Data for 2024-01-15**" in text
    assert "**Total Asteroids:** 7" in text
    assert "**Potentially Hazardous:** 1" in text
    assert "1. **(2020 AB)**" in text
    assert "   Size: 10-20.5m" in text
    assert "   Distance: 1,234,567.891km" in text
    assert "   Velocity: 45,000km/h" in text
    assert "⚠️ Potentially Hazardous" in text
    assert "5. **(2024 AB)**" in text
    assert "6. " not in text
    assert "**Source:** NASA NEO API" in text
    assert "**Confidence:** 100.0%" in text


def test_space_tolerates_partial_asteroids():
    data = _data({"data": [{"name": "Tiny"}, "garbage"]})
    text = format_oracle_data(OracleKind.SPACE, data, {"date": "2025-01-01"})

    assert "**Total Asteroids:** 1" in text
    assert "   Size: N/A-N/Am" in text
    assert "   Distance: 0km" in text
    assert "✅ Safe" in text


def test_missing_aggregated_value_yields_no_data_line():
    assert format_oracle_data(OracleKind.PRICE_FEED, None) == "No data available from oracle."
    assert format_oracle_data(OracleKind.WEATHER, _data(None)) == "No data available from oracle."


def test_accepts_raw_wire_dicts():
    text = format_oracle_data("price_feed", {"aggregatedValue": {"price": 10}, "executionTime": 5}, {})
    assert "$10" in text
    assert "5ms" in text


def test_reserved_kind_uses_generic_report():
    text = format_oracle_data(OracleKind.IOT_SENSOR, _data({"reading": 21.5, "nested": {"x": 1}}), {})
    assert text.startswith("📡 **Iot Sensor Oracle Data**")
    assert "**reading:** 21.5" in text
    assert "nested" not in text


def test_formatting_is_idempotent():
    data = _data({"price": 3500.5, "change24h": -2.13}, sources=["chainlink"], confidence=0.92, executionTime=120)
    first = format_oracle_data(OracleKind.PRICE_FEED, data, {"symbol": "ETH/USD"})
    second = format_oracle_data(OracleKind.PRICE_FEED, data, {"symbol": "ETH/USD"})
    assert first == second


def test_get_or_default_walks_dotted_paths():
    payload = {"coordinates": {"lat": 1.5, "lon": None}}
    assert get_or_default(payload, "coordinates.lat") == 1.5
    assert get_or_default(payload, "coordinates.lon", "N/A") == "N/A"
    assert get_or_default(payload, "coordinates.lat.deep", 0) == 0
    assert get_or_default(None, "price", 0) == 0


def test_format_failure_includes_provider_message():
    response = OracleResponse(success=False, error=ApiError(code="X", message="down"))
    assert format_failure(response) == "Oracle request failed (X): down"
    assert format_failure(OracleResponse(success=False)) == "No data available from oracle."
