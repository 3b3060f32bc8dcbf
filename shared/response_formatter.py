from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable

from shared.models import AggregatedOracleData, OracleKind, OracleResponse
from shared.oracle_catalog import DEFAULT_CITY, DEFAULT_SOURCE_LABELS, DEFAULT_SYMBOL, NO_DATA_TEXT

NA = "N/A"
MAX_LISTED_ASTEROIDS = 5

_MISSING = object()


def get_or_default(payload: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path from nested dicts; absent or null values yield the default."""
    current = payload
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(key, _MISSING)
        if current is _MISSING or current is None:
            return default
    return current


def _as_number(value: Any) -> float | int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _grouped(value: Any, placeholder: str = NA) -> str:
    """Thousands-grouped number with up to three decimals: 3500.5 -> '3,500.5'."""
    number = _as_number(value)
    if number is None:
        return placeholder
    try:
        quantized = Decimal(str(number)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return placeholder
    text = f"{quantized:,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _plain(value: Any, placeholder: str = NA) -> str:
    """Number or text as-is: 15.0 -> '15', 15.3 -> '15.3'."""
    if value is None:
        return placeholder
    number = _as_number(value)
    if number is None or isinstance(value, str):
        return str(value) if str(value).strip() else placeholder
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


def _fixed(value: Any, decimals: int, placeholder: str = NA) -> str:
    number = _as_number(value)
    if number is None:
        return placeholder
    return f"{number:.{decimals}f}"


def _percent(confidence: Any) -> str:
    number = _as_number(confidence) or 0
    return f"{number * 100:.1f}%"


def _primary_source(data: AggregatedOracleData, fallback: str) -> str:
    return data.sources[0] if data.sources else fallback


# ─── Per-kind formatters ───────────────────────────────────────

def _format_price_feed(data: AggregatedOracleData, parameters: dict[str, Any]) -> str:
    value = data.aggregated_value
    symbol = parameters.get("symbol") or get_or_default(value, "symbol", DEFAULT_SYMBOL)
    change = _as_number(get_or_default(value, "change24h", 0)) or 0
    sign = "+" if change >= 0 else ""
    price = _grouped(get_or_default(value, "price"))

    lines = [
        f"💰 **{symbol} Price Data**",
        "",
        f"**Current Price:** {'$' + price if price != NA else NA}",
        f"**24h Change:** {sign}{change:.2f}%",
        f"**24h Volume:** ${_grouped(get_or_default(value, 'volume24h', 0), placeholder='0')}",
        f"**Market Cap:** ${_grouped(get_or_default(value, 'marketCap', 0), placeholder='0')}",
        "",
        f"**Source:** {_primary_source(data, DEFAULT_SOURCE_LABELS[OracleKind.PRICE_FEED])}",
        f"**Confidence:** {_percent(data.confidence)}",
        f"**Execution Time:** {_plain(data.execution_time, placeholder='0')}ms",
    ]
    return "\n".join(lines)


def _format_weather(data: AggregatedOracleData, parameters: dict[str, Any]) -> str:
    value = data.aggregated_value
    location = get_or_default(value, "location") or parameters.get("city") or DEFAULT_CITY
    lat = _fixed(get_or_default(value, "coordinates.lat"), 4)
    lon = _fixed(get_or_default(value, "coordinates.lon"), 4)

    lines = [
        f"🌤️ **Weather in {location}**",
        "",
        f"**Temperature:** {_plain(get_or_default(value, 'temperature'))}°C",
        f"**Condition:** {_plain(get_or_default(value, 'condition'))}",
        f"**Humidity:** {_plain(get_or_default(value, 'humidity'))}%",
        f"**Pressure:** {_plain(get_or_default(value, 'pressure'))} hPa",
        f"**Wind Speed:** {_plain(get_or_default(value, 'windSpeed'))} km/h",
        "",
        f"**Coordinates:** {lat}, {lon}",
        f"**Source:** {_primary_source(data, DEFAULT_SOURCE_LABELS[OracleKind.WEATHER])}",
        f"**Confidence:** {_percent(data.confidence)}",
    ]
    return "\n".join(lines)


def _format_asteroid(position: int, asteroid: dict[str, Any]) -> list[str]:
    size_min = _plain(get_or_default(asteroid, "diameter.min"))
    size_max = _plain(get_or_default(asteroid, "diameter.max"))
    hazardous = bool(get_or_default(asteroid, "isPotentiallyHazardous", False))
    return [
        f"{position}. **{_plain(get_or_default(asteroid, 'name'))}**",
        f"   Size: {size_min}-{size_max}m",
        f"   Distance: {_grouped(get_or_default(asteroid, 'missDistance', 0), placeholder='0')}km",
        f"   Velocity: {_grouped(get_or_default(asteroid, 'velocity', 0), placeholder='0')}km/h",
        f"   {'⚠️ Potentially Hazardous' if hazardous else '✅ Safe'}",
        "",
    ]


def _format_space(data: AggregatedOracleData, parameters: dict[str, Any]) -> str:
    value = data.aggregated_value
    date = parameters.get("date") or get_or_default(value, "date", NA)
    raw_asteroids = get_or_default(value, "data", [])
    asteroids = [item for item in raw_asteroids if isinstance(item, dict)] if isinstance(raw_asteroids, list) else []
    hazardous_count = sum(1 for item in asteroids if get_or_default(item, "isPotentiallyHazardous", False))

    lines = [
        f"🚀 **NASA Space Data for {date}**",
        "",
        f"**Total Asteroids:** {len(asteroids)}",
        f"**Potentially Hazardous:** {hazardous_count}",
        "",
        "**Recent Asteroids:**",
    ]
    for position, asteroid in enumerate(asteroids[:MAX_LISTED_ASTEROIDS], start=1):
        lines.extend(_format_asteroid(position, asteroid))
    if not asteroids:
        lines.append("")

    lines.extend([
        f"**Source:** {DEFAULT_SOURCE_LABELS[OracleKind.SPACE]}",
        f"**Confidence:** {_percent(data.confidence)}",
    ])
    return "\n".join(lines)


def _format_generic(data: AggregatedOracleData, parameters: dict[str, Any], kind: OracleKind) -> str:
    title = kind.value.replace("_", " ").title()
    lines = [f"📡 **{title} Oracle Data**", ""]
    value = data.aggregated_value
    if isinstance(value, dict):
        for key, item in value.items():
            if isinstance(item, (dict, list)):
                continue
            lines.append(f"**{key}:** {_plain(item)}")
    else:
        lines.append(f"**Value:** {_plain(value)}")
    lines.extend([
        "",
        f"**Source:** {_primary_source(data, kind.value)}",
        f"**Confidence:** {_percent(data.confidence)}",
    ])
    return "\n".join(lines)


_FORMATTERS: dict[OracleKind, Callable[[AggregatedOracleData, dict[str, Any]], str]] = {
    OracleKind.PRICE_FEED: _format_price_feed,
    OracleKind.WEATHER: _format_weather,
    OracleKind.SPACE: _format_space,
}


def format_oracle_data(
    kind: OracleKind | str,
    data: AggregatedOracleData | dict[str, Any] | None,
    parameters: dict[str, Any] | None = None,
) -> str:
    """
    Render aggregated oracle data for the transcript:
    - one multi-line report per oracle kind
    - absent fields render as 'N/A' or 0, never raise
    - no data at all renders the generic no-data line
    """
    if isinstance(data, dict):
        data = AggregatedOracleData.model_validate(data)
    if data is None or data.aggregated_value is None:
        return NO_DATA_TEXT

    kind = OracleKind(kind)
    params = parameters or {}
    formatter = _FORMATTERS.get(kind)
    if formatter is None:
        return _format_generic(data, params, kind)
    return formatter(data, params)


def format_failure(response: OracleResponse | None) -> str:
    """Transcript text for an application-level failure from the oracle service."""
    error = response.error if response is not None else None
    message = (error.message if error else "").strip()
    if not message:
        return NO_DATA_TEXT
    code = (error.code if error else "").strip()
    if code:
        return f"Oracle request failed ({code}): {message}"
    return f"Oracle request failed: {message}"
