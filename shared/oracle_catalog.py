"""
Oracle Catalog - routable oracles and their fixed gateway wiring.

Defines the display metadata shown by the surfaces, the source list each
oracle kind is collected from, and the fixed transcript messages.
"""

from shared.models import OracleKind

# Oracle kind -> catalog entry
ORACLE_OPTIONS = {
    OracleKind.PRICE_FEED: {
        "name": "Price Feed Oracle",
        "icon": "📈",
        "sources": ["chainlink"],
        "examples": [
            "What is the current ETH/USD price?",
            "Show me BTC/USD price data",
            "Get latest crypto prices",
            "ETH price with 24h change",
        ],
    },
    OracleKind.WEATHER: {
        "name": "Weather Oracle",
        "icon": "☁️",
        "sources": ["weather"],
        "examples": [
            "What is the weather in London?",
            "Show weather data for New York",
            "Current temperature in Tokyo",
            "Weather conditions in Istanbul",
        ],
    },
    OracleKind.SPACE: {
        "name": "NASA Space Oracle",
        "icon": "🚀",
        "sources": ["nasa"],
        "examples": [
            "Show asteroid data for today",
            "NASA space data for 2024-01-15",
            "Potentially hazardous asteroids",
            "Recent space observations",
        ],
    },
}

# Extra parameters always sent for a kind
FIXED_PARAMETERS = {
    OracleKind.SPACE: {"spaceDataType": "asteroid"},
}

DEFAULT_SYMBOL = "ETH/USD"
DEFAULT_CITY = "London"

# Fallback source labels used by the formatter
DEFAULT_SOURCE_LABELS = {
    OracleKind.PRICE_FEED: "Chainlink",
    OracleKind.WEATHER: "OpenWeatherMap",
    OracleKind.SPACE: "NASA NEO API",
}

WELCOME_TEXT = (
    "Welcome to ZeroGravis Oracle Command Center! "
    "Select an oracle type and ask your questions."
)
GUIDANCE_TEXT = (
    "Please select an oracle type first or ask a more specific question "
    '(e.g., "ETH price", "weather in London", "asteroid data").'
)
PENDING_TEXT = "Querying oracle network..."
NO_DATA_TEXT = "No data available from oracle."
TRANSPORT_FAILURE_TEXT = "Error querying oracle network. Please try again."


def sources_for(kind: OracleKind) -> list[str]:
    """Gateway source list for a routable oracle kind."""
    option = ORACLE_OPTIONS.get(kind)
    if option is None:
        return [kind.value]
    return list(option["sources"])
