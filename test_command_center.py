from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from orchestrator.command_center import CommandCenter
from shared.errors import OracleTransportError, UnsupportedOracleError
from shared.models import AggregatedOracleData, ApiError, OracleKind, OracleResponse
from shared.oracle_catalog import GUIDANCE_TEXT, PENDING_TEXT, TRANSPORT_FAILURE_TEXT

PRICE_RESPONSE = OracleResponse(
    success=True,
    data=AggregatedOracleData(
        aggregatedValue={"price": 3500.5, "change24h": -2.13, "volume24h": 1000000, "marketCap": 400000000},
        sources=["chainlink"],
        confidence=0.92,
        executionTime=120,
    ),
)


def _gateway(result=PRICE_RESPONSE, side_effect=None):
    gateway = MagicMock()
    gateway.collect = AsyncMock(return_value=result, side_effect=side_effect)
    return gateway


def _center(gateway) -> CommandCenter:
    return CommandCenter(gateway=gateway, today=lambda: date(2026, 10, 17))


def _statuses(center: CommandCenter) -> list[tuple[str, str | None]]:
    return [(entry.role, entry.status) for entry in center.transcript()]


def test_price_scenario_resolves_pending_entry():
    gateway = _gateway()
    center = _center(gateway)

    entry_id = asyncio.run(center.handle_user_message("What is the ETH/USD price?"))

    entry = center.store.get(entry_id)
    assert entry.status == "resolved_ok"
    assert "$3,500.5" in entry.text
    assert "-2.13%" in entry.text
    assert "92.0%" in entry.text
    assert "120ms" in entry.text
    assert entry.raw_payload == PRICE_RESPONSE.data
    assert _statuses(center) == [("user", None), ("oracle", "resolved_ok")]

    request = gateway.collect.await_args.args[0]
    assert request.data_type == OracleKind.PRICE_FEED
    assert request.sources == ["chainlink"]
    assert request.parameters == {"symbol": "ETH/USD"}


def test_blank_input_is_ignored():
    gateway = _gateway()
    center = _center(gateway)

    assert asyncio.run(center.handle_user_message("   ")) is None
    assert center.transcript() == ()
    gateway.collect.assert_not_awaited()


def test_unrecognized_input_gets_guidance_without_gateway_call():
    gateway = _gateway()
    center = _center(gateway)

    entry_id = asyncio.run(center.handle_user_message("hello there"))

    entry = center.store.get(entry_id)
    assert entry.role == "oracle"
    assert entry.status == "resolved_error"
    assert entry.text == GUIDANCE_TEXT
    gateway.collect.assert_not_awaited()


def test_explicit_selection_overrides_inferred_kind():
    gateway = _gateway()
    center = _center(gateway)
    center.select_oracle(OracleKind.PRICE_FEED)

    asyncio.run(center.handle_user_message("What's the weather in Tokyo?"))

    request = gateway.collect.await_args.args[0]
    assert request.data_type == OracleKind.PRICE_FEED
    assert request.parameters == {"symbol": "ETH/USD"}


def test_selection_lets_plain_text_reach_the_oracle():
    gateway = _gateway(OracleResponse(success=True, data=AggregatedOracleData(aggregatedValue={"data": []})))
    center = _center(gateway)
    center.select_oracle("space")

    entry_id = asyncio.run(center.handle_user_message("hello there"))

    request = gateway.collect.await_args.args[0]
    assert request.parameters == {"date": "2026-10-17", "spaceDataType": "asteroid"}
    assert center.store.get(entry_id).status == "resolved_ok"


def test_select_oracle_rejects_unroutable_kinds():
    center = _center(_gateway())
    with pytest.raises(UnsupportedOracleError):
        center.select_oracle(OracleKind.CRYPTO_METRICS)
    with pytest.raises(UnsupportedOracleError):
        center.select_oracle("lottery")
    assert center.select_oracle("weather") == OracleKind.WEATHER
    assert center.select_oracle(None) is None
    assert center.selected_oracle is None


def test_application_failure_resolves_to_error_entry():
    center = _center(_gateway(OracleResponse(success=False, error=ApiError(code="X", message="down"))))

    entry_id = asyncio.run(center.handle_user_message("btc price"))

    entry = center.store.get(entry_id)
    assert entry.status == "resolved_error"
    assert entry.text == "Oracle request failed (X): down"


def test_success_without_aggregated_value_is_an_error():
    partial = AggregatedOracleData(sources=["weather"], confidence=0.1)
    center = _center(_gateway(OracleResponse(success=True, data=partial)))

    entry_id = asyncio.run(center.handle_user_message("weather in Oslo"))

    entry = center.store.get(entry_id)
    assert entry.status == "resolved_error"
    assert entry.text == "No data available from oracle."
    assert entry.raw_payload == partial


def test_transport_failure_is_recovered_and_center_stays_usable():
    gateway = _gateway(side_effect=[OracleTransportError("connection refused"), PRICE_RESPONSE])
    center = _center(gateway)

    first = asyncio.run(center.handle_user_message("eth"))
    second = asyncio.run(center.handle_user_message("eth"))

    assert center.store.get(first).status == "resolved_error"
    assert center.store.get(first).text == TRANSPORT_FAILURE_TEXT
    assert center.store.get(second).status == "resolved_ok"


def test_unexpected_gateway_exception_never_escapes():
    center = _center(_gateway(side_effect=RuntimeError("boom")))

    entry_id = asyncio.run(center.handle_user_message("nasa"))

    assert center.store.get(entry_id).status == "resolved_error"


def test_each_gateway_call_transitions_exactly_once():
    center = _center(_gateway())
    transitions = []
    center.subscribe(
        lambda event, entry, snapshot: transitions.append((event, entry.status)) if entry and entry.role == "oracle" else None
    )

    asyncio.run(center.handle_user_message("eth price"))

    assert transitions == [("append", "pending"), ("update", "resolved_ok")]


def test_submit_returns_pending_entry_before_gateway_settles():
    async def scenario():
        release = asyncio.Event()

        async def slow_collect(request):
            await release.wait()
            return PRICE_RESPONSE

        gateway = MagicMock()
        gateway.collect = AsyncMock(side_effect=slow_collect)
        center = _center(gateway)

        submission = center.submit("eth price")
        pending = center.store.get(submission.entry_id)
        assert pending.status == "pending"
        assert pending.text == PENDING_TEXT

        release.set()
        await submission.task
        return center.store.get(submission.entry_id)

    resolved = asyncio.run(scenario())
    assert resolved.status == "resolved_ok"


def test_concurrent_requests_resolve_out_of_order_without_interference():
    async def scenario():
        gates = {"ETH/USD": asyncio.Event(), "BTC/USD": asyncio.Event()}

        async def collect(request):
            symbol = request.parameters["symbol"]
            await gates[symbol].wait()
            return OracleResponse(
                success=True,
                data=AggregatedOracleData(aggregatedValue={"price": 1 if symbol == "ETH/USD" else 2}),
            )

        gateway = MagicMock()
        gateway.collect = AsyncMock(side_effect=collect)
        center = _center(gateway)
        order = []
        center.subscribe(lambda event, entry, snapshot: order.append(entry.id) if event == "update" else None)

        eth = center.submit("eth")
        btc = center.submit("btc")
        await asyncio.sleep(0)
        gates["BTC/USD"].set()
        await btc.task
        gates["ETH/USD"].set()
        await center.drain()
        return center, eth.entry_id, btc.entry_id, order

    center, eth_id, btc_id, order = asyncio.run(scenario())

    assert order == [btc_id, eth_id]
    assert "$1" in center.store.get(eth_id).text
    assert "$2" in center.store.get(btc_id).text
    assert [entry.id for entry in center.transcript() if entry.role == "oracle"] == [eth_id, btc_id]


def test_late_resolution_after_clear_is_ignored():
    async def scenario():
        release = asyncio.Event()

        async def slow_collect(request):
            await release.wait()
            return PRICE_RESPONSE

        gateway = MagicMock()
        gateway.collect = AsyncMock(side_effect=slow_collect)
        center = _center(gateway)

        submission = center.submit("eth")
        center.store.clear()
        release.set()
        await submission.task
        return center

    center = asyncio.run(scenario())
    assert center.transcript() == ()


def test_start_seeds_welcome_once():
    center = _center(_gateway())
    assert center.start() is not None
    assert center.start() is None
    assert _statuses(center) == [("system", None)]
