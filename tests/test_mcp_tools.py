import asyncio

import pytest

from app.mcp_server import (
    PendingReservationsInput,
    TemplateCustomizeInput,
    mcp,
    ping,
    reservations_pending,
    templates_customize,
    templates_list,
)
from app.services.exceptions import TemplateNotFoundError
from app.services.mock_store import reset_mock_store


@pytest.fixture(autouse=True)
def _reset_store() -> None:
    reset_mock_store()
    yield
    reset_mock_store()


def test_registered_tool_names() -> None:
    tools = asyncio.run(mcp.list_tools())

    assert {tool.name for tool in tools} == {
        "templates_list",
        "templates_customize",
        "reservations_pending",
        "ping",
    }


def test_templates_list_reports_placeholders() -> None:
    out = asyncio.run(templates_list(None))

    by_key = {item.key: item for item in out.templates}
    assert by_key["DEPOSIT_GUIDE"].placeholders == []
    assert by_key["CONFIRMATION"].requires_customization is True
    assert "customerName" in by_key["CONFIRMATION"].placeholders


def test_templates_customize_fills_confirmation() -> None:
    out = asyncio.run(
        templates_customize(
            TemplateCustomizeInput(key="confirmation", variables={"customerName": "Kim"}),
            None,
        )
    )

    assert out.key == "CONFIRMATION"
    assert "▶ 예약자 Kim님" in out.content

    with pytest.raises(TemplateNotFoundError):
        asyncio.run(templates_customize(TemplateCustomizeInput(key="nope"), None))


def test_reservations_pending_reads_mock_store() -> None:
    everyone = asyncio.run(reservations_pending(PendingReservationsInput(), None))
    by_phone = asyncio.run(
        reservations_pending(PendingReservationsInput(phone="010-1111-2222"), None)
    )

    assert [item.customer_name for item in everyone.reservations] == ["박지훈"]
    assert by_phone.reservations == []


def test_ping() -> None:
    assert asyncio.run(ping("hello")) == "pong: hello"
