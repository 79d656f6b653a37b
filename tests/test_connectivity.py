"""Tests for the connectivity precheck."""

from unittest.mock import AsyncMock, MagicMock, patch

from concierge.remote.connectivity import check_connectivity


async def test_reachable_host() -> None:
    writer = MagicMock()
    writer.wait_closed = AsyncMock()
    with patch(
        "concierge.remote.connectivity.asyncio.open_connection",
        AsyncMock(return_value=(MagicMock(), writer)),
    ) as mock_open:
        assert await check_connectivity("https://api.example.com/v1") is True

    mock_open.assert_called_once_with("api.example.com", 443)
    writer.close.assert_called_once()


async def test_explicit_port() -> None:
    writer = MagicMock()
    writer.wait_closed = AsyncMock()
    with patch(
        "concierge.remote.connectivity.asyncio.open_connection",
        AsyncMock(return_value=(MagicMock(), writer)),
    ) as mock_open:
        await check_connectivity("http://localhost:8080")

    mock_open.assert_called_once_with("localhost", 8080)


async def test_unreachable_host() -> None:
    with patch(
        "concierge.remote.connectivity.asyncio.open_connection",
        AsyncMock(side_effect=OSError("Network is unreachable")),
    ):
        assert await check_connectivity("https://api.example.com") is False


async def test_timeout() -> None:
    with patch(
        "concierge.remote.connectivity.asyncio.open_connection",
        AsyncMock(side_effect=TimeoutError()),
    ):
        assert await check_connectivity("https://api.example.com") is False


async def test_url_without_host() -> None:
    assert await check_connectivity("/relative/path") is False
