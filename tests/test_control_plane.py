"""Tests for the control-plane HTTP helpers."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from happy_reconnect.control_plane import (
    HEALTH_CHECK_TIMEOUT,
    check_server_health,
    create_control_plane_client,
    sessions_url,
)


class TestControlPlaneClient:
    """Tests for create_control_plane_client()."""

    @patch("happy_reconnect.control_plane.httpx.AsyncClient")
    def test_disables_trust_env(self, mock_client):
        create_control_plane_client(timeout=1.0)
        mock_client.assert_called_once_with(timeout=1.0, trust_env=False)

    @patch("happy_reconnect.control_plane.httpx.AsyncClient")
    def test_trust_env_cannot_be_enabled(self, mock_client):
        """Ambient HTTP(S)_PROXY settings must never apply."""
        create_control_plane_client(trust_env=True)
        mock_client.assert_called_once_with(trust_env=False)

    @pytest.mark.asyncio
    async def test_returns_async_client(self):
        async with create_control_plane_client() as client:
            assert isinstance(client, httpx.AsyncClient)


class TestSessionsUrl:
    """Tests for sessions_url()."""

    def test_appends_endpoint(self):
        assert sessions_url("http://test-server") == "http://test-server/v1/sessions"

    def test_strips_trailing_slash(self):
        assert sessions_url("http://test-server/") == "http://test-server/v1/sessions"


class TestCheckServerHealth:
    """Tests for check_server_health()."""

    def test_default_timeout(self):
        assert HEALTH_CHECK_TIMEOUT == 5.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 401, 404, 499])
    @patch("httpx.AsyncClient.get")
    async def test_below_500_is_reachable(self, mock_get, status):
        mock_response = MagicMock()
        mock_response.status_code = status
        mock_get.return_value = mock_response

        await check_server_health("http://test-server")

        assert mock_get.call_args.args[0] == "http://test-server/v1/sessions"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503])
    @patch("httpx.AsyncClient.get")
    async def test_server_error_raises(self, mock_get, status):
        mock_response = MagicMock()
        mock_response.status_code = status
        mock_get.return_value = mock_response

        with pytest.raises(httpx.HTTPStatusError) as exc_info:
            await check_server_health("http://test-server")

        assert exc_info.value.response.status_code == status

    @pytest.mark.asyncio
    @patch("httpx.AsyncClient.get")
    async def test_transport_error_propagates(self, mock_get):
        mock_get.side_effect = httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await check_server_health("http://test-server")