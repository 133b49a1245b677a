"""Unit tests for quick-profile provisioning."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from profilegate.config.masking import MaskingFlags
from profilegate.errors import ProvisionError
from profilegate.integration.provisioner import ProfileProvisioner
from profilegate.models.profile import FingerprintOverrides, ProfileHandle, Session
from profilegate.rotation.types import ProxyDescriptor

LAUNCHER = "https://launcher.example.test:45001"


@pytest.fixture
def provisioner() -> ProfileProvisioner:
    return ProfileProvisioner(LAUNCHER, timeout=5)


@pytest.fixture
def proxy() -> ProxyDescriptor:
    return ProxyDescriptor(host="10.0.0.2", port=1081, username="user", password="pass")


@pytest.fixture
def session() -> Session:
    return Session(bearer_token="tok-123")


def _response(status: int, json: object, method: str = "POST") -> httpx.Response:
    return httpx.Response(status, json=json, request=httpx.Request(method, LAUNCHER))


class TestBuildRequest:
    def test_default_shape(self, provisioner: ProfileProvisioner, proxy: ProxyDescriptor) -> None:
        body = provisioner.build_request(proxy)

        assert body["browser_type"] == "mimic"
        assert body["os_type"] == "android"
        assert body["automation"] == "playwright"
        assert body["is_headless"] is False
        assert body["parameters"]["proxy"] == {
            "type": "socks5",
            "host": "10.0.0.2",
            "port": 1081,
            "username": "user",
            "password": "pass",
            "save_traffic": False,
        }
        assert body["parameters"]["fingerprint"] == {}
        assert body["parameters"]["flags"] == MaskingFlags().model_dump()

    def test_proxy_without_credentials_sends_empty_strings(self, provisioner: ProfileProvisioner) -> None:
        body = provisioner.build_request(ProxyDescriptor(host="h", port=1))
        assert body["parameters"]["proxy"]["username"] == ""
        assert body["parameters"]["proxy"]["password"] == ""

    def test_overrides_switch_navigator_masking_to_custom(
        self, provisioner: ProfileProvisioner, proxy: ProxyDescriptor
    ) -> None:
        overrides = FingerprintOverrides(
            user_agent="Mozilla/5.0 (Linux; Android 14)",
            hardware_concurrency=8,
            platform="Linux armv8l",
        )
        body = provisioner.build_request(proxy, overrides)

        assert body["parameters"]["fingerprint"]["navigator"] == {
            "user_agent": "Mozilla/5.0 (Linux; Android 14)",
            "hardware_concurrency": 8,
            "platform": "Linux armv8l",
        }
        assert body["parameters"]["flags"]["navigator_masking"] == "custom"
        # Other surfaces keep their configured modes
        assert body["parameters"]["flags"]["proxy_masking"] == "custom"
        assert body["parameters"]["flags"]["canvas_noise"] == "natural"

    def test_configured_masking_is_used(self, proxy: ProxyDescriptor) -> None:
        provisioner = ProfileProvisioner(
            LAUNCHER,
            masking=MaskingFlags(webrtc_masking="natural"),
            headless=True,
        )
        body = provisioner.build_request(proxy)
        assert body["parameters"]["flags"]["webrtc_masking"] == "natural"
        assert body["is_headless"] is True


class TestProvision:
    @pytest.mark.asyncio
    async def test_returns_handle(
        self, provisioner: ProfileProvisioner, proxy: ProxyDescriptor, session: Session
    ) -> None:
        mock_response = _response(200, {"data": {"id": "prof-1", "port": "51234"}})

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=mock_response) as mock_post:
            handle = await provisioner.provision(proxy, session)

        assert handle == ProfileHandle(profile_id="prof-1", port=51234)
        assert handle.connection_endpoint == "http://127.0.0.1:51234"

        args, kwargs = mock_post.call_args
        assert args[0] == f"{LAUNCHER}/api/v3/profile/quick"
        assert kwargs["headers"]["Authorization"] == "Bearer tok-123"
        assert kwargs["json"]["parameters"]["proxy"]["host"] == "10.0.0.2"

    @pytest.mark.asyncio
    async def test_rejection_raises_with_body(
        self, provisioner: ProfileProvisioner, proxy: ProxyDescriptor, session: Session
    ) -> None:
        body = {"status": {"message": "quota exceeded"}}
        mock_response = _response(403, body)

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=mock_response):
            with pytest.raises(ProvisionError, match="quota exceeded") as exc_info:
                await provisioner.provision(proxy, session)

        assert exc_info.value.details["body"] == body
        assert exc_info.value.details["status_code"] == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "data",
        [{"port": 51234}, {"id": "prof-1"}, {}],
        ids=["no-id", "no-port", "empty"],
    )
    async def test_incomplete_data_raises(
        self,
        provisioner: ProfileProvisioner,
        proxy: ProxyDescriptor,
        session: Session,
        data: dict,
    ) -> None:
        mock_response = _response(200, {"data": data})

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=mock_response):
            with pytest.raises(ProvisionError):
                await provisioner.provision(proxy, session)

    @pytest.mark.asyncio
    async def test_non_numeric_port_raises(
        self, provisioner: ProfileProvisioner, proxy: ProxyDescriptor, session: Session
    ) -> None:
        mock_response = _response(200, {"data": {"id": "prof-1", "port": "abc"}})

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock, return_value=mock_response):
            with pytest.raises(ProvisionError, match="non-numeric port"):
                await provisioner.provision(proxy, session)

    @pytest.mark.asyncio
    async def test_unreachable_launcher_raises(
        self, provisioner: ProfileProvisioner, proxy: ProxyDescriptor, session: Session
    ) -> None:
        with patch(
            "httpx.AsyncClient.post",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(ProvisionError, match="Provisioning request failed"):
                await provisioner.provision(proxy, session)


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_success(self, provisioner: ProfileProvisioner, session: Session) -> None:
        handle = ProfileHandle(profile_id="prof-1", port=51234)
        mock_response = _response(200, {"status": {"message": "ok"}}, method="GET")

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response) as mock_get:
            assert await provisioner.stop(handle, session) is True

        assert mock_get.call_args.args[0] == f"{LAUNCHER}/api/v1/profile/stop/p/prof-1"

    @pytest.mark.asyncio
    async def test_stop_failure_does_not_raise(self, provisioner: ProfileProvisioner, session: Session) -> None:
        handle = ProfileHandle(profile_id="prof-1", port=51234)

        with patch(
            "httpx.AsyncClient.get",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("refused"),
        ):
            assert await provisioner.stop(handle, session) is False

    @pytest.mark.asyncio
    async def test_stop_refused(self, provisioner: ProfileProvisioner, session: Session) -> None:
        handle = ProfileHandle(profile_id="prof-1", port=51234)
        mock_response = _response(404, {}, method="GET")

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock, return_value=mock_response):
            assert await provisioner.stop(handle, session) is False
