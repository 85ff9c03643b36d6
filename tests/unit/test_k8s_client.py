"""Tests for the kubernetes-asyncio ConfigMap client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes_asyncio.client.exceptions import ApiException

from cmreceiver.errors import TargetNotFound, TransientFetchError
from cmreceiver.k8s.client import KubernetesConfigMapClient


def _configmap(name: str, namespace: str, data: dict[str, str] | None) -> MagicMock:
    configmap = MagicMock()
    configmap.metadata.name = name
    configmap.metadata.namespace = namespace
    configmap.data = data
    return configmap


class TestFetch:
    async def test_returns_configmap_data(self) -> None:
        core_api = MagicMock()
        core_api.read_namespaced_config_map = AsyncMock(return_value=_configmap("a", "ns1", {"x": "1"}))
        client = KubernetesConfigMapClient(core_api, request_timeout=7.0)

        obj = await client.fetch("a", "ns1")

        assert (obj.name, obj.namespace, obj.data) == ("a", "ns1", {"x": "1"})
        core_api.read_namespaced_config_map.assert_awaited_once_with("a", "ns1", _request_timeout=7.0)

    async def test_configmap_without_data(self) -> None:
        core_api = MagicMock()
        core_api.read_namespaced_config_map = AsyncMock(return_value=_configmap("a", "ns1", None))
        obj = await KubernetesConfigMapClient(core_api).fetch("a", "ns1")
        assert obj.data == {}

    async def test_404_is_target_not_found(self) -> None:
        core_api = MagicMock()
        core_api.read_namespaced_config_map = AsyncMock(side_effect=ApiException(status=404, reason="Not Found"))
        with pytest.raises(TargetNotFound) as info:
            await KubernetesConfigMapClient(core_api).fetch("missing", "ns1")
        assert info.value.name == "missing"
        assert info.value.namespace == "ns1"

    @pytest.mark.parametrize("status", [401, 403, 500, 503])
    async def test_other_api_errors_are_transient(self, status: int) -> None:
        core_api = MagicMock()
        core_api.read_namespaced_config_map = AsyncMock(side_effect=ApiException(status=status, reason="boom"))
        with pytest.raises(TransientFetchError, match=f"API error {status}"):
            await KubernetesConfigMapClient(core_api).fetch("a", "ns1")

    async def test_transport_errors_are_transient(self) -> None:
        core_api = MagicMock()
        core_api.read_namespaced_config_map = AsyncMock(side_effect=ConnectionResetError("reset by peer"))
        with pytest.raises(TransientFetchError, match="reset by peer"):
            await KubernetesConfigMapClient(core_api).fetch("a", "ns1")

    async def test_timeouts_are_transient(self) -> None:
        core_api = MagicMock()
        core_api.read_namespaced_config_map = AsyncMock(side_effect=TimeoutError())
        with pytest.raises(TransientFetchError, match="timed out"):
            await KubernetesConfigMapClient(core_api, request_timeout=2.0).fetch("a", "ns1")


class TestClose:
    async def test_close_releases_api_client_once(self) -> None:
        api_client = MagicMock()
        api_client.close = AsyncMock()
        client = KubernetesConfigMapClient(MagicMock(), api_client=api_client)
        await client.close()
        await client.close()
        api_client.close.assert_awaited_once()
