"""Control-plane client boundary.

ObjectFetcher              -- ABC the poller depends on.
KubernetesConfigMapClient  -- Reads ConfigMaps through kubernetes-asyncio.
load_cluster_config        -- In-cluster service account first, kubeconfig second.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog

from cmreceiver.errors import ConfigurationError, TargetNotFound, TransientFetchError

_log = structlog.get_logger(component="k8s.client")


class ControlPlaneConfigError(ConfigurationError):
    """Neither in-cluster nor kubeconfig credentials could be loaded."""


@dataclass(frozen=True)
class FetchedObject:
    """A named object as returned by the control plane."""

    name: str
    namespace: str
    data: dict[str, Any] = field(default_factory=dict)


class ObjectFetcher(ABC):
    """Fetches one named object by (name, namespace).

    Implementations raise TargetNotFound when the object is absent and
    TransientFetchError for every other failure.  They must not swallow
    asyncio.CancelledError.
    """

    @abstractmethod
    async def fetch(self, name: str, namespace: str) -> FetchedObject:
        """Return the object or raise a FetchError subclass."""

    async def close(self) -> None:
        """Release connections held by the client."""


async def load_cluster_config() -> str:
    """Load credentials for the Kubernetes API.

    Returns ``"in-cluster"`` or ``"kubeconfig"`` depending on which source
    was used.
    """
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]

    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config()
        _log.info("k8s client configured from in-cluster service account")
        return "in-cluster"
    except k8s_config.ConfigException:
        pass

    try:
        # load_kube_config() is async in kubernetes-asyncio
        await k8s_config.load_kube_config()
    except (k8s_config.ConfigException, OSError) as exc:
        raise ControlPlaneConfigError(f"Error building kubeconfig: {exc}") from exc
    _log.info("k8s client configured from kubeconfig")
    return "kubeconfig"


class KubernetesConfigMapClient(ObjectFetcher):
    """Fetches ConfigMaps with CoreV1Api.read_namespaced_config_map.

    Args:
        core_api:        CoreV1Api instance (injected in tests).
        api_client:      ApiClient owning the connection pool; closed by close().
        request_timeout: Per-request timeout passed to the API call, in seconds.
    """

    def __init__(self, core_api: Any, api_client: Any = None, request_timeout: float = 10.0) -> None:
        self._core_api = core_api
        self._api_client = api_client
        self._request_timeout = request_timeout

    @classmethod
    async def create(cls, request_timeout: float = 10.0) -> KubernetesConfigMapClient:
        """Discover credentials and build a client with its own connection pool."""
        from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

        await load_cluster_config()
        api_client = k8s_client.ApiClient()
        return cls(k8s_client.CoreV1Api(api_client), api_client=api_client, request_timeout=request_timeout)

    async def fetch(self, name: str, namespace: str) -> FetchedObject:
        from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

        try:
            configmap = await self._core_api.read_namespaced_config_map(
                name,
                namespace,
                _request_timeout=self._request_timeout,
            )
        except ApiException as exc:
            if exc.status == 404:
                raise TargetNotFound(name, namespace, "configmap not found") from exc
            raise TransientFetchError(name, namespace, f"API error {exc.status}: {exc.reason}") from exc
        except TimeoutError as exc:
            raise TransientFetchError(name, namespace, f"request timed out after {self._request_timeout}s") from exc
        except Exception as exc:
            raise TransientFetchError(name, namespace, str(exc) or type(exc).__name__) from exc

        metadata = configmap.metadata
        return FetchedObject(
            name=getattr(metadata, "name", None) or name,
            namespace=getattr(metadata, "namespace", None) or namespace,
            data=dict(configmap.data or {}),
        )

    async def close(self) -> None:
        if self._api_client is not None:
            await self._api_client.close()
            self._api_client = None
