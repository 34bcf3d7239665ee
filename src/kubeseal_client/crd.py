"""SealedSecret custom resource API version detection.

This module provides the ApiVersionResolver class, which discovers the
API version under which the cluster stores SealedSecrets, caches it, and
hands out namespaced resource endpoints for that version.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
from icecream import ic

from kubeseal_client.exceptions import ControllerUnavailableError, CrdNotInstalledError, SealedSecretsError
from kubeseal_client.models import DEFAULT_API_VERSION
from kubeseal_client.result import Err, Ok, Result, capture, capture_async

SEALED_SECRET_GROUP = "bitnami.com"
SEALED_SECRET_PLURAL = "sealedsecrets"
CRD_PATH = f"/apis/apiextensions.k8s.io/v1/customresourcedefinitions/{SEALED_SECRET_PLURAL}.{SEALED_SECRET_GROUP}"


def select_api_version(crd: dict[str, Any]) -> str | None:
    """Pick the preferred ``group/version`` from a CRD object.

    The storage version wins; otherwise the first served version is used.

    Args:
        crd: The CustomResourceDefinition as returned by the API server.

    Returns:
        The ``group/version`` string, or None if no version qualifies.

    """
    spec = crd.get("spec") or {}
    group = spec.get("group") or SEALED_SECRET_GROUP
    versions = [v for v in spec.get("versions") or [] if isinstance(v, dict) and v.get("name")]

    storage = next((v for v in versions if v.get("storage") is True), None)
    if storage is not None:
        return f"{group}/{storage['name']}"

    served = next((v for v in versions if v.get("served") is True), None)
    if served is not None:
        return f"{group}/{served['name']}"

    return None


class VersionCache:
    """Holds the detected API version.

    Attributes:
        ttl: Seconds a stored value stays valid, or None to keep it until cleared.

    """

    def __init__(self, ttl: float | None = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._value: str | None = None
        self._stored_at: float = 0.0

    def get(self) -> str | None:
        if self._value is not None and self.ttl is not None and self._clock() - self._stored_at >= self.ttl:
            self._value = None
        return self._value

    def set(self, value: str) -> None:
        self._value = value
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._value = None

    def __repr__(self) -> str:
        return f"VersionCache(value={self._value!r}, ttl={self.ttl!r})"


@dataclass(frozen=True, slots=True)
class ResourceEndpoint:
    """Namespaced accessor for SealedSecret resources of one API version."""

    group: str
    version: str
    plural: str = SEALED_SECRET_PLURAL

    @classmethod
    def from_api_version(cls, api_version: str) -> "ResourceEndpoint":
        """Build an endpoint from a ``group/version`` string.

        Raises:
            ValueError: If the string is not of the form ``group/version``.

        """
        group, sep, version = api_version.partition("/")
        if not sep or not group or not version:
            raise ValueError(f"Invalid API version: '{api_version}'")
        return cls(group=group, version=version)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"

    def collection_path(self, namespace: str) -> str:
        return f"/apis/{self.group}/{self.version}/namespaces/{namespace}/{self.plural}"

    def item_path(self, namespace: str, name: str) -> str:
        return f"{self.collection_path(namespace)}/{name}"

    async def create(self, http: httpx.AsyncClient, manifest: dict[str, Any]) -> Result[dict[str, Any], str]:
        """Submit a SealedSecret manifest to its namespace."""
        namespace = manifest.get("metadata", {}).get("namespace", "")
        body = {**manifest, "apiVersion": self.api_version}
        return await self._request(http, "POST", self.collection_path(namespace), json=body)

    async def get(self, http: httpx.AsyncClient, namespace: str, name: str) -> Result[dict[str, Any], str]:
        return await self._request(http, "GET", self.item_path(namespace, name))

    async def list_namespaced(self, http: httpx.AsyncClient, namespace: str) -> Result[list[dict[str, Any]], str]:
        result = await self._request(http, "GET", self.collection_path(namespace))
        return result.map(lambda body: list(body.get("items") or []))

    async def _request(self, http: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> Result[Any, str]:
        ic(method, url)
        sent = await capture_async(lambda: http.request(method, url, **kwargs), httpx.HTTPError)
        if isinstance(sent, Err):
            return sent.map_err(lambda exc: f"{method} {url} failed: {exc}")
        response = sent.value
        if not response.is_success:
            return Err(f"{method} {url} failed: {response.status_code} {response.reason_phrase}")
        return capture(response.json, ValueError).map_err(lambda exc: f"{method} {url} returned invalid JSON: {exc}")


DEFAULT_ENDPOINT = ResourceEndpoint.from_api_version(DEFAULT_API_VERSION)


class ApiVersionResolver:
    """Detects and caches the cluster's SealedSecret API version.

    The cache moves between two states: unresolved (empty) and resolved.
    Only ``clear_cache`` (or an optional cache TTL) moves it back.

    Attributes:
        http: Client bound to the Kubernetes API server.
        cache: Storage for the detected version.

    """

    def __init__(self, http: httpx.AsyncClient, cache: VersionCache | None = None) -> None:
        self.http = http
        self.cache = cache if cache is not None else VersionCache()

    async def detect_api_version(self) -> Result[str, SealedSecretsError]:
        """Detect the API version available in the cluster.

        Returns the cached value without I/O when resolved. Otherwise reads
        the SealedSecret CRD and picks its storage version, falling back to
        the first served version and finally to DEFAULT_API_VERSION. The
        default fallback is not cached.

        Returns:
            Result containing the ``group/version`` string, a CrdNotInstalledError
            if the CRD does not exist, or a ControllerUnavailableError for any
            other failure.

        """
        cached = self.cache.get()
        if cached is not None:
            return Ok(cached)

        sent = await capture_async(lambda: self.http.get(CRD_PATH), httpx.HTTPError)
        if isinstance(sent, Err):
            return sent.map_err(lambda exc: ControllerUnavailableError(f"Failed to fetch CRD: {exc}"))
        response = sent.value

        if response.status_code == 404:
            return Err(CrdNotInstalledError("SealedSecrets CRD not found. Please install Sealed Secrets on the cluster."))
        if not response.is_success:
            return Err(ControllerUnavailableError(f"Failed to fetch CRD: {response.status_code} {response.reason_phrase}"))

        parsed = capture(response.json, ValueError)
        if isinstance(parsed, Err):
            return parsed.map_err(lambda exc: ControllerUnavailableError(f"Failed to parse CRD: {exc}"))
        crd = parsed.value

        version = select_api_version(crd) if isinstance(crd, dict) else None
        ic(version)
        if version is None:
            return Ok(DEFAULT_API_VERSION)

        self.cache.set(version)
        return Ok(version)

    async def get_api_endpoint(self) -> ResourceEndpoint:
        """Return the endpoint for the detected version, or the default one.

        Never fails: any detection problem yields DEFAULT_ENDPOINT.
        """
        result = await self.detect_api_version()
        if isinstance(result, Ok):
            try:
                return ResourceEndpoint.from_api_version(result.value)
            except ValueError as exc:
                ic(exc)
        return DEFAULT_ENDPOINT

    @property
    def detected_version(self) -> str | None:
        return self.cache.get()

    def clear_cache(self) -> None:
        """Force re-detection on the next call, e.g. after a CRD upgrade."""
        self.cache.clear()

    def __repr__(self) -> str:
        return f"ApiVersionResolver(cache={self.cache!r})"
