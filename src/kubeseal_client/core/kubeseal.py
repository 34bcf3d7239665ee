"""Kubeseal facade class.

This module provides the Kubeseal class which serves as the main entry point
for all sealed secrets operations, coordinating the controller client, the
API-version resolver and the sealing engine.
"""

from collections.abc import AsyncIterator, Mapping
from pathlib import Path
from typing import Any

import click
import httpx

from kubeseal_client import console
from kubeseal_client.config import load_plugin_config
from kubeseal_client.controller import (
    check_controller_health,
    fetch_public_certificate,
    rotate_sealed_secret,
    verify_sealed_secret,
    watch_controller_health,
)
from kubeseal_client.core.cluster import Cluster
from kubeseal_client.crd import ApiVersionResolver
from kubeseal_client.exceptions import InvalidCertificateError
from kubeseal_client.models import (
    DEFAULT_API_VERSION,
    ControllerHealthStatus,
    PEMCertificate,
    PluginConfig,
    SecretParams,
    pem_certificate,
)
from kubeseal_client.result import Err, Ok, Result
from kubeseal_client.secrets.creation import create_sealed_secret, merge_sealed_secret


class Kubeseal:
    """Seals secrets and talks to the sealed-secrets controller.

    Network operations need the instance to be entered as an async context
    manager, which opens the HTTP client to the API server. In detached
    mode a local certificate is used and only sealing is available.

    Attributes:
        config: Controller service coordinates.
        detached_mode: Whether operating without direct cluster access.
        certificate: Path to the certificate file (detached mode only).
        cluster: Cluster instance for cluster operations.
        current_context_name: Current Kubernetes context name.
        namespaces_list: Namespaces for the namespace prompt, listed on first use.
        http: HTTP client to the API server while entered.
        resolver: API-version resolver while entered.

    """

    def __init__(
        self,
        *,
        select_context: bool,
        config: PluginConfig | None = None,
        certificate: str | None = None,
    ) -> None:
        """Initialize Kubeseal with cluster connection or certificate.

        Args:
            select_context: If True, prompt user to select a Kubernetes context.
            config: Controller coordinates. Defaults to the stored configuration.
            certificate: Path to certificate file for detached mode. If provided,
                        operates without connecting to a cluster.

        """
        self.config: PluginConfig = config or load_plugin_config()
        self.detached_mode: bool = False
        self.certificate: str | None = None
        self.cluster: Cluster | None = None
        self.current_context_name: str = ""
        self._namespaces: list[str] | None = None
        self.http: httpx.AsyncClient | None = None
        self.resolver: ApiVersionResolver | None = None

        if certificate is not None:
            console.info("Working in detached mode")
            self.detached_mode = True
            self.certificate = certificate
        else:
            self.cluster = Cluster(select_context=select_context)
            self.current_context_name = self.cluster.context

    async def __aenter__(self) -> "Kubeseal":
        if self.cluster is not None:
            self.http = self.cluster.http_client()
            self.resolver = ApiVersionResolver(self.http)
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        if self.http is not None:
            await self.http.aclose()
            self.http = None

    @property
    def namespaces_list(self) -> list[str]:
        """Namespaces in the cluster, empty in detached mode."""
        if self.cluster is None:
            return []
        if self._namespaces is None:
            self._namespaces = self.cluster.get_all_namespaces()
        return self._namespaces

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        if self.detached_mode:
            return f"Kubeseal(detached_mode=True, certificate={self.certificate!r})"
        return f"Kubeseal(context={self.current_context_name!r}, controller={self.config.controller_name!r})"

    def _require_http(self, operation: str) -> httpx.AsyncClient:
        """Return the API server client.

        Raises:
            click.ClickException: If called in detached mode.
            RuntimeError: If the instance has not been entered.

        """
        if self.detached_mode:
            raise click.ClickException(f"{operation} is not available in detached mode")
        if self.http is None:
            raise RuntimeError("Kubeseal must be entered with 'async with' before network operations")
        return self.http

    def _require_resolver(self, operation: str) -> ApiVersionResolver:
        """Return the API-version resolver, with the same checks as ``_require_http``."""
        self._require_http(operation)
        if self.resolver is None:
            raise RuntimeError("Kubeseal must be entered with 'async with' before network operations")
        return self.resolver

    def _read_local_certificate(self) -> Result[PEMCertificate, str]:
        try:
            return Ok(pem_certificate(Path(str(self.certificate)).read_text()))
        except OSError as exc:
            return Err(f"Unable to read certificate '{self.certificate}': {exc.strerror or exc}")
        except InvalidCertificateError as exc:
            return Err(f"Certificate '{self.certificate}': {exc}")

    async def get_certificate(self) -> Result[PEMCertificate, str]:
        """Return the sealing certificate: the local file in detached mode, else the controller's."""
        if self.detached_mode:
            return self._read_local_certificate()
        return await self.fetch_certificate()

    async def fetch_certificate(self) -> Result[PEMCertificate, str]:
        """Download the controller's public certificate (with retries)."""
        http = self._require_http("Fetching certificate")
        return await fetch_public_certificate(http, self.config)

    async def api_version(self) -> str:
        """The SealedSecret API version to write, falling back to the default."""
        if self.resolver is None:
            return DEFAULT_API_VERSION
        endpoint = await self.resolver.get_api_endpoint()
        return endpoint.api_version

    async def seal(self, params: SecretParams, data: Mapping[str, bytes | str]) -> Result[dict[str, Any], str]:
        """Seal plaintext values into a new SealedSecret manifest.

        Args:
            params: Name, namespace, scope and type of the secret.
            data: Plaintext values by data key.

        Returns:
            Result containing the manifest or an error message.

        """
        certificate = await self.get_certificate()
        if isinstance(certificate, Err):
            return certificate
        sealed = create_sealed_secret(certificate.value, params, data, api_version=await self.api_version())
        return sealed.map(lambda secret: secret.to_dict()).map_err(str)

    async def merge(self, existing: Mapping[str, Any], data: Mapping[str, bytes | str]) -> Result[dict[str, Any], str]:
        """Seal values into an existing SealedSecret manifest, keeping its scope."""
        certificate = await self.get_certificate()
        if isinstance(certificate, Err):
            return certificate
        return merge_sealed_secret(certificate.value, existing, data).map_err(str)

    async def health(self) -> ControllerHealthStatus:
        """Check the controller once; unreachability is part of the returned status."""
        http = self._require_http("Health check")
        return (await check_controller_health(http, self.config)).unwrap()

    async def watch_health(self, interval: float) -> AsyncIterator[ControllerHealthStatus]:
        http = self._require_http("Health check")
        async for status in watch_controller_health(http, self.config, interval):
            yield status

    async def verify(self, manifest: str | Mapping[str, Any]) -> Result[bool, str]:
        http = self._require_http("Verification")
        return await verify_sealed_secret(http, self.config, manifest)

    async def rotate(self, manifest: str | Mapping[str, Any]) -> Result[str, str]:
        http = self._require_http("Rotation")
        return await rotate_sealed_secret(http, self.config, manifest)

    async def detect_api_version(self) -> Result[str, str]:
        resolver = self._require_resolver("API version detection")
        return (await resolver.detect_api_version()).map_err(str)

    async def apply(self, manifest: dict[str, Any]) -> Result[dict[str, Any], str]:
        """Submit a SealedSecret to the cluster through the resolved endpoint."""
        http = self._require_http("Applying to the cluster")
        endpoint = await self._require_resolver("Applying to the cluster").get_api_endpoint()
        return await endpoint.create(http, manifest)
