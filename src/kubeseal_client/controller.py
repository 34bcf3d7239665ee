"""Sealed-secrets controller HTTP API helpers.

Utilities for talking to the sealed-secrets-controller through the
Kubernetes API server's service proxy. Every function takes an
``httpx.AsyncClient`` whose base URL is the API server.
"""

import asyncio
import json
import time
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx
from icecream import ic

from kubeseal_client.exceptions import ControllerUnavailableError, InvalidCertificateError, SealedSecretsError
from kubeseal_client.models import ControllerHealthStatus, PEMCertificate, PluginConfig, pem_certificate
from kubeseal_client.result import Err, Ok, Result, capture, capture_async
from kubeseal_client.retry import RetryPolicy, is_transient, retry_with_backoff

CERTIFICATE_PATH = "/v1/cert.pem"
VERIFY_PATH = "/v1/verify"
ROTATE_PATH = "/v1/rotate"
HEALTH_PATH = "/healthz"

VERSION_HEADER = "X-Controller-Version"
HEALTH_TIMEOUT_SECONDS = 5.0
HEALTH_REFRESH_SECONDS = 30.0

CERTIFICATE_RETRY_POLICY = RetryPolicy(max_attempts=3, initial_delay_ms=1000, max_delay_ms=10000)

_JSON_HEADERS = {"Content-Type": "application/json"}


def build_proxy_url(config: PluginConfig, path: str) -> str:
    """Build the API server proxy path for a controller endpoint.

    Args:
        config: Controller service coordinates.
        path: Controller-side path, e.g. ``/v1/cert.pem``.

    Returns:
        ``/api/v1/namespaces/{ns}/services/http:{name}:{port}/proxy{path}``

    """
    if not path.startswith("/"):
        path = f"/{path}"
    return (
        f"/api/v1/namespaces/{config.controller_namespace}"
        f"/services/http:{config.controller_name}:{config.controller_port}/proxy{path}"
    )


def _manifest_body(manifest: str | Mapping[str, Any]) -> str:
    if isinstance(manifest, str):
        return manifest
    return json.dumps(manifest)


async def _fetch_certificate_once(
    http: httpx.AsyncClient,
    config: PluginConfig,
) -> Result[PEMCertificate, SealedSecretsError]:
    url = build_proxy_url(config, CERTIFICATE_PATH)
    ic(url)
    sent = await capture_async(lambda: http.get(url), httpx.HTTPError)
    if isinstance(sent, Err):
        return sent.map_err(lambda exc: ControllerUnavailableError(f"Unable to fetch controller certificate: {exc}"))
    response = sent.value

    if not response.is_success:
        return Err(
            ControllerUnavailableError(
                "Unable to fetch controller certificate: "
                f"Failed to fetch certificate: {response.status_code} {response.reason_phrase}"
            )
        )

    return capture(lambda: pem_certificate(response.text), InvalidCertificateError)


async def fetch_public_certificate(http: httpx.AsyncClient, config: PluginConfig) -> Result[PEMCertificate, str]:
    """Fetch the controller's public certificate with retry logic.

    Transport failures and non-2xx responses are retried with exponential
    backoff (3 attempts, 1s initial delay, 10s cap). A 2xx body that is not
    a PEM certificate fails immediately.

    Args:
        http: Client bound to the Kubernetes API server.
        config: Controller service coordinates.

    Returns:
        Result containing the PEM certificate or an error message.

    """
    result = await retry_with_backoff(
        lambda: _fetch_certificate_once(http, config),
        CERTIFICATE_RETRY_POLICY,
        should_retry=is_transient,
    )
    return result.map_err(str)


async def check_controller_health(http: httpx.AsyncClient, config: PluginConfig) -> Result[ControllerHealthStatus, str]:
    """Check controller health and reachability.

    Makes a single request to ``/healthz`` with a 5 second deadline. The
    result is never an ``Err``: an unreachable controller is reported as
    a status value, since reachability is what is being asked.

    Args:
        http: Client bound to the Kubernetes API server.
        config: Controller service coordinates.

    Returns:
        Result containing the health status.

    """
    url = build_proxy_url(config, HEALTH_PATH)
    started = time.monotonic()

    def elapsed_ms() -> int:
        return round((time.monotonic() - started) * 1000)

    try:
        response = await asyncio.wait_for(http.get(url), timeout=HEALTH_TIMEOUT_SECONDS)
    except (asyncio.TimeoutError, httpx.TimeoutException):
        return Ok(
            ControllerHealthStatus(
                healthy=False,
                reachable=False,
                latency_ms=elapsed_ms(),
                error=f"Request timed out after {HEALTH_TIMEOUT_SECONDS:g} seconds",
            )
        )
    except httpx.HTTPError as exc:
        return Ok(
            ControllerHealthStatus(
                healthy=False,
                reachable=False,
                latency_ms=elapsed_ms(),
                error=str(exc) or "Controller unreachable",
            )
        )

    latency_ms = elapsed_ms()
    ic(url, response.status_code, latency_ms)

    if not response.is_success:
        return Ok(
            ControllerHealthStatus(
                healthy=False,
                reachable=True,
                latency_ms=latency_ms,
                error=f"HTTP {response.status_code}: {response.reason_phrase}",
            )
        )

    return Ok(
        ControllerHealthStatus(
            healthy=True,
            reachable=True,
            version=response.headers.get(VERSION_HEADER) or None,
            latency_ms=latency_ms,
        )
    )


async def watch_controller_health(
    http: httpx.AsyncClient,
    config: PluginConfig,
    interval: float = HEALTH_REFRESH_SECONDS,
) -> AsyncIterator[ControllerHealthStatus]:
    """Check the controller repeatedly, yielding each status.

    The iterator never ends on its own; the caller stops it by breaking out
    of the loop or cancelling the consuming task.

    Args:
        http: Client bound to the Kubernetes API server.
        config: Controller service coordinates.
        interval: Seconds to wait between checks.

    """
    while True:
        result = await check_controller_health(http, config)
        yield result.unwrap()
        await asyncio.sleep(interval)


async def verify_sealed_secret(
    http: httpx.AsyncClient,
    config: PluginConfig,
    manifest: str | Mapping[str, Any],
) -> Result[bool, str]:
    """Ask the controller whether it can decrypt a SealedSecret.

    Single attempt only; verification is not retried.

    Args:
        http: Client bound to the Kubernetes API server.
        config: Controller service coordinates.
        manifest: The SealedSecret as JSON/YAML text or as a mapping.

    Returns:
        Result containing True if the controller answered 2xx, or an error
        message if the request could not be made.

    """
    url = build_proxy_url(config, VERIFY_PATH)
    ic(url)
    sent = await capture_async(lambda: http.post(url, content=_manifest_body(manifest), headers=_JSON_HEADERS), httpx.HTTPError)
    return sent.map(lambda response: response.is_success).map_err(lambda exc: f"Verification failed: {exc}")


async def rotate_sealed_secret(
    http: httpx.AsyncClient,
    config: PluginConfig,
    manifest: str | Mapping[str, Any],
) -> Result[str, str]:
    """Re-encrypt a SealedSecret with the controller's current active key.

    Args:
        http: Client bound to the Kubernetes API server.
        config: Controller service coordinates.
        manifest: The SealedSecret as JSON/YAML text or as a mapping.

    Returns:
        Result containing the re-encrypted SealedSecret body or an error message.

    """
    url = build_proxy_url(config, ROTATE_PATH)
    ic(url)
    sent = await capture_async(lambda: http.post(url, content=_manifest_body(manifest), headers=_JSON_HEADERS), httpx.HTTPError)
    if isinstance(sent, Err):
        return sent.map_err(lambda exc: f"Unable to rotate SealedSecret: {exc}")
    response = sent.value

    if not response.is_success:
        return Err(
            f"Unable to rotate SealedSecret: Rotation failed: {response.status_code} {response.reason_phrase}"
        )
    return Ok(response.text)
