"""kubeseal-client: seal Kubernetes secrets without the kubeseal binary.

This package produces SealedSecret ciphertexts the Bitnami
sealed-secrets controller can decrypt, and talks to the controller
through the Kubernetes API server proxy with retries, health probing
and API-version detection.

Example usage:
    from kubeseal_client import Scope, SecretParams, create_sealed_secret

    result = create_sealed_secret(
        certificate,
        SecretParams(name="greeting", namespace="default", scope=Scope.STRICT),
        {"message": "hello"},
    )
    if result.ok:
        manifest = result.value.to_dict()
"""

__version__ = "0.1.0"

from kubeseal_client.cli import cli
from kubeseal_client.controller import (
    build_proxy_url,
    check_controller_health,
    fetch_public_certificate,
    rotate_sealed_secret,
    verify_sealed_secret,
)
from kubeseal_client.core.cluster import Cluster
from kubeseal_client.core.kubeseal import Kubeseal
from kubeseal_client.crd import ApiVersionResolver, ResourceEndpoint, VersionCache
from kubeseal_client.exceptions import (
    ClusterConnectionError,
    ControllerUnavailableError,
    CrdNotInstalledError,
    InvalidCertificateError,
    SealedSecretsError,
    SealingError,
    SecretParsingError,
    TransientError,
    UnwrapError,
)
from kubeseal_client.models import ControllerHealthStatus, PEMCertificate, PluginConfig, Scope, SealedSecret, SecretParams
from kubeseal_client.result import Err, Ok, Result
from kubeseal_client.retry import RetryPolicy, retry_with_backoff
from kubeseal_client.secrets.creation import create_sealed_secret
from kubeseal_client.secrets.sealing import derive_label, seal_data

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Cluster",
    "Kubeseal",
    "ApiVersionResolver",
    "ResourceEndpoint",
    "VersionCache",
    "RetryPolicy",
    # Models
    "ControllerHealthStatus",
    "PEMCertificate",
    "PluginConfig",
    "Scope",
    "SealedSecret",
    "SecretParams",
    # Results
    "Ok",
    "Err",
    "Result",
    # Functions
    "build_proxy_url",
    "check_controller_health",
    "create_sealed_secret",
    "derive_label",
    "fetch_public_certificate",
    "retry_with_backoff",
    "rotate_sealed_secret",
    "seal_data",
    "verify_sealed_secret",
    # Exceptions
    "SealedSecretsError",
    "TransientError",
    "ClusterConnectionError",
    "ControllerUnavailableError",
    "CrdNotInstalledError",
    "InvalidCertificateError",
    "SealingError",
    "SecretParsingError",
    "UnwrapError",
]
