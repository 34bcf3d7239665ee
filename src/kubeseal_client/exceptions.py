"""Custom exceptions for kubeseal-client.

This module defines the exception hierarchy used throughout the package.
Library operations return these as ``Err`` payloads rather than raising them
across module boundaries; the CLI is the only layer that turns them into
user-facing errors.
"""


class SealedSecretsError(Exception):
    """Base exception for all kubeseal-client errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to handle every failure with a single except clause
    or ``isinstance`` check if desired.
    """

    pass


class TransientError(SealedSecretsError):
    """Base class for failures that may succeed when retried.

    The retry driver only re-attempts operations whose failure payload
    is an instance of this class. Everything else is treated as fatal.
    """

    pass


class ClusterConnectionError(SealedSecretsError):
    """Raised when connection to the Kubernetes cluster cannot be set up.

    This can occur when:
    - The kubeconfig is invalid or missing
    - The selected context does not exist
    - The API server address is not configured
    """

    pass


class ControllerUnavailableError(TransientError):
    """The controller or API server could not be reached, or answered non-2xx."""

    pass


class CrdNotInstalledError(SealedSecretsError):
    """Raised when the SealedSecret custom resource definition is absent.

    This typically means:
    - The sealed-secrets controller is not installed
    - The user doesn't have permission to read custom resource definitions
    """

    pass


class InvalidCertificateError(SealedSecretsError):
    """Raised when certificate or public key material cannot be used.

    This can occur when:
    - The PEM text is malformed or is not a certificate
    - The certificate does not carry an RSA public key
    - The RSA key is smaller than the supported minimum
    """

    pass


class SealingError(SealedSecretsError):
    """Raised when the hybrid encryption itself fails (e.g. no randomness)."""

    pass


class SecretParsingError(SealedSecretsError):
    """Raised when parsing a secret file fails.

    This can occur when:
    - The file does not exist
    - The file is not valid YAML
    - The YAML does not represent the expected Kubernetes resource
    """

    pass


class UnwrapError(SealedSecretsError):
    """Raised when ``unwrap`` is called on a failed result."""

    pass
