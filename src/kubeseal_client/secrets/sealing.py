"""Hybrid encryption of secret values for the sealed-secrets controller.

Each value is encrypted with a fresh AES-256-GCM session key, and the
session key is wrapped with the controller's RSA public key using OAEP.
The scope label is bound into both steps: it is the AES-GCM associated data
and the OAEP label, so the controller can only unseal the value when it
sees the same namespace/name binding.

Ciphertext layout (base64-encoded for storage):

    +-----------+------------------+-------------+------------------------+
    | len (u16) | RSA-OAEP(key)    | nonce (12B) | AES-GCM ciphertext+tag |
    +-----------+------------------+-------------+------------------------+
"""

import base64
import os
import struct
from collections.abc import Mapping

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from icecream import ic

from kubeseal_client.exceptions import InvalidCertificateError, SealedSecretsError, SealingError
from kubeseal_client.models import PEMCertificate, Scope
from kubeseal_client.result import Err, Ok, Result

SESSION_KEY_SIZE = 32
NONCE_SIZE = 12
MIN_RSA_KEY_SIZE = 2048

# Big-endian length of the wrapped session key
LENGTH_PREFIX = struct.Struct(">H")


def derive_label(scope: Scope, namespace: str, name: str) -> bytes:
    """Derive the encryption label binding a value to its identity.

    Args:
        scope: The sealing scope.
        namespace: Namespace of the target secret.
        name: Name of the target secret.

    Returns:
        ``namespace/name`` for strict, ``namespace`` for namespace-wide,
        and an empty label for cluster-wide scope.

    """
    match Scope(scope):
        case Scope.STRICT:
            return f"{namespace}/{name}".encode()
        case Scope.NAMESPACE_WIDE:
            return namespace.encode()
        case Scope.CLUSTER_WIDE:
            return b""


def oaep_padding(label: bytes) -> padding.OAEP:
    """OAEP parameters shared with the controller: SHA-256 and MGF1-SHA-256."""
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=label or None,
    )


def load_public_key(certificate: PEMCertificate | str) -> rsa.RSAPublicKey:
    """Extract the controller's RSA public key from its certificate.

    Args:
        certificate: PEM-encoded X.509 certificate.

    Returns:
        The RSA public key.

    Raises:
        InvalidCertificateError: If the PEM is malformed, the key is not RSA,
            or the modulus is smaller than MIN_RSA_KEY_SIZE bits.

    """
    try:
        cert = x509.load_pem_x509_certificate(certificate.encode())
    except ValueError as err:
        raise InvalidCertificateError(f"Invalid controller certificate: {err}") from err

    public_key = cert.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise InvalidCertificateError(
            f"Controller certificate holds a {type(public_key).__name__}, an RSA public key is required"
        )
    if public_key.key_size < MIN_RSA_KEY_SIZE:
        raise InvalidCertificateError(
            f"Controller RSA key is {public_key.key_size} bits, at least {MIN_RSA_KEY_SIZE} are required"
        )
    return public_key


def _random_bytes(size: int) -> bytes:
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as err:
        raise SealingError(f"System random number source unavailable: {err}") from err


def hybrid_encrypt(public_key: rsa.RSAPublicKey, plaintext: bytes, label: bytes) -> bytes:
    """Encrypt ``plaintext`` so that only the controller can decrypt it under ``label``.

    Args:
        public_key: The controller's RSA public key.
        plaintext: The secret value.
        label: Scope label from ``derive_label``.

    Returns:
        The raw ciphertext envelope.

    Raises:
        SealingError: If the random number source fails.

    """
    session_key = _random_bytes(SESSION_KEY_SIZE)
    nonce = _random_bytes(NONCE_SIZE)

    ciphertext = AESGCM(session_key).encrypt(nonce, plaintext, label)
    wrapped_key = public_key.encrypt(session_key, oaep_padding(label))

    return LENGTH_PREFIX.pack(len(wrapped_key)) + wrapped_key + nonce + ciphertext


def seal_value(public_key: rsa.RSAPublicKey, value: bytes | str, label: bytes) -> str:
    """Seal a single value and base64-encode it for ``spec.encryptedData``."""
    plaintext = value.encode() if isinstance(value, str) else value
    return base64.b64encode(hybrid_encrypt(public_key, plaintext, label)).decode("ascii")


def seal_data(
    certificate: PEMCertificate | str,
    data: Mapping[str, bytes | str],
    *,
    scope: Scope,
    namespace: str,
    name: str,
) -> Result[dict[str, str], SealedSecretsError]:
    """Seal every entry of a secret independently.

    Each key gets its own session key and nonce, even though all keys share
    the same label.

    Args:
        certificate: The controller certificate.
        data: Plaintext values by data key.
        scope: The sealing scope.
        namespace: Namespace of the target secret.
        name: Name of the target secret.

    Returns:
        Result containing base64 ciphertexts by data key, or the
        InvalidCertificateError / SealingError that aborted sealing.

    """
    label = derive_label(scope, namespace, name)
    ic(scope, label, sorted(data))
    try:
        public_key = load_public_key(certificate)
        return Ok({key: seal_value(public_key, value, label) for key, value in data.items()})
    except (InvalidCertificateError, SealingError) as err:
        return Err(err)
