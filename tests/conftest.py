"""Shared test fixtures for kubeseal-client tests."""

import base64
import datetime
import struct
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.x509.oid import NameOID

from kubeseal_client.models import PluginConfig


def _self_signed_pem(private_key) -> str:
    """Issue a self-signed certificate the way the controller does for its key."""
    name = x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, "sealed-secret")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
        .sign(private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode()


@pytest.fixture(scope="session")
def rsa_private_key():
    """Controller private key (kept out of the library, tests only)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate_pem(rsa_private_key) -> str:
    """PEM certificate for the controller key."""
    return _self_signed_pem(rsa_private_key)


@pytest.fixture(scope="session")
def small_rsa_certificate_pem() -> str:
    """Certificate holding an RSA key below the supported size."""
    return _self_signed_pem(rsa.generate_private_key(public_exponent=65537, key_size=1024))


@pytest.fixture(scope="session")
def ec_certificate_pem() -> str:
    """Certificate holding a non-RSA key."""
    return _self_signed_pem(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def unseal(rsa_private_key) -> Callable[[str, bytes], bytes]:
    """Decryption oracle mirroring what the controller does with a sealed value.

    Layout: 2-byte big-endian key length, RSA-OAEP (SHA-256) wrapped key,
    12-byte nonce, AES-256-GCM ciphertext and tag. The label is both the
    OAEP label and the GCM additional data.

    Raises ValueError (OAEP) or InvalidTag (AES-GCM) when the label does not match.
    """

    def _unseal(ciphertext_b64: str, label: bytes) -> bytes:
        data = base64.b64decode(ciphertext_b64)
        (key_length,) = struct.unpack_from(">H", data)
        wrapped_key = data[2 : 2 + key_length]
        nonce = data[2 + key_length : 14 + key_length]
        ciphertext = data[14 + key_length :]
        oaep = padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=label or None)
        session_key = rsa_private_key.decrypt(wrapped_key, oaep)
        return AESGCM(session_key).decrypt(nonce, ciphertext, label)

    return _unseal


@pytest.fixture
def plugin_config() -> PluginConfig:
    return PluginConfig(
        controller_name="sealed-secrets-controller",
        controller_namespace="kube-system",
        controller_port=8080,
    )


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient against a fake API server driven by ``handler``."""

    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url="https://kube.example:6443", transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def no_sleep():
    """Make retry backoff instantaneous; the mock records requested delays."""
    with patch("kubeseal_client.retry.asyncio.sleep", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_configuration():
    """Mock the client configuration produced by loading a kubeconfig."""
    with patch("kubernetes.client.Configuration.get_default_copy") as mock:
        configuration = MagicMock()
        configuration.host = "https://kube.example:6443"
        configuration.verify_ssl = True
        configuration.ssl_ca_cert = None
        configuration.cert_file = None
        configuration.key_file = None
        configuration.get_api_key_with_prefix.return_value = "Bearer test-token"
        mock.return_value = configuration
        yield configuration


@pytest.fixture
def mock_namespaces():
    """Mock namespace listing."""
    with patch("kubeseal_client.core.cluster.Cluster.get_all_namespaces") as mock:
        mock.return_value = ["default", "kube-system", "monitoring"]
        yield mock


@pytest.fixture
def cluster_mocks(mock_kube_contexts, mock_kube_config, mock_configuration):
    """Combined fixture for creating a Cluster instance without a cluster."""
    return {
        "contexts": mock_kube_contexts,
        "config": mock_kube_config,
        "configuration": mock_configuration,
    }


@pytest.fixture
def sample_secret_yaml():
    """Sample secret YAML content."""
    return """apiVersion: v1
kind: Secret
metadata:
  name: test-secret
  namespace: default
type: Opaque
data:
  username: dXNlcm5hbWU=
stringData:
  password: password
"""


@pytest.fixture
def sample_sealed_secret_yaml():
    """Sample sealed secret YAML content."""
    return """apiVersion: bitnami.com/v1alpha1
kind: SealedSecret
metadata:
  name: test-secret
  namespace: default
  annotations:
    sealedsecrets.bitnami.com/namespace-wide: "true"
spec:
  encryptedData:
    username: AgBy8hCi...
  template:
    metadata:
      name: test-secret
      namespace: default
    type: Opaque
"""
