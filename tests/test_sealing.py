"""Tests for secrets/sealing.py module."""

import base64
import struct
from unittest.mock import patch

import pytest
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from kubeseal_client.exceptions import InvalidCertificateError, SealingError
from kubeseal_client.models import Scope
from kubeseal_client.result import Err, Ok
from kubeseal_client.secrets.sealing import (
    derive_label,
    load_public_key,
    seal_data,
)


class TestDeriveLabel:
    """Tests for scope label derivation."""

    def test_strict(self):
        assert derive_label(Scope.STRICT, "default", "greeting") == b"default/greeting"

    def test_namespace_wide(self):
        assert derive_label(Scope.NAMESPACE_WIDE, "default", "greeting") == b"default"

    def test_cluster_wide(self):
        assert derive_label(Scope.CLUSTER_WIDE, "default", "greeting") == b""

    def test_accepts_plain_string(self):
        assert derive_label("namespace-wide", "prod", "db") == b"prod"


class TestLoadPublicKey:
    """Tests for certificate validation."""

    def test_valid_certificate(self, certificate_pem, rsa_private_key):
        key = load_public_key(certificate_pem)
        assert key.public_numbers() == rsa_private_key.public_key().public_numbers()

    def test_garbage_rejected(self):
        with pytest.raises(InvalidCertificateError):
            load_public_key("-----BEGIN CERTIFICATE-----\nnot base64\n-----END CERTIFICATE-----\n")

    def test_non_rsa_rejected(self, ec_certificate_pem):
        with pytest.raises(InvalidCertificateError, match="RSA"):
            load_public_key(ec_certificate_pem)

    def test_small_key_rejected(self, small_rsa_certificate_pem):
        with pytest.raises(InvalidCertificateError, match="1024 bits"):
            load_public_key(small_rsa_certificate_pem)


class TestSealData:
    """Tests for sealing whole secrets."""

    def test_round_trip_strict(self, certificate_pem, unseal):
        result = seal_data(certificate_pem, {"message": "hello"}, scope=Scope.STRICT, namespace="default", name="greeting")

        assert isinstance(result, Ok)
        assert unseal(result.value["message"], b"default/greeting") == b"hello"

    def test_round_trip_cluster_wide(self, certificate_pem, unseal):
        result = seal_data(certificate_pem, {"token": b"\x00\x01binary"}, scope=Scope.CLUSTER_WIDE, namespace="a", name="b")
        assert unseal(result.value["token"], b"") == b"\x00\x01binary"

    def test_envelope_layout(self, certificate_pem):
        result = seal_data(certificate_pem, {"k": "hello"}, scope=Scope.STRICT, namespace="ns", name="n")
        raw = base64.b64decode(result.value["k"])

        assert struct.unpack_from(">H", raw) == (256,)
        assert len(raw) == 2 + 256 + 12 + len(b"hello") + 16

    def test_session_key_wrapped_with_oaep_sha256(self, certificate_pem, rsa_private_key):
        result = seal_data(certificate_pem, {"k": "hello"}, scope=Scope.STRICT, namespace="ns", name="n")
        wrapped_key = base64.b64decode(result.value["k"])[2:258]

        sha256 = padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA256()), algorithm=hashes.SHA256(), label=b"ns/n")
        sha1 = padding.OAEP(mgf=padding.MGF1(algorithm=hashes.SHA1()), algorithm=hashes.SHA1(), label=b"ns/n")

        assert len(rsa_private_key.decrypt(wrapped_key, sha256)) == 32
        with pytest.raises(ValueError):
            rsa_private_key.decrypt(wrapped_key, sha1)

    def test_wrong_label_fails(self, certificate_pem, unseal):
        result = seal_data(certificate_pem, {"message": "hello"}, scope=Scope.STRICT, namespace="default", name="greeting")

        with pytest.raises((ValueError, InvalidTag)):
            unseal(result.value["message"], b"default/other")

    def test_namespace_wide_binds_namespace_only(self, certificate_pem, unseal):
        result = seal_data(certificate_pem, {"k": "v"}, scope=Scope.NAMESPACE_WIDE, namespace="prod", name="one")

        assert unseal(result.value["k"], b"prod") == b"v"
        with pytest.raises((ValueError, InvalidTag)):
            unseal(result.value["k"], b"staging")

    def test_same_value_seals_differently(self, certificate_pem, unseal):
        first = seal_data(certificate_pem, {"message": "hello"}, scope=Scope.STRICT, namespace="default", name="greeting")
        second = seal_data(certificate_pem, {"message": "hello"}, scope=Scope.STRICT, namespace="default", name="greeting")

        assert first.value["message"] != second.value["message"]
        assert unseal(first.value["message"], b"default/greeting") == b"hello"
        assert unseal(second.value["message"], b"default/greeting") == b"hello"

    def test_each_key_sealed_independently(self, certificate_pem, unseal):
        result = seal_data(certificate_pem, {"a": "same", "b": "same"}, scope=Scope.STRICT, namespace="ns", name="n")

        assert set(result.value) == {"a", "b"}
        assert result.value["a"] != result.value["b"]

    def test_empty_value(self, certificate_pem, unseal):
        result = seal_data(certificate_pem, {"empty": ""}, scope=Scope.STRICT, namespace="ns", name="n")
        assert unseal(result.value["empty"], b"ns/n") == b""

    def test_invalid_certificate_is_err(self, ec_certificate_pem):
        result = seal_data(ec_certificate_pem, {"k": "v"}, scope=Scope.STRICT, namespace="ns", name="n")

        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidCertificateError)

    def test_random_source_failure_is_err(self, certificate_pem):
        with patch("kubeseal_client.secrets.sealing.os.urandom", side_effect=OSError("no entropy")):
            result = seal_data(certificate_pem, {"k": "v"}, scope=Scope.STRICT, namespace="ns", name="n")

        assert isinstance(result, Err)
        assert isinstance(result.error, SealingError)
        assert "no entropy" in str(result.error)
