"""Tests for secrets/creation.py module."""

import copy

import pytest
import yaml

from kubeseal_client.exceptions import InvalidCertificateError, SecretParsingError
from kubeseal_client.models import ANNOTATION_CLUSTER_WIDE, ANNOTATION_NAMESPACE_WIDE, Scope, SecretParams
from kubeseal_client.result import Err, Ok
from kubeseal_client.secrets.creation import (
    build_sealed_secret,
    build_template,
    create_sealed_secret,
    merge_sealed_secret,
)


class TestBuildTemplate:
    """Tests for spec.template assembly."""

    def test_strict(self):
        template = build_template(SecretParams(name="db", namespace="prod"))
        assert template == {"metadata": {"name": "db", "namespace": "prod"}, "type": "Opaque"}

    def test_scope_annotations_and_labels(self):
        params = SecretParams(
            name="db",
            namespace="prod",
            scope=Scope.CLUSTER_WIDE,
            secret_type="kubernetes.io/tls",
            labels={"app": "db"},
            annotations={"team": "payments"},
        )
        template = build_template(params)

        assert template["metadata"]["annotations"] == {"team": "payments", ANNOTATION_CLUSTER_WIDE: "true"}
        assert template["metadata"]["labels"] == {"app": "db"}
        assert template["type"] == "kubernetes.io/tls"

    def test_drops_last_applied_configuration(self):
        params = SecretParams(
            name="db",
            namespace="prod",
            annotations={"kubectl.kubernetes.io/last-applied-configuration": "{\"data\": {}}"},
        )

        assert "annotations" not in build_template(params)["metadata"]


class TestBuildSealedSecret:
    """Tests for SealedSecret assembly."""

    def test_fields(self):
        params = SecretParams(name="db", namespace="prod", scope=Scope.NAMESPACE_WIDE)
        secret = build_sealed_secret(params, {"k": "AgA"}, api_version="bitnami.com/v1")

        assert secret.api_version == "bitnami.com/v1"
        assert secret.encrypted_data == {"k": "AgA"}
        assert secret.annotations == {ANNOTATION_NAMESPACE_WIDE: "true"}
        assert secret.scope is Scope.NAMESPACE_WIDE


class TestCreateSealedSecret:
    """Tests for sealing a new secret."""

    def test_creates_decryptable_secret(self, certificate_pem, unseal):
        params = SecretParams(name="greeting", namespace="default")
        result = create_sealed_secret(certificate_pem, params, {"message": "hello"})

        assert isinstance(result, Ok)
        manifest = result.value.to_dict()
        assert manifest["apiVersion"] == "bitnami.com/v1alpha1"
        assert manifest["kind"] == "SealedSecret"
        assert manifest["metadata"] == {"name": "greeting", "namespace": "default"}
        assert unseal(manifest["spec"]["encryptedData"]["message"], b"default/greeting") == b"hello"

    def test_manifest_is_yaml_serializable(self, certificate_pem):
        result = create_sealed_secret(certificate_pem, SecretParams(name="a", namespace="b"), {"k": b"v"})
        assert yaml.safe_load(yaml.safe_dump(result.value.to_dict()))["metadata"]["name"] == "a"

    def test_invalid_certificate(self, small_rsa_certificate_pem):
        result = create_sealed_secret(small_rsa_certificate_pem, SecretParams(name="a", namespace="b"), {"k": "v"})
        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidCertificateError)


class TestMergeSealedSecret:
    """Tests for adding entries to an existing SealedSecret."""

    @pytest.fixture
    def existing(self, sample_sealed_secret_yaml):
        return yaml.safe_load(sample_sealed_secret_yaml)

    def test_adds_entries_with_existing_scope(self, certificate_pem, existing, unseal):
        original = copy.deepcopy(existing)

        result = merge_sealed_secret(certificate_pem, existing, {"password": "s3cret"})

        assert isinstance(result, Ok)
        encrypted = result.value["spec"]["encryptedData"]
        assert encrypted["username"] == "AgBy8hCi..."
        # namespace-wide annotation means the label is the namespace alone
        assert unseal(encrypted["password"], b"default") == b"s3cret"
        assert result.value["spec"]["template"] == original["spec"]["template"]
        assert existing == original

    def test_replaces_existing_key(self, certificate_pem, existing):
        result = merge_sealed_secret(certificate_pem, existing, {"username": "admin"})
        assert result.value["spec"]["encryptedData"]["username"] != "AgBy8hCi..."

    def test_rejects_other_kinds(self, certificate_pem):
        result = merge_sealed_secret(certificate_pem, {"kind": "Secret", "metadata": {"name": "a", "namespace": "b"}}, {"k": "v"})
        assert isinstance(result.error, SecretParsingError)

    def test_rejects_missing_identity(self, certificate_pem):
        result = merge_sealed_secret(certificate_pem, {"kind": "SealedSecret", "metadata": {"name": "a"}}, {"k": "v"})
        assert isinstance(result.error, SecretParsingError)
        assert "name and namespace" in str(result.error)
