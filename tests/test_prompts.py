"""Tests for secrets/prompts.py module."""

from unittest.mock import patch

import click
import pytest

from kubeseal_client.models import Scope, SecretParams
from kubeseal_client.secrets.prompts import (
    collect_secret_entries,
    collect_secret_parameters,
    parse_literal,
    validate_k8s_name,
)
from kubeseal_client.styles import PROMPT_STYLE


class TestValidateK8sName:
    """Tests for Kubernetes name validation."""

    @pytest.mark.parametrize("name", ["my-secret", "my.secret.name", "secret123", "a"])
    def test_valid(self, name):
        assert validate_k8s_name(name) is True

    def test_empty(self):
        assert "empty" in validate_k8s_name("").lower()

    def test_too_long(self):
        assert "253" in validate_k8s_name("a" * 254)

    @pytest.mark.parametrize("name", ["MySecret", "-secret", "secret-", "my_secret"])
    def test_invalid_characters(self, name):
        assert isinstance(validate_k8s_name(name), str)


class TestParseLiteral:
    """Tests for key=value splitting."""

    def test_simple(self):
        assert parse_literal("user=admin") == ("user", b"admin")

    def test_value_with_equals(self):
        assert parse_literal("dsn=host=db;port=5432") == ("dsn", b"host=db;port=5432")

    def test_key_is_stripped(self):
        assert parse_literal(" token =abc") == ("token", b"abc")


class TestCollectSecretParameters:
    """Tests for interactive parameter collection."""

    def test_connected_mode_uses_autocomplete(self):
        with (
            patch("questionary.autocomplete") as mock_autocomplete,
            patch("questionary.text") as mock_text,
            patch("questionary.select") as mock_select,
        ):
            mock_autocomplete.return_value.unsafe_ask.return_value = "prod"
            mock_text.return_value.unsafe_ask.return_value = "db"
            mock_select.return_value.unsafe_ask.return_value = "namespace-wide"

            params = collect_secret_parameters(["default", "prod"])

        assert params == SecretParams(name="db", namespace="prod", scope=Scope.NAMESPACE_WIDE)
        assert mock_autocomplete.call_args.kwargs["choices"] == ["default", "prod"]
        assert mock_autocomplete.call_args.kwargs["style"] is PROMPT_STYLE

    def test_detached_mode_with_preselected_scope(self):
        with patch("questionary.text") as mock_text, patch("questionary.select") as mock_select:
            mock_text.return_value.unsafe_ask.side_effect = ["staging", "api-key"]

            params = collect_secret_parameters([], scope=Scope.CLUSTER_WIDE)

        assert params == SecretParams(name="api-key", namespace="staging", scope=Scope.CLUSTER_WIDE)
        mock_select.assert_not_called()


class TestCollectSecretEntries:
    """Tests for interactive entry collection."""

    def test_literal_then_done(self):
        with patch("questionary.select") as mock_select, patch("questionary.text") as mock_text:
            mock_select.return_value.unsafe_ask.side_effect = ["literal", "done"]
            mock_text.return_value.unsafe_ask.return_value = "message=hello"

            entries = collect_secret_entries()

        assert entries == {"message": b"hello"}

    def test_bulk_skips_lines_without_separator(self):
        with patch("questionary.select") as mock_select, patch("questionary.text") as mock_text:
            mock_select.return_value.unsafe_ask.side_effect = ["bulk", "done"]
            mock_text.return_value.unsafe_ask.return_value = "a=1\nnot-a-pair\n\nb=2"

            entries = collect_secret_entries()

        assert entries == {"a": b"1", "b": b"2"}

    def test_file_entry_uses_file_name(self, tmp_path):
        key_file = tmp_path / "tls.key"
        key_file.write_bytes(b"\x00private")

        with patch("questionary.select") as mock_select, patch("questionary.path") as mock_path:
            mock_select.return_value.unsafe_ask.side_effect = ["file", "done"]
            mock_path.return_value.unsafe_ask.return_value = str(key_file)

            entries = collect_secret_entries()

        assert entries == {"tls.key": b"\x00private"}

    def test_missing_file(self, tmp_path):
        with patch("questionary.select") as mock_select, patch("questionary.path") as mock_path:
            mock_select.return_value.unsafe_ask.return_value = "file"
            mock_path.return_value.unsafe_ask.return_value = str(tmp_path / "missing")

            with pytest.raises(click.ClickException, match="File not found"):
                collect_secret_entries()
