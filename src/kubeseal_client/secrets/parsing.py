"""Manifest file parsing and writing.

This module reads Secret and SealedSecret YAML files and writes sealed
manifests back to disk.
"""

import base64
import binascii
from pathlib import Path
from typing import Any

import yaml

from kubeseal_client.exceptions import SecretParsingError
from kubeseal_client.models import Scope, SecretParams


def parse_secret_file(secret_path: str | Path) -> dict[str, Any] | None:
    """Parse a single-document YAML (or JSON) manifest file.

    Args:
        secret_path: Path to the manifest file.

    Returns:
        The parsed document as a dictionary, or None if empty.

    Raises:
        SecretParsingError: If the file does not exist, contains multiple
            documents, contains malformed YAML, or is not a YAML mapping.

    """
    try:
        with open(secret_path) as stream:
            docs = [doc for doc in yaml.safe_load_all(stream) if doc is not None]
    except FileNotFoundError as err:
        raise SecretParsingError(f"Secret file '{secret_path}' does not exist") from err
    except yaml.YAMLError as err:
        raise SecretParsingError(f"Secret file '{secret_path}' contains malformed YAML: {err}") from err

    if len(docs) > 1:
        raise SecretParsingError(
            f"File '{secret_path}' contains multiple YAML documents. Only single document files are supported."
        )
    if not docs:
        return None
    result = docs[0]
    if not isinstance(result, dict):
        raise SecretParsingError(
            f"File '{secret_path}' does not contain a valid YAML mapping. Expected a Kubernetes resource document."
        )
    return result


def secret_from_manifest(manifest: dict[str, Any], scope: Scope = Scope.STRICT) -> tuple[SecretParams, dict[str, bytes]]:
    """Extract seal parameters and plaintext values from a plain Secret.

    ``data`` entries are base64-decoded; ``stringData`` entries are taken as
    UTF-8 text and win over ``data`` entries with the same key.

    Args:
        manifest: Parsed ``kind: Secret`` manifest.
        scope: Scope to seal the values with.

    Returns:
        Tuple of (SecretParams, values by key).

    Raises:
        SecretParsingError: If the manifest is not a Secret, lacks a name or
            namespace, or holds invalid base64.

    """
    if manifest.get("kind") != "Secret":
        raise SecretParsingError(f"Expected a Secret manifest, got '{manifest.get('kind')}'")

    metadata = manifest.get("metadata") or {}
    name = metadata.get("name")
    namespace = metadata.get("namespace")
    if not name or not namespace:
        raise SecretParsingError("Secret metadata must include name and namespace")

    values: dict[str, bytes] = {}
    for key, encoded in (manifest.get("data") or {}).items():
        try:
            values[key] = base64.b64decode(str(encoded), validate=True)
        except binascii.Error as err:
            raise SecretParsingError(f"Secret key '{key}' is not valid base64") from err
    for key, text in (manifest.get("stringData") or {}).items():
        values[key] = str(text).encode()

    if not values:
        raise SecretParsingError(f"Secret '{namespace}/{name}' has no data to seal")

    params = SecretParams(
        name=name,
        namespace=namespace,
        scope=scope,
        secret_type=manifest.get("type", "Opaque"),
        labels=dict(metadata.get("labels") or {}),
        annotations=dict(metadata.get("annotations") or {}),
    )
    return params, values


def write_manifest(manifest: dict[str, Any], output_path: str | Path) -> None:
    """Write a manifest as YAML, keeping key order."""
    with open(output_path, "w") as stream:
        yaml.safe_dump(manifest, stream, sort_keys=False)
