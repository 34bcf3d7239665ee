"""SealedSecret manifest assembly.

This module turns sealed values into SealedSecret manifests, and merges
newly sealed values into existing ones.
"""

import copy
from collections.abc import Mapping
from typing import Any

from kubeseal_client.exceptions import SealedSecretsError, SecretParsingError
from kubeseal_client.models import DEFAULT_API_VERSION, SEALED_SECRET_KIND, PEMCertificate, SealedSecret, SecretParams
from kubeseal_client.result import Err, Ok, Result
from kubeseal_client.secrets.sealing import seal_data


# Set by kubectl apply; holds the whole plaintext Secret
LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"


def build_template(params: SecretParams) -> dict[str, Any]:
    """Build ``spec.template``: metadata and type of the Secret the controller creates.

    Labels and annotations of the source Secret are carried over, except
    the kubectl last-applied annotation. Scope annotations are added on top.
    """
    metadata: dict[str, Any] = {"name": params.name, "namespace": params.namespace}
    annotations = {k: v for k, v in params.annotations.items() if k != LAST_APPLIED_ANNOTATION}
    annotations.update(params.scope.annotations)
    if annotations:
        metadata["annotations"] = annotations
    if params.labels:
        metadata["labels"] = dict(params.labels)
    return {"metadata": metadata, "type": params.secret_type}


def build_sealed_secret(
    params: SecretParams,
    encrypted_data: Mapping[str, str],
    *,
    api_version: str = DEFAULT_API_VERSION,
) -> SealedSecret:
    """Assemble a SealedSecret from already sealed values.

    Args:
        params: Name, namespace, scope, type and metadata of the secret.
        encrypted_data: Base64 ciphertexts by data key.
        api_version: apiVersion for the manifest.

    Returns:
        The SealedSecret resource.

    """
    return SealedSecret(
        name=params.name,
        namespace=params.namespace,
        encrypted_data=dict(encrypted_data),
        template=build_template(params),
        annotations=dict(params.scope.annotations),
        api_version=api_version,
    )


def create_sealed_secret(
    certificate: PEMCertificate,
    params: SecretParams,
    data: Mapping[str, bytes | str],
    *,
    api_version: str = DEFAULT_API_VERSION,
) -> Result[SealedSecret, SealedSecretsError]:
    """Seal ``data`` and wrap it into a SealedSecret.

    Args:
        certificate: The controller certificate.
        params: Name, namespace, scope and type of the secret.
        data: Plaintext values by data key.
        api_version: apiVersion for the manifest.

    Returns:
        Result containing the SealedSecret or the sealing failure.

    """
    sealed = seal_data(certificate, data, scope=params.scope, namespace=params.namespace, name=params.name)
    return sealed.map(lambda encrypted: build_sealed_secret(params, encrypted, api_version=api_version))


def merge_sealed_secret(
    certificate: PEMCertificate,
    existing: Mapping[str, Any],
    data: Mapping[str, bytes | str],
) -> Result[dict[str, Any], SealedSecretsError]:
    """Seal ``data`` into an existing SealedSecret manifest.

    New values are sealed with the scope, name and namespace recorded in the
    existing manifest and replace entries with the same key. Every other
    field of the manifest is kept as is.

    Args:
        certificate: The controller certificate.
        existing: The parsed SealedSecret manifest.
        data: Plaintext values by data key.

    Returns:
        Result containing the updated manifest, or the failure.

    """
    if existing.get("kind") != SEALED_SECRET_KIND:
        return Err(SecretParsingError(f"Expected a SealedSecret, got '{existing.get('kind')}'"))

    secret = SealedSecret.from_dict(dict(existing))
    if not secret.name or not secret.namespace:
        return Err(SecretParsingError("SealedSecret metadata must include name and namespace"))

    sealed = seal_data(certificate, data, scope=secret.scope, namespace=secret.namespace, name=secret.name)
    if isinstance(sealed, Err):
        return sealed

    manifest = copy.deepcopy(dict(existing))
    spec = manifest.setdefault("spec", {})
    encrypted = spec.get("encryptedData") or {}
    encrypted.update(sealed.value)
    spec["encryptedData"] = encrypted
    return Ok(manifest)
