"""Data models for kubeseal-client.

This module provides type-safe data structures for configuration,
controller status and the SealedSecret custom resource, replacing
loosely-typed dictionaries with proper Python data classes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NewType

from kubeseal_client.exceptions import InvalidCertificateError

PEM_BEGIN = "-----BEGIN CERTIFICATE-----"
PEM_END = "-----END CERTIFICATE-----"

DEFAULT_API_VERSION = "bitnami.com/v1alpha1"
SEALED_SECRET_KIND = "SealedSecret"
ANNOTATION_NAMESPACE_WIDE = "sealedsecrets.bitnami.com/namespace-wide"
ANNOTATION_CLUSTER_WIDE = "sealedsecrets.bitnami.com/cluster-wide"

PEMCertificate = NewType("PEMCertificate", str)


def pem_certificate(text: str) -> PEMCertificate:
    """Brand PEM text as a certificate after checking its framing.

    The text is returned untransformed.

    Args:
        text: PEM-encoded X.509 certificate.

    Returns:
        The same text typed as PEMCertificate.

    Raises:
        InvalidCertificateError: If the BEGIN/END CERTIFICATE markers are missing
            or out of order.

    """
    begin = text.find(PEM_BEGIN)
    end = text.find(PEM_END)
    if begin == -1 or end == -1 or end < begin:
        raise InvalidCertificateError("Response is not a PEM-encoded certificate")
    return PEMCertificate(text)


class Scope(str, Enum):
    """Identity-binding strength of a sealed value.

    Inherits from str to allow direct use in string contexts
    (e.g., command-line choices, YAML output).
    """

    STRICT = "strict"
    NAMESPACE_WIDE = "namespace-wide"
    CLUSTER_WIDE = "cluster-wide"

    @property
    def annotations(self) -> dict[str, str]:
        """Annotations kubeseal puts on a SealedSecret of this scope."""
        match self:
            case Scope.NAMESPACE_WIDE:
                return {ANNOTATION_NAMESPACE_WIDE: "true"}
            case Scope.CLUSTER_WIDE:
                return {ANNOTATION_CLUSTER_WIDE: "true"}
            case _:
                return {}

    @classmethod
    def from_annotations(cls, annotations: dict[str, str] | None) -> "Scope":
        annotations = annotations or {}
        if annotations.get(ANNOTATION_CLUSTER_WIDE) == "true":
            return cls.CLUSTER_WIDE
        if annotations.get(ANNOTATION_NAMESPACE_WIDE) == "true":
            return cls.NAMESPACE_WIDE
        return cls.STRICT


@dataclass(frozen=True, slots=True)
class PluginConfig:
    """Identifies the controller service to proxy through.

    Attributes:
        controller_name: Name of the controller Service.
        controller_namespace: Namespace of the controller Service.
        controller_port: Port of the controller Service.

    """

    controller_name: str = "sealed-secrets-controller"
    controller_namespace: str = "kube-system"
    controller_port: int = 8080

    def to_dict(self) -> dict[str, Any]:
        return {
            "controllerName": self.controller_name,
            "controllerNamespace": self.controller_namespace,
            "controllerPort": self.controller_port,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PluginConfig":
        """Build a config from its camelCase form.

        Raises:
            KeyError: If a field is missing.
            TypeError: If a field has the wrong type.

        """
        name = data["controllerName"]
        namespace = data["controllerNamespace"]
        port = data["controllerPort"]
        if not isinstance(name, str) or not isinstance(namespace, str):
            raise TypeError("controllerName and controllerNamespace must be strings")
        if isinstance(port, bool) or not isinstance(port, int):
            raise TypeError("controllerPort must be an integer")
        return cls(controller_name=name, controller_namespace=namespace, controller_port=port)


@dataclass(frozen=True, slots=True)
class ControllerHealthStatus:
    """Result of a single controller health check.

    Attributes:
        healthy: Whether the controller answered 2xx.
        reachable: Whether any HTTP response arrived at all.
        version: Value of the X-Controller-Version header, if sent.
        latency_ms: Round-trip time of the check in milliseconds.
        error: Description of the failure when not healthy.

    """

    healthy: bool
    reachable: bool
    version: str | None = None
    latency_ms: int | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class SecretParams:
    """Parameters for sealing a secret.

    Attributes:
        name: The name of the secret.
        namespace: The Kubernetes namespace for the secret.
        scope: The sealing scope.
        secret_type: Type of the Secret the controller will create.
        labels: Labels for the Secret the controller will create.
        annotations: Annotations for that Secret, merged with the scope
            annotations.

    """

    name: str
    namespace: str
    scope: Scope = Scope.STRICT
    secret_type: str = "Opaque"
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Condition:
    """A status condition reported by the controller."""

    type: str
    status: str
    reason: str | None = None
    message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Condition":
        return cls(
            type=str(data.get("type", "")),
            status=str(data.get("status", "")),
            reason=data.get("reason"),
            message=data.get("message"),
        )


@dataclass(slots=True)
class SealedSecret:
    """The SealedSecret custom resource.

    Attributes:
        name: metadata.name
        namespace: metadata.namespace
        encrypted_data: spec.encryptedData, base64 ciphertext per data key.
        template: spec.template, metadata/type of the resulting Secret.
        annotations: metadata.annotations
        conditions: status.conditions as set by the controller.
        api_version: apiVersion of the resource.

    """

    name: str
    namespace: str
    encrypted_data: dict[str, str] = field(default_factory=dict)
    template: dict[str, Any] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    conditions: tuple[Condition, ...] = ()
    api_version: str = DEFAULT_API_VERSION

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SealedSecret":
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            encrypted_data=dict(spec.get("encryptedData") or {}),
            template=dict(spec.get("template") or {}),
            annotations=dict(metadata.get("annotations") or {}),
            conditions=tuple(Condition.from_dict(c) for c in status.get("conditions") or []),
            api_version=data.get("apiVersion", DEFAULT_API_VERSION),
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the resource as a manifest. Status is never written."""
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.annotations:
            metadata["annotations"] = dict(self.annotations)
        spec: dict[str, Any] = {"encryptedData": dict(self.encrypted_data)}
        if self.template:
            spec["template"] = self.template
        return {
            "apiVersion": self.api_version,
            "kind": SEALED_SECRET_KIND,
            "metadata": metadata,
            "spec": spec,
        }

    @property
    def scope(self) -> Scope:
        return Scope.from_annotations(self.annotations)

    @property
    def encrypted_keys_count(self) -> int:
        return len(self.encrypted_data)

    @property
    def sync_condition(self) -> Condition | None:
        return next((c for c in self.conditions if c.type == "Synced"), None)

    @property
    def is_synced(self) -> bool:
        condition = self.sync_condition
        return condition is not None and condition.status == "True"

    @property
    def sync_message(self) -> str:
        condition = self.sync_condition
        if condition is None:
            return "Unknown"
        return condition.message or condition.reason or condition.status
