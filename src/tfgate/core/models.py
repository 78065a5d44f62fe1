#!/usr/bin/env python3
"""
TFGATE CORE MODELS
------------------
Defines the fundamental data structures used across the TFGate core.
These models mirror the Kubernetes objects the controller reads and
writes: Configurations, Providers and Secrets, plus the derived
BackendDescriptor produced on every render.

Author: TFGate Team
Date: 2026-10-18
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from tfgate.core.errors import ValidationError

CONFIGURATION_API_VERSION = "terraform.core.oam.dev/v1beta2"
PROVIDER_API_VERSION = "terraform.core.oam.dev/v1beta1"
SECRET_API_VERSION = "v1"

DEFAULT_PROVIDER_NAME = "default"
DEFAULT_PROVIDER_NAMESPACE = "default"


class ConfigurationType(str, Enum):
    """The two authoring modes a Configuration can use."""
    HCL = "HCL"
    REMOTE = "Remote"


class ConfigurationState(str, Enum):
    """Apply/destroy states surfaced in Configuration status."""
    AVAILABLE = "Available"
    PROVISIONING_AND_CHECKING = "ProvisioningAndChecking"
    TERRAFORM_INIT_ERROR = "TerraformInitError"
    TERRAFORM_APPLY_FAILED = "TerraformApplyFailed"
    VALIDATION_ERROR = "ConfigurationValidationError"


class ProviderState(str, Enum):
    READY = "ready"
    NOT_READY = "ProviderNotReady"


MESSAGE_PROVISIONING_AND_CHECKING = (
    "Cloud resources are being provisioned and provisioning status is checking..."
)


# --- AUTHORING MODE (tagged variant) ---

@dataclass(frozen=True)
class HCLSource:
    """Inline authoring: the Terraform body lives in the Configuration."""
    body: str

    @property
    def kind(self) -> ConfigurationType:
        return ConfigurationType.HCL


@dataclass(frozen=True)
class RemoteSource:
    """Remote authoring: a git repository (and optional sub-path) holds the body."""
    url: str
    path: str = ""

    @property
    def kind(self) -> ConfigurationType:
        return ConfigurationType.REMOTE


AuthoringMode = Union[HCLSource, RemoteSource]


@dataclass
class Reference:
    """A namespaced pointer to another object (Provider, Secret owner...)."""
    name: str
    namespace: str = DEFAULT_PROVIDER_NAMESPACE

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional["Reference"]:
        if not raw:
            return None
        return cls(name=raw.get("name", ""),
                   namespace=raw.get("namespace") or DEFAULT_PROVIDER_NAMESPACE)

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "namespace": self.namespace}


@dataclass
class SecretSelector:
    """Points at one key of a Secret; namespace falls back to the owner's."""
    name: str
    key: str
    namespace: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional["SecretSelector"]:
        if not raw:
            return None
        return cls(name=raw.get("name", ""), key=raw.get("key", ""),
                   namespace=raw.get("namespace"))

    def to_dict(self) -> Dict[str, str]:
        out = {"name": self.name, "key": self.key}
        if self.namespace:
            out["namespace"] = self.namespace
        return out


@dataclass
class KubernetesBackend:
    secret_suffix: Optional[str] = None
    namespace: Optional[str] = None
    config_secret: Optional[SecretSelector] = None  # kubeconfig for a remote cluster


@dataclass
class S3Backend:
    bucket: str = ""
    key: str = ""
    region: Optional[str] = None
    shared_credentials_secret: Optional[SecretSelector] = None


@dataclass
class BackendSpec:
    """User-facing backend settings (spec.backend)."""
    secret_suffix: Optional[str] = None
    in_cluster_config: Optional[bool] = None
    inline: Optional[str] = None
    backend_type: Optional[str] = None
    kubernetes: Optional[KubernetesBackend] = None
    s3: Optional[S3Backend] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional["BackendSpec"]:
        if not raw:
            return None
        kube = raw.get("kubernetes")
        s3 = raw.get("s3")
        return cls(
            secret_suffix=raw.get("secretSuffix"),
            in_cluster_config=raw.get("inClusterConfig"),
            inline=raw.get("inline"),
            backend_type=raw.get("backendType"),
            kubernetes=KubernetesBackend(
                secret_suffix=kube.get("secretSuffix"),
                namespace=kube.get("namespace"),
                config_secret=SecretSelector.from_dict(kube.get("configSecret")),
            ) if kube is not None else None,
            s3=S3Backend(
                bucket=s3.get("bucket", ""),
                key=s3.get("key", ""),
                region=s3.get("region"),
                shared_credentials_secret=SecretSelector.from_dict(
                    s3.get("sharedCredentialsSecret")),
            ) if s3 is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.secret_suffix is not None:
            out["secretSuffix"] = self.secret_suffix
        if self.in_cluster_config is not None:
            out["inClusterConfig"] = self.in_cluster_config
        if self.inline is not None:
            out["inline"] = self.inline
        if self.backend_type is not None:
            out["backendType"] = self.backend_type
        if self.kubernetes is not None:
            kube: Dict[str, Any] = {}
            if self.kubernetes.secret_suffix:
                kube["secretSuffix"] = self.kubernetes.secret_suffix
            if self.kubernetes.namespace:
                kube["namespace"] = self.kubernetes.namespace
            if self.kubernetes.config_secret:
                kube["configSecret"] = self.kubernetes.config_secret.to_dict()
            out["kubernetes"] = kube
        if self.s3 is not None:
            s3: Dict[str, Any] = {"bucket": self.s3.bucket, "key": self.s3.key}
            if self.s3.region:
                s3["region"] = self.s3.region
            if self.s3.shared_credentials_secret:
                s3["sharedCredentialsSecret"] = self.s3.shared_credentials_secret.to_dict()
            out["s3"] = s3
        return out


@dataclass
class Configuration:
    """
    The declarative resource describing infrastructure to provision.

    Exactly one of `hcl` / `remote` must be set; this is enforced by the
    TypeClassifier, not at construction time, so that invalid objects
    read from the store can still be reported on.
    """
    name: str
    namespace: str = "default"
    hcl: str = ""
    remote: str = ""
    path: str = ""
    backend: Optional[BackendSpec] = None
    region: str = ""
    provider_ref: Optional[Reference] = None
    force_delete: Optional[bool] = None
    inline_credentials: bool = False
    delete_resource: bool = True
    variable: Dict[str, Any] = field(default_factory=dict)
    generation: int = 1
    observed_generation: int = 0
    apply_state: str = ""
    apply_message: str = ""
    destroy_state: str = ""
    destroy_message: str = ""

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_manifest(cls, doc: Dict[str, Any]) -> "Configuration":
        """Builds a Configuration from a Kubernetes-shaped dictionary."""
        try:
            return cls._from_manifest(doc)
        except (AttributeError, TypeError, ValueError) as e:
            raise ValidationError(f"malformed Configuration manifest: {e}") from e

    @classmethod
    def _from_manifest(cls, doc: Dict[str, Any]) -> "Configuration":
        metadata = doc.get("metadata") or {}
        spec = doc.get("spec") or {}
        status = doc.get("status") or {}
        apply_status = status.get("apply") or {}
        destroy_status = status.get("destroy") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace") or "default",
            hcl=spec.get("hcl") or "",
            remote=spec.get("remote") or "",
            path=spec.get("path") or "",
            backend=BackendSpec.from_dict(spec.get("backend")),
            region=spec.get("customRegion") or spec.get("region") or "",
            provider_ref=Reference.from_dict(spec.get("providerRef")),
            force_delete=spec.get("forceDelete"),
            inline_credentials=bool(spec.get("inlineCredentials", False)),
            delete_resource=bool(spec.get("deleteResource", True)),
            variable=dict(spec.get("variable") or {}),
            generation=int(metadata.get("generation", 1)),
            observed_generation=int(status.get("observedGeneration", 0)),
            apply_state=apply_status.get("state", ""),
            apply_message=apply_status.get("message", ""),
            destroy_state=destroy_status.get("state", ""),
            destroy_message=destroy_status.get("message", ""),
        )

    def to_manifest(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {}
        if self.hcl:
            spec["hcl"] = self.hcl
        if self.remote:
            spec["remote"] = self.remote
        if self.path:
            spec["path"] = self.path
        if self.backend is not None:
            spec["backend"] = self.backend.to_dict()
        if self.region:
            spec["customRegion"] = self.region
        if self.provider_ref is not None:
            spec["providerRef"] = self.provider_ref.to_dict()
        if self.force_delete is not None:
            spec["forceDelete"] = self.force_delete
        if self.inline_credentials:
            spec["inlineCredentials"] = True
        spec["deleteResource"] = self.delete_resource
        if self.variable:
            spec["variable"] = copy.deepcopy(self.variable)

        doc: Dict[str, Any] = {
            "apiVersion": CONFIGURATION_API_VERSION,
            "kind": "Configuration",
            "metadata": {"name": self.name, "namespace": self.namespace,
                         "generation": self.generation},
            "spec": spec,
        }
        status: Dict[str, Any] = {}
        if self.observed_generation:
            status["observedGeneration"] = self.observed_generation
        if self.apply_state or self.apply_message:
            status["apply"] = {"state": self.apply_state, "message": self.apply_message}
        if self.destroy_state or self.destroy_message:
            status["destroy"] = {"state": self.destroy_state, "message": self.destroy_message}
        if status:
            doc["status"] = status
        return doc


@dataclass
class Provider:
    """External entity supplying credentials/region. Read-only here."""
    name: str
    namespace: str = DEFAULT_PROVIDER_NAMESPACE
    provider: str = ""
    region: str = ""
    state: str = ""

    @property
    def is_ready(self) -> bool:
        return self.state == ProviderState.READY.value

    @classmethod
    def from_manifest(cls, doc: Dict[str, Any]) -> "Provider":
        metadata = doc.get("metadata") or {}
        spec = doc.get("spec") or {}
        status = doc.get("status") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace") or DEFAULT_PROVIDER_NAMESPACE,
            provider=spec.get("provider", ""),
            region=spec.get("region", ""),
            state=status.get("state", ""),
        )

    def to_manifest(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "apiVersion": PROVIDER_API_VERSION,
            "kind": "Provider",
            "metadata": {"name": self.name, "namespace": self.namespace},
            "spec": {"provider": self.provider, "region": self.region},
        }
        if self.state:
            doc["status"] = {"state": self.state}
        return doc


@dataclass
class Secret:
    name: str
    namespace: str = "default"
    type: str = "Opaque"
    data: Dict[str, str] = field(default_factory=dict)          # base64 values, verbatim
    string_data: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    def same_payload(self, other: "Secret") -> bool:
        """True when type and data match; metadata is ignored."""
        return (self.type == other.type and self.data == other.data
                and self.string_data == other.string_data)

    @classmethod
    def from_manifest(cls, doc: Dict[str, Any]) -> "Secret":
        metadata = doc.get("metadata") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace") or "default",
            type=doc.get("type", "Opaque"),
            data={k: str(v) for k, v in (doc.get("data") or {}).items()},
            string_data={k: str(v) for k, v in (doc.get("stringData") or {}).items()},
            labels=dict(metadata.get("labels") or {}),
            annotations=dict(metadata.get("annotations") or {}),
        )

    def to_manifest(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.annotations:
            metadata["annotations"] = dict(self.annotations)
        doc: Dict[str, Any] = {
            "apiVersion": SECRET_API_VERSION,
            "kind": "Secret",
            "metadata": metadata,
            "type": self.type,
        }
        if self.data:
            doc["data"] = dict(self.data)
        if self.string_data:
            doc["stringData"] = dict(self.string_data)
        return doc


@dataclass(frozen=True)
class SecretReference:
    """
    A credential value the backend needs.

    `name` is the local secret name inside the Configuration's namespace;
    it may differ from `source_name` when the value is replicated in.
    """
    name: str
    source_namespace: str
    source_name: str
    key: str


@dataclass
class BackendDescriptor:
    """Derived on every render; never persisted on its own."""
    backend_type: str
    rendered_block: str
    use_custom: bool = False
    secrets: Dict[str, List[str]] = field(default_factory=dict)
