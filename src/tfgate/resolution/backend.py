#!/usr/bin/env python3
"""
TFGATE BACKEND RENDERER - The Assembler
---------------------------------------
Composes the Terraform backend block for a Configuration and merges it
with the user's configuration body.

Three backend flavours are understood:

1. Default   - state kept in a Kubernetes secret in the controller's
               backend namespace, one workspace per Configuration.
2. Inline    - the user supplies a raw `backend "<type>" {}` block.
3. Explicit  - a typed `kubernetes` or `s3` backend whose credentials
               are read from (possibly cross-namespace) secrets.

The backend block always comes after the user body so that it cannot be
shadowed by anything the user wrote.

Author: TFGate Team
Date: 2026-10-18
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from tfgate.core.errors import (
    BackendRenderError,
    SecretReplicationError,
    StoreError,
    ValidationError,
)
from tfgate.core.models import (
    AuthoringMode,
    BackendDescriptor,
    Configuration,
    HCLSource,
    RemoteSource,
    SecretReference,
    SecretSelector,
)
from tfgate.resolution.secrets import SecretReplicator

logger = logging.getLogger("tfgate.backend")

DEFAULT_BACKEND_TYPE = "kubernetes"
SUPPORTED_BACKEND_TYPES = ("kubernetes", "s3")
REPLICATED_SECRET_PREFIX = "tfgate-backend-"
CONFIG_SEPARATOR = "\n"

_BACKEND_TYPE_RE = re.compile(r'backend\s+"([^"]+)"')
_TERRAFORM_BLOCK_RE = re.compile(r'^\s*terraform\s*\{', re.MULTILINE)


@dataclass
class BackendBlock:
    """Result of composing the backend, before any secret is touched."""
    backend_type: str
    hcl: str
    use_custom: bool = False
    secret_refs: List[SecretReference] = field(default_factory=list)


def replicated_secret_name(source_namespace: str, source_name: str) -> str:
    """Local name for a cross-namespace copy, unique per source namespace and name."""
    digest = hashlib.sha256(f"{source_namespace}/{source_name}".encode()).hexdigest()[:8]
    return f"{REPLICATED_SECRET_PREFIX}{source_name}-{digest}"


def _quote(value: str) -> str:
    return '"' + str(value).replace('\\', '\\\\').replace('"', '\\"') + '"'


def _terraform_block(backend_type: str, attributes: List[Tuple[str, str]]) -> str:
    width = max((len(k) for k, _ in attributes), default=0)
    lines = [f"    {k.ljust(width)} = {v}" for k, v in attributes]
    return "\n".join(
        ["terraform {", f"  backend {_quote(backend_type)} {{"] + lines + ["  }", "}", ""]
    )


class BackendPolicy:
    """
    Pure composition of the backend block from a Configuration's spec.
    """

    def __init__(self, secret_mount_path: str = "/tfgate-backend-secret"):
        self.secret_mount_path = secret_mount_path.rstrip("/")

    def compose(self, configuration: Configuration, backend_namespace: str) -> BackendBlock:
        spec = configuration.backend
        if spec is not None and spec.in_cluster_config is False:
            raise ValidationError("spec.backend.inClusterConfig only accepts true")
        if spec is None or (not spec.inline and not spec.backend_type):
            return self._default(configuration, backend_namespace)

        if spec.inline and spec.backend_type:
            raise ValidationError("spec.backend.inline and spec.backend.backendType "
                                  "could not be set at the same time")
        if spec.inline:
            return self._inline(spec.inline)
        return self._explicit(configuration, backend_namespace)

    def _default(self, configuration: Configuration, backend_namespace: str) -> BackendBlock:
        spec = configuration.backend
        suffix = (spec.secret_suffix if spec and spec.secret_suffix else configuration.name)
        hcl = _terraform_block(DEFAULT_BACKEND_TYPE, [
            ("secret_suffix", _quote(suffix)),
            ("in_cluster_config", "true"),
            ("namespace", _quote(backend_namespace)),
        ])
        return BackendBlock(backend_type=DEFAULT_BACKEND_TYPE, hcl=hcl, use_custom=False)

    def _inline(self, inline: str) -> BackendBlock:
        match = _BACKEND_TYPE_RE.search(inline)
        if not match:
            raise ValidationError("spec.backend.inline does not contain a backend block")
        hcl = inline.strip() + "\n"
        if not _TERRAFORM_BLOCK_RE.search(hcl):
            body = "\n".join("  " + line if line else line for line in hcl.rstrip("\n").splitlines())
            hcl = "terraform {\n" + body + "\n}\n"
        return BackendBlock(backend_type=match.group(1), hcl=hcl, use_custom=True)

    def _explicit(self, configuration: Configuration, backend_namespace: str) -> BackendBlock:
        spec = configuration.backend
        backend_type = spec.backend_type
        if backend_type not in SUPPORTED_BACKEND_TYPES:
            raise ValidationError(f"backend type {backend_type!r} is not supported; "
                                  f"choose one of {', '.join(SUPPORTED_BACKEND_TYPES)}")

        refs: List[SecretReference] = []
        if backend_type == "kubernetes":
            kube = spec.kubernetes
            if kube is None:
                raise ValidationError("spec.backend.kubernetes is required for backend type kubernetes")
            attributes = [
                ("secret_suffix", _quote(kube.secret_suffix or configuration.name)),
                ("namespace", _quote(kube.namespace or backend_namespace)),
            ]
            if kube.config_secret:
                ref = self._reference(configuration, kube.config_secret)
                refs.append(ref)
                attributes.append(("config_path", _quote(self._mounted(ref))))
            else:
                attributes.append(("in_cluster_config", "true"))
        else:
            s3 = spec.s3
            if s3 is None or not s3.bucket or not s3.key:
                raise ValidationError("spec.backend.s3.bucket and spec.backend.s3.key are required "
                                      "for backend type s3")
            attributes = [("bucket", _quote(s3.bucket)), ("key", _quote(s3.key))]
            region = s3.region or configuration.region
            if region:
                attributes.append(("region", _quote(region)))
            if s3.shared_credentials_secret:
                ref = self._reference(configuration, s3.shared_credentials_secret)
                refs.append(ref)
                attributes.append(("shared_credentials_file", _quote(self._mounted(ref))))

        return BackendBlock(backend_type=backend_type, hcl=_terraform_block(backend_type, attributes),
                            use_custom=True, secret_refs=refs)

    def _reference(self, configuration: Configuration, selector: SecretSelector) -> SecretReference:
        if not selector.name or not selector.key:
            raise ValidationError("backend secret references need both name and key")
        source_ns = selector.namespace or configuration.namespace
        if source_ns == configuration.namespace:
            local_name = selector.name
        else:
            local_name = replicated_secret_name(source_ns, selector.name)
        return SecretReference(name=local_name, source_namespace=source_ns,
                               source_name=selector.name, key=selector.key)

    def _mounted(self, ref: SecretReference) -> str:
        return f"{self.secret_mount_path}/{ref.name}/{ref.key}"


class BackendRenderer:
    """
    Produces the final configuration text plus its BackendDescriptor.
    Either both are returned or a BackendRenderError is raised.
    """

    def __init__(self, replicator: SecretReplicator, policy: Optional[BackendPolicy] = None):
        self.replicator = replicator
        self.policy = policy or BackendPolicy()

    def render(self, configuration: Configuration, backend_namespace: str,
               mode: AuthoringMode) -> Tuple[str, BackendDescriptor]:
        try:
            block = self.policy.compose(configuration, backend_namespace)
        except ValidationError as e:
            raise BackendRenderError(
                f"failed to prepare Terraform backend configuration: {e}") from e

        try:
            secret_map = self.replicator.replicate(configuration.namespace, block.secret_refs)
        except (SecretReplicationError, StoreError) as e:
            raise BackendRenderError(
                f"failed to prepare backend secrets for {configuration.key}: {e}") from e

        descriptor = BackendDescriptor(
            backend_type=block.backend_type,
            rendered_block=block.hcl,
            use_custom=block.use_custom,
            secrets=secret_map,
        )

        if isinstance(mode, HCLSource):
            completed = mode.body + CONFIG_SEPARATOR + block.hcl
        elif isinstance(mode, RemoteSource):
            # The remote module is fetched and merged by the job, not here
            completed = block.hcl
        else:
            raise BackendRenderError(f"Unsupported Configuration Type: {mode!r}")

        logger.debug(f"Rendered {block.backend_type} backend for {configuration.key} "
                     f"(custom={block.use_custom}, secrets={list(secret_map)})")
        return completed, descriptor
