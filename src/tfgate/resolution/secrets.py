#!/usr/bin/env python3
"""
TFGATE SECRET REPLICATOR
------------------------
Backend credentials may live in another namespace than the Configuration.
The Terraform job can only mount secrets from its own namespace, so every
cross-namespace reference is copied in under its local name.

The copy is an idempotent upsert: an existing target with the same
payload counts as success (a retried pass after a partial failure), an
existing target with a different payload is a conflict and is surfaced.

Author: TFGate Team
Date: 2026-10-18
"""

import logging
from typing import Dict, Iterable, List, Set, Tuple

from tfgate.core.errors import (
    ResourceExistsError,
    ResourceNotFoundError,
    SecretCreateConflictError,
    SecretNotFoundError,
)
from tfgate.core.models import Secret, SecretReference
from tfgate.core.store import ResourceStore

logger = logging.getLogger("tfgate.secrets")

REPLICATED_FROM_ANNOTATION = "tfgate.io/replicated-from"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"


class SecretReplicator:
    """
    Guarantees that referenced secrets exist in the target namespace.
    Never mutates or deletes a secret it did not create.
    """

    def __init__(self, store: ResourceStore):
        self.store = store

    def replicate(self, namespace: str, references: Iterable[SecretReference]) -> Dict[str, List[str]]:
        """
        Returns secret name -> referenced keys, in order of first appearance.
        """
        secret_map: Dict[str, List[str]] = {}
        done: Set[Tuple[str, str, str]] = set()

        for ref in references:
            secret_map.setdefault(ref.name, []).append(ref.key)

            if ref.source_namespace == namespace:
                continue

            identity = (ref.name, ref.source_namespace, ref.source_name)
            if identity in done:
                continue
            self._copy(namespace, ref)
            done.add(identity)

        return secret_map

    def _copy(self, namespace: str, ref: SecretReference):
        try:
            source = self.store.get_secret(ref.source_namespace, ref.source_name)
        except ResourceNotFoundError:
            raise SecretNotFoundError(ref.source_namespace, ref.source_name) from None

        # Payload travels verbatim; the original metadata does not
        replica = Secret(
            name=ref.name,
            namespace=namespace,
            type=source.type,
            data=dict(source.data),
            string_data=dict(source.string_data),
            labels={MANAGED_BY_LABEL: "tfgate"},
            annotations={REPLICATED_FROM_ANNOTATION: f"{ref.source_namespace}/{ref.source_name}"},
        )

        try:
            self.store.create_secret(replica)
        except ResourceExistsError:
            existing = self.store.get_secret(namespace, ref.name)
            if existing.same_payload(replica):
                logger.debug(f"Secret {namespace}/{ref.name} already replicated")
                return
            raise SecretCreateConflictError(namespace, ref.name) from None

        logger.info(f"Replicated secret {ref.source_namespace}/{ref.source_name} "
                    f"to {namespace}/{ref.name}")
