#!/usr/bin/env python3
"""
TFGATE ERRORS
-------------
Exception taxonomy shared by the resolution and gating components.
Store-level errors describe what the resource store reported; the
component errors describe what that means for a reconciliation pass.

Author: TFGate Team
Date: 2026-10-18
"""


class TFGateError(Exception):
    """Base class for every error surfaced by the TFGate core."""


class ValidationError(TFGateError):
    """Mutually exclusive or missing fields. Never retried."""


class BackendRenderError(TFGateError):
    """Backend composition or secret replication failed. Safe to retry."""


class SecretReplicationError(TFGateError):
    pass


class SecretNotFoundError(SecretReplicationError):
    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        super().__init__(f"backend secret {namespace}/{name} not found")


class SecretCreateConflictError(SecretReplicationError):
    def __init__(self, namespace: str, name: str):
        self.namespace = namespace
        self.name = name
        super().__init__(
            f"secret {namespace}/{name} already exists with different content"
        )


class PersistenceError(TFGateError):
    """A write-back to the resource store could not be committed."""


class ProviderLookupError(TFGateError):
    """Provider lookup failed for a reason other than not-found."""


# --- RESOURCE STORE ERRORS ---

class StoreError(Exception):
    """Raised by a ResourceStore when a request cannot be served."""


class ResourceNotFoundError(StoreError):
    def __init__(self, kind: str, namespace: str, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} not found")


class ResourceExistsError(StoreError):
    def __init__(self, kind: str, namespace: str, name: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        super().__init__(f"{kind} {namespace}/{name} already exists")
