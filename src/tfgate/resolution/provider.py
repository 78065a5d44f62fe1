#!/usr/bin/env python3
"""
TFGATE PROVIDER LOOKUP
----------------------
Resolves the Provider a Configuration points at, falling back to the
well-known default reference when none is set.

Author: TFGate Team
Date: 2026-10-18
"""

from typing import Optional

from tfgate.core.errors import ProviderLookupError, ResourceNotFoundError, StoreError
from tfgate.core.models import (
    DEFAULT_PROVIDER_NAME,
    DEFAULT_PROVIDER_NAMESPACE,
    Configuration,
    Provider,
    Reference,
)
from tfgate.core.store import ResourceStore


def provider_reference(configuration: Configuration,
                       default_name: str = DEFAULT_PROVIDER_NAME,
                       default_namespace: str = DEFAULT_PROVIDER_NAMESPACE) -> Reference:
    if configuration.provider_ref is not None and configuration.provider_ref.name:
        return configuration.provider_ref
    return Reference(name=default_name, namespace=default_namespace)


def find_provider(store: ResourceStore, configuration: Configuration,
                  default_name: str = DEFAULT_PROVIDER_NAME,
                  default_namespace: str = DEFAULT_PROVIDER_NAMESPACE) -> Optional[Provider]:
    """None when the Provider does not exist; ProviderLookupError for any other failure."""
    ref = provider_reference(configuration, default_name, default_namespace)
    try:
        return store.get_provider(ref.namespace, ref.name)
    except ResourceNotFoundError:
        return None
    except StoreError as e:
        raise ProviderLookupError(f"failed to get Provider {ref.namespace}/{ref.name}: {e}") from e
