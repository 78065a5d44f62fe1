#!/usr/bin/env python3
"""
TFGATE REGION RESOLVER
----------------------
Pins the cloud region of a Configuration the first time it is resolved.
Once set, the region is never overwritten, so a later edit to the
Provider cannot move an already-provisioned Configuration.

Author: TFGate Team
Date: 2026-10-18
"""

import logging

from tfgate.core.errors import PersistenceError, StoreError
from tfgate.core.models import Configuration, Provider
from tfgate.core.store import ResourceStore

logger = logging.getLogger("tfgate.region")


class RegionResolver:

    def __init__(self, store: ResourceStore):
        self.store = store

    def resolve(self, configuration: Configuration, provider: Provider) -> str:
        """
        Returns the effective region. A region already on `configuration`
        wins. Otherwise the Provider's region is written back when the stored
        copy has none yet; the caller's object is only updated after the
        write has been committed.
        """
        if configuration.region:
            return configuration.region

        try:
            latest = self.store.get_configuration(configuration.namespace, configuration.name)
        except StoreError as e:
            raise PersistenceError(f"failed to get configuration {configuration.key}: {e}") from e

        if latest.region:
            configuration.region = latest.region
            return latest.region

        if not provider.region:
            logger.warning(f"Provider {provider.namespace}/{provider.name} has no region; "
                           f"leaving {configuration.key} unpinned")
            return ""

        latest.region = provider.region
        try:
            self.store.update_configuration(latest)
        except StoreError as e:
            raise PersistenceError(
                f"failed to persist region {provider.region!r} on {configuration.key}: {e}") from e

        logger.info(f"Pinned region {provider.region} on {configuration.key}")
        configuration.region = provider.region
        return provider.region
