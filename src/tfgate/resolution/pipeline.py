#!/usr/bin/env python3
"""
TFGATE RESOLUTION PIPELINE - The Conductor
------------------------------------------
Runs one reconciliation pass over a Configuration in a fixed order and
records every result in a ResolutionContext:

  classify -> mirror remote source -> render backend -> pin region

Any TFGateError aborts the pass; the context is only returned once every
phase has succeeded, so callers never see a half-rendered Configuration.

Author: TFGate Team
Date: 2026-10-18
"""

import logging
from typing import Optional

from tfgate.core.models import Configuration, RemoteSource
from tfgate.core.settings import Settings
from tfgate.core.store import ResourceStore
from tfgate.resolution.backend import BackendPolicy, BackendRenderer
from tfgate.resolution.classifier import classify
from tfgate.resolution.context import ResolutionContext
from tfgate.resolution.provider import find_provider
from tfgate.resolution.region import RegionResolver
from tfgate.resolution.secrets import SecretReplicator
from tfgate.rules.mirror import replace_source

logger = logging.getLogger("tfgate.pipeline")


class ResolutionPipeline:

    def __init__(self, store: ResourceStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or Settings()
        self.replicator = SecretReplicator(store)
        self.renderer = BackendRenderer(self.replicator,
                                        BackendPolicy(self.settings.secret_mount_path))
        self.region_resolver = RegionResolver(store)

    def run(self, configuration: Configuration) -> ResolutionContext:
        context = ResolutionContext(configuration=configuration)

        # --- PHASE 1: AUTHORING MODE ---
        context.mode = classify(configuration)

        # --- PHASE 2: REMOTE SOURCE MIRRORING ---
        if isinstance(context.mode, RemoteSource):
            context.remote_url = replace_source(context.mode.url, self.settings.github_blocked)
            if context.remote_url != context.mode.url:
                context.notes.append(f"remote source mirrored to {context.remote_url}")

        # --- PHASE 3: BACKEND RENDERING ---
        context.rendered, context.backend = self.renderer.render(
            configuration, self.settings.backend_namespace, context.mode)

        # --- PHASE 4: REGION PINNING ---
        if configuration.inline_credentials:
            context.region = configuration.region
            context.notes.append("inline credentials: provider region not consulted")
        else:
            provider = find_provider(self.store, configuration,
                                     self.settings.default_provider_name,
                                     self.settings.default_provider_namespace)
            context.provider_found = provider is not None
            if provider is None:
                context.region = configuration.region
                context.notes.append("provider not found: region left as configured")
            else:
                before = configuration.region
                context.region = self.region_resolver.resolve(configuration, provider)
                if context.region and context.region != before:
                    context.notes.append(f"region pinned to {context.region}")

        logger.info(f"Resolved {configuration.key}: type={context.configuration_type.value} "
                    f"backend={context.backend.backend_type} region={context.region or '-'}")
        return context
