#!/usr/bin/env python3
"""
TFGATE DELETION GATE - The Safety Latch
---------------------------------------
Decides whether a Configuration may be removed right away or whether
the destroy pipeline has to run (or finish provisioning) first. The gate
errs on the side of Blocked: a Configuration is only Deletable when no
cloud resources can exist behind it, or the operator forces it.

Author: TFGate Team
Date: 2026-10-18
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tfgate.core.models import (
    DEFAULT_PROVIDER_NAME,
    DEFAULT_PROVIDER_NAMESPACE,
    MESSAGE_PROVISIONING_AND_CHECKING,
    Configuration,
    ConfigurationState,
    Provider,
    ProviderState,
)
from tfgate.core.store import ResourceStore
from tfgate.resolution.provider import find_provider

logger = logging.getLogger("tfgate.deletion")

REASON_NOT_CONFIRMED_SAFE = "resource state not confirmed safe; destroy must run before deletion"


class GateOutcome(str, Enum):
    DELETABLE = "Deletable"
    BLOCKED = "Blocked"


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    reason: str = ""

    @property
    def deletable(self) -> bool:
        return self.outcome is GateOutcome.DELETABLE


class DeletionGate:

    def __init__(self, store: ResourceStore,
                 default_provider_name: str = DEFAULT_PROVIDER_NAME,
                 default_provider_namespace: str = DEFAULT_PROVIDER_NAMESPACE):
        self.store = store
        self.default_provider_name = default_provider_name
        self.default_provider_namespace = default_provider_namespace

    def lookup_provider(self, configuration: Configuration) -> Optional[Provider]:
        return find_provider(self.store, configuration, self.default_provider_name,
                             self.default_provider_namespace)

    def evaluate(self, configuration: Configuration) -> GateDecision:
        if configuration.force_delete:
            return GateDecision(GateOutcome.DELETABLE, "force delete requested")

        if not configuration.inline_credentials:
            provider = self.lookup_provider(configuration)
            # No Provider, or one that never became ready, means nothing was provisioned
            if provider is None:
                return GateDecision(GateOutcome.DELETABLE, "provider not found")
            if provider.state == ProviderState.NOT_READY.value:
                return GateDecision(GateOutcome.DELETABLE, "provider is not ready")
            if configuration.apply_state == ConfigurationState.TERRAFORM_INIT_ERROR.value:
                return GateDecision(GateOutcome.DELETABLE, "terraform init never succeeded")

        if configuration.apply_state == ConfigurationState.PROVISIONING_AND_CHECKING.value:
            warning = ("Destroy could not complete and needs to wait for Provision to complete "
                       f"first: {MESSAGE_PROVISIONING_AND_CHECKING}")
            logger.warning(warning)
            return GateDecision(GateOutcome.BLOCKED, warning)

        return GateDecision(GateOutcome.BLOCKED, REASON_NOT_CONFIRMED_SAFE)

    def is_deletable(self, configuration: Configuration) -> bool:
        return self.evaluate(configuration).deletable
