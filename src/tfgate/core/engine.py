#!/usr/bin/env python3
"""
TFGATE ENGINE - The Reconcile Orchestrator
------------------------------------------
Drives ResolutionPipeline passes and DeletionGate checks over the
Configurations of a resource store, converting component errors into
per-Configuration result records the way a control loop surfaces them
in status. Errors outside the TFGate taxonomy propagate.

Author: TFGate Team
Date: 2026-10-18
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from tfgate.core.errors import (
    BackendRenderError,
    PersistenceError,
    ProviderLookupError,
    ResourceNotFoundError,
    StoreError,
    TFGateError,
    ValidationError,
)
from tfgate.core.models import Configuration, ConfigurationState
from tfgate.core.settings import Settings
from tfgate.core.store import ManifestStore, ResourceStore
from tfgate.resolution.pipeline import ResolutionPipeline
from tfgate.rules.deletion import DeletionGate

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("tfgate.engine")

ERROR_STATUS = [
    (ValidationError, "VALIDATION_ERROR"),
    (BackendRenderError, "RENDER_ERROR"),
    (PersistenceError, "PERSISTENCE_ERROR"),
    (ProviderLookupError, "PROVIDER_ERROR"),
    (TFGateError, "ENGINE_ERROR"),
]


class ReconcileEngine:
    """
    Principal orchestrator. Holds the store and settings and exposes the
    operations the CLI (or an embedding control loop) calls.
    """

    def __init__(self, workspace_path: Optional[str] = None,
                 store: Optional[ResourceStore] = None,
                 settings: Optional[Settings] = None):
        if store is None:
            if workspace_path is None:
                raise ValueError("either workspace_path or store is required")
            store = ManifestStore(workspace_path)
        self.store = store
        self.settings = settings or Settings()
        self.pipeline = ResolutionPipeline(self.store, self.settings)
        self.gate = DeletionGate(self.store, self.settings.default_provider_name,
                                 self.settings.default_provider_namespace)

    def _fetch(self, namespace: str, name: str) -> Configuration:
        try:
            return self.store.get_configuration(namespace, name)
        except ResourceNotFoundError:
            logger.error(f"Unable to fetch Configuration {namespace}/{name}")
            raise

    def reconcile(self, namespace: str, name: str) -> Dict[str, Any]:
        """Runs one resolution pass and returns a result record."""
        try:
            configuration = self._fetch(namespace, name)
        except StoreError as e:
            return self._error(f"{namespace}/{name}", "NOT_FOUND", str(e))
        except ValidationError as e:
            logger.error(f"Configuration {namespace}/{name} is malformed: {e}")
            return self._error(f"{namespace}/{name}", "VALIDATION_ERROR", str(e))
        return self.reconcile_configuration(configuration)

    def reconcile_configuration(self, configuration: Configuration) -> Dict[str, Any]:
        try:
            context = self.pipeline.run(configuration)
        except TFGateError as e:
            status = next(label for cls, label in ERROR_STATUS if isinstance(e, cls))
            logger.error(f"Reconcile of {configuration.key} failed: {e}")
            return self._error(configuration.key, status, str(e))

        return {
            "key": configuration.key,
            "success": True,
            "status": "RESOLVED",
            "type": context.configuration_type.value,
            "backend_type": context.backend.backend_type,
            "use_custom": context.backend.use_custom,
            "secrets": context.backend.secrets,
            "region": context.region,
            "remote_url": context.remote_url,
            "rendered": context.rendered,
            "notes": context.notes,
            "timestamp": time.time(),
        }

    def reconcile_all(self, namespace: Optional[str] = None,
                      progress_callback: Optional[Callable[[int, int], None]] = None) -> List[Dict[str, Any]]:
        configurations = self.store.list_configurations(namespace)
        total = len(configurations)
        reports = []
        for processed, configuration in enumerate(configurations, 1):
            reports.append(self.reconcile_configuration(configuration))
            if progress_callback:
                progress_callback(processed, total)
        return reports

    def check_delete(self, namespace: str, name: str) -> Dict[str, Any]:
        """Consults the DeletionGate. ProviderLookupError propagates to the caller."""
        configuration = self._fetch(namespace, name)
        decision = self.gate.evaluate(configuration)
        logger.info(f"Delete check for {configuration.key}: {decision.outcome.value} ({decision.reason})")
        return {
            "key": configuration.key,
            "outcome": decision.outcome.value,
            "deletable": decision.deletable,
            "reason": decision.reason,
        }

    def generate_summary(self, reports: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not reports:
            return {"total": 0, "resolved": 0, "failed": 0, "success_rate": 0,
                    "secrets_referenced": 0, "regions_pinned": 0}

        total = len(reports)
        resolved = sum(1 for r in reports if r.get("success", False))
        return {
            "total": total,
            "resolved": resolved,
            "failed": total - resolved,
            "success_rate": resolved / total,
            "secrets_referenced": sum(len(r.get("secrets") or {}) for r in reports),
            "regions_pinned": sum(1 for r in reports
                                  if any(n.startswith("region pinned") for n in r.get("notes", []))),
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        }

    def _error(self, key: str, status: str, error: str) -> Dict[str, Any]:
        report = {"key": key, "status": status, "error": error, "success": False,
                  "type": "Unknown", "notes": []}
        if status == "VALIDATION_ERROR":
            # Apply state the control loop writes into status.apply
            report["state"] = ConfigurationState.VALIDATION_ERROR.value
        return report
