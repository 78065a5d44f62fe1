#!/usr/bin/env python3
"""
TFGATE VALIDATOR - The Gatekeeper
---------------------------------
Pre-flight structural checks on raw manifests before the store turns
them into models. A manifest that fails here is skipped with a logged
reason instead of crashing the whole workspace load.

Author: TFGate Team
Date: 2026-10-18
"""

from typing import Any, Dict, Tuple
import logging
from ruamel.yaml.comments import CommentedMap

from tfgate.core.models import (
    CONFIGURATION_API_VERSION,
    PROVIDER_API_VERSION,
    SECRET_API_VERSION,
)

logger = logging.getLogger("tfgate.validator")

# Known kinds and the schema fragments the core relies on
CATALOG: Dict[str, Dict[str, Any]] = {
    "Configuration": {
        "apiVersions": [CONFIGURATION_API_VERSION, "terraform.core.oam.dev/v1beta1"],
        "fields": {
            "spec": {"type": "object"},
            "status": {"type": "object"},
        },
        "spec": {
            "hcl": "string", "remote": "string", "path": "string", "region": "string",
            "customRegion": "string", "backend": "object", "providerRef": "object",
            "variable": "object", "forceDelete": "boolean", "inlineCredentials": "boolean",
            "deleteResource": "boolean",
        },
        "nested": {
            "spec.backend.kubernetes": "object",
            "spec.backend.kubernetes.configSecret": "object",
            "spec.backend.s3": "object",
            "spec.backend.s3.sharedCredentialsSecret": "object",
            "status.apply": "object",
            "status.destroy": "object",
        },
    },
    "Provider": {
        "apiVersions": [PROVIDER_API_VERSION],
        "fields": {"spec": {"type": "object"}, "status": {"type": "object"}},
        "spec": {"provider": "string", "region": "string", "credentials": "object"},
    },
    "Secret": {
        "apiVersions": [SECRET_API_VERSION],
        "fields": {"data": {"type": "object"}, "stringData": {"type": "object"}},
        "spec": {},
        "nested": {"metadata.labels": "object", "metadata.annotations": "object"},
    },
}

_PY_TYPES = {
    "string": (str,),
    "object": (dict, CommentedMap),
    "boolean": (bool,),
}


class ManifestValidator:
    """
    Enforces the minimal shape every store object must have.
    """

    def __init__(self, catalog: Dict[str, Dict[str, Any]] = None):
        self.catalog = catalog or CATALOG
        self.required_fields = ["apiVersion", "kind", "metadata"]

    def is_known_kind(self, doc: Any) -> bool:
        return isinstance(doc, (dict, CommentedMap)) and doc.get("kind") in self.catalog

    def validate(self, doc: Any, strict: bool = False) -> Tuple[bool, str]:
        """
        Returns (valid, message). `strict` turns unknown spec fields into failures.
        """
        if not isinstance(doc, (dict, CommentedMap)):
            return False, "Manifest is not a mapping."

        for field in self.required_fields:
            if field not in doc:
                return False, f"Missing required top-level field '{field}'."

        kind = doc.get("kind")
        schema = self.catalog.get(kind)
        if not schema:
            return True, f"Kind '{kind}' is not managed by tfgate."

        if doc.get("apiVersion") not in schema["apiVersions"]:
            return False, f"Unsupported apiVersion '{doc.get('apiVersion')}' for {kind}."

        metadata = doc.get("metadata")
        if not isinstance(metadata, (dict, CommentedMap)) or not metadata.get("name"):
            return False, "metadata.name is required."

        for key, info in schema["fields"].items():
            if key in doc and doc[key] is not None and \
                    not isinstance(doc[key], _PY_TYPES[info["type"]]):
                return False, f"'{key}' must be a map/object."

        spec = doc.get("spec") or {}
        for key, value in spec.items():
            expected = schema["spec"].get(key)
            if expected is None:
                if strict:
                    return False, f"Unknown field 'spec.{key}'. Possible typo?"
                logger.debug(f"Ignoring unknown field spec.{key} on {kind} {metadata.get('name')}")
                continue
            if value is not None and not isinstance(value, _PY_TYPES[expected]):
                return False, f"'spec.{key}' must be of type {expected}."

        for path, expected in schema.get("nested", {}).items():
            value = self._lookup(doc, path)
            if value is not None and not isinstance(value, _PY_TYPES[expected]):
                return False, f"'{path}' must be of type {expected}."

        return True, "Manifest passes structural check."

    def _lookup(self, doc: Any, path: str) -> Any:
        """Follows a dotted path; None when any hop is missing or not a mapping."""
        node = doc
        for part in path.split("."):
            if not isinstance(node, (dict, CommentedMap)):
                return None
            node = node.get(part)
        return node
