#!/usr/bin/env python3
"""
TFGATE SETTINGS
---------------
Controller-level configuration. Values are resolved once at the edge
(CLI or embedding process) and passed explicitly into the components;
nothing below this module reads the process environment.

Precedence: defaults < settings file < environment < explicit overrides.

Author: TFGate Team
Date: 2026-10-18
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from tfgate.core.errors import ValidationError
from tfgate.core.models import DEFAULT_PROVIDER_NAME, DEFAULT_PROVIDER_NAMESPACE

logger = logging.getLogger("tfgate.settings")

ENV_MAPPING = {
    "TERRAFORM_BACKEND_NAMESPACE": "backend_namespace",
    "GITHUB_BLOCKED": "github_blocked",
    "DEFAULT_PROVIDER_NAME": "default_provider_name",
    "DEFAULT_PROVIDER_NAMESPACE": "default_provider_namespace",
}


@dataclass(frozen=True)
class Settings:
    backend_namespace: str = "vela-system"
    # Kept as the raw string; SourceMirror decides how to parse it
    github_blocked: str = "false"
    default_provider_name: str = DEFAULT_PROVIDER_NAME
    default_provider_namespace: str = DEFAULT_PROVIDER_NAMESPACE
    secret_mount_path: str = "/tfgate-backend-secret"

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Returns a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 base: Optional["Settings"] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        found = {attr: environ[var] for var, attr in ENV_MAPPING.items() if var in environ}
        if found:
            logger.debug(f"Settings taken from environment: {sorted(found)}")
        return (base or cls()).with_overrides(**found)

    @classmethod
    def from_file(cls, path: str) -> "Settings":
        """Loads a YAML settings file. Keys use the dataclass field names."""
        try:
            raw = YAML(typ='safe').load(Path(path).read_text(encoding='utf-8'))
        except (OSError, YAMLError) as e:
            raise ValidationError(f"Unable to load settings from {path}: {e}") from e

        raw = raw or {}
        if not isinstance(raw, dict):
            raise ValidationError(f"Settings file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValidationError(f"Unknown settings in {path}: {', '.join(sorted(unknown))}")
        values: Dict[str, Any] = {k: str(v) if k == "github_blocked" else v for k, v in raw.items()}
        return cls().with_overrides(**values)

    @classmethod
    def load(cls, path: Optional[str] = None,
             environ: Optional[Mapping[str, str]] = None) -> "Settings":
        base = cls.from_file(path) if path else cls()
        return cls.from_env(environ, base=base)
