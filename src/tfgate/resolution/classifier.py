#!/usr/bin/env python3
"""
TFGATE TYPE CLASSIFIER
----------------------
Decides whether a Configuration is authored inline (HCL) or points at a
remote git source. The two fields are mutually exclusive and one of
them is required.

Author: TFGate Team
Date: 2026-10-18
"""

from tfgate.core.errors import ValidationError
from tfgate.core.models import AuthoringMode, Configuration, HCLSource, RemoteSource


def classify_source(hcl: str, remote: str, path: str = "") -> AuthoringMode:
    has_hcl = bool(hcl and hcl.strip())
    has_remote = bool(remote and remote.strip())

    if not has_hcl and not has_remote:
        raise ValidationError("spec.hcl or spec.remote should be set")
    if has_hcl and has_remote:
        raise ValidationError("spec.hcl and spec.remote could not be set at the same time")
    if has_hcl:
        return HCLSource(body=hcl)
    return RemoteSource(url=remote.strip(), path=path or "")


def classify(configuration: Configuration) -> AuthoringMode:
    """Returns the authoring mode of a Configuration or raises ValidationError."""
    return classify_source(configuration.hcl, configuration.remote, configuration.path)
