#!/usr/bin/env python3
"""
TFGATE RESOLUTION CONTEXT
-------------------------
The record of one reconciliation pass over a Configuration. Built fresh
by the ResolutionPipeline every time; nothing in it is cached between
passes.

Author: TFGate Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from typing import List, Optional

from tfgate.core.models import AuthoringMode, BackendDescriptor, Configuration, ConfigurationType


@dataclass
class ResolutionContext:
    configuration: Configuration
    mode: Optional[AuthoringMode] = None
    rendered: str = ""                               # Final Terraform text handed to the job
    backend: Optional[BackendDescriptor] = None
    region: str = ""
    remote_url: str = ""                             # Remote source after mirroring
    provider_found: bool = False
    notes: List[str] = field(default_factory=list)   # Human-readable decisions

    @property
    def configuration_type(self) -> Optional[ConfigurationType]:
        return self.mode.kind if self.mode is not None else None
