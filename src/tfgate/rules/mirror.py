#!/usr/bin/env python3
"""
TFGATE SOURCE MIRROR
--------------------
Rewrites GitHub remote sources to their Gitee mirrors for clusters that
cannot reach GitHub. The restriction flag is passed in by the caller;
this module never looks at the environment.

Author: TFGate Team
Date: 2026-10-18
"""

import logging
from typing import Optional, Union

logger = logging.getLogger("tfgate.mirror")

GITHUB_PREFIX = "https://github.com/"
GITHUB_KUBEVELA_CONTRIB_PREFIX = "https://github.com/kubevela-contrib"
GITEE_TERRAFORM_SOURCE_ORG = "https://gitee.com/kubevela-terraform-source"
GITEE_PREFIX = "https://gitee.com/"

_TRUE = {"true", "t", "1", "yes", "y", "on"}
_FALSE = {"false", "f", "0", "no", "n", "off"}


def parse_bool(value: Union[bool, str, None]) -> Optional[bool]:
    """Standard boolean forms, case-insensitive. None when unparseable."""
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    lowered = str(value).strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    return None


def replace_source(remote: str, blocked: Union[bool, str, None]) -> str:
    """
    Returns the URL to fetch `remote` from, given whether GitHub is blocked.
    A malformed flag degrades to the original URL with a warning.
    """
    github_blocked = parse_bool(blocked)
    if github_blocked is None:
        logger.warning(f"The value of githubBlocked is not a boolean: {blocked!r}")
        return remote

    if not github_blocked or not remote or not remote.startswith(GITHUB_PREFIX):
        return remote

    if remote.startswith(GITHUB_KUBEVELA_CONTRIB_PREFIX):
        repo = GITEE_PREFIX + remote[len(GITHUB_PREFIX):]
        logger.info(f"New remote git source on Gitee: {repo}")
        return repo

    segments = remote[len(GITHUB_PREFIX):].split("/")
    if len(segments) != 2:
        logger.warning(f"Cannot map {remote} to a Gitee mirror; expected <org>/<repo>, "
                       f"keeping the original source")
        return remote

    repo = f"{GITEE_TERRAFORM_SOURCE_ORG}/{segments[1]}"
    logger.info(f"New remote git source on Gitee: {repo}")
    return repo
