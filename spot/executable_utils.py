"""Executable discovery utilities for Spot.

This module provides utility functions for finding external programs such as
pandoc, supporting both an explicit override through an environment variable
and system PATH lookups.

Functions:
    find_executable: Locate an executable by override or in PATH.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def find_executable(name: str, env_var: str | None = None) -> str | None:
    """Find an executable by environment override or in PATH.

    An existing file named by ``env_var`` wins over the PATH lookup.

    Args:
        name: Name of the executable to find (e.g., 'pandoc').
        env_var: Optional environment variable holding an explicit path.

    Returns:
        Full path to the executable if found, None otherwise.

    Examples:
        >>> find_executable('pandoc')  # System PATH lookup
        '/usr/bin/pandoc'

        >>> find_executable('pandoc', 'SPOT_PANDOC')  # With override
        '/opt/pandoc/bin/pandoc'
    """
    if env_var:
        override = os.environ.get(env_var)
        if override and Path(override).is_file():
            return override

    return shutil.which(name)
