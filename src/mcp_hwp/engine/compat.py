"""python-hwpx compatibility shim."""

from __future__ import annotations

import builtins
from xml.etree import ElementTree


def ensure_hwpx_compat() -> None:
    """Some python-hwpx releases reference a module level ``ET`` they never import."""
    if not hasattr(builtins, "ET"):
        builtins.ET = ElementTree
