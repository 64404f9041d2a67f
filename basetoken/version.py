"""
basetoken.version — the installed version and what `basetoken version` prints.

The version is read from the distribution metadata written by pip from
pyproject.toml, so there is a single place to bump it. A source checkout
that was never installed reports `0.0.0+source`.
"""

from __future__ import annotations

import platform
from functools import lru_cache
from importlib import metadata as importlib_metadata
from typing import Dict

from .stdlib.token.permit import DOMAIN_TAG

DIST_NAME = "basetoken"
UNINSTALLED_VERSION = "0.0.0+source"


def _dist_version(dist_name: str) -> str:
    try:
        return importlib_metadata.version(dist_name)
    except importlib_metadata.PackageNotFoundError:
        return UNINSTALLED_VERSION


__version__ = _dist_version(DIST_NAME)


@lru_cache(maxsize=1)
def version_metadata() -> Dict[str, str]:
    """
    Version info for `basetoken version` and diagnostics.

    Keys:
        version       -> this package
        cryptography  -> the Ed25519 backend used for permits
        python        -> interpreter version
        permit_domain -> domain tag mixed into every permit digest
    """
    return {
        "version": __version__,
        "cryptography": _dist_version("cryptography"),
        "python": platform.python_version(),
        "permit_domain": DOMAIN_TAG.decode("ascii"),
    }


__all__ = ["__version__", "DIST_NAME", "version_metadata"]
