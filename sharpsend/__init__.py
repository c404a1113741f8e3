"""Top‑level package for the SharpSend segmentation service.

SharpSend maps newsletter subscribers onto a fixed master taxonomy, packs
each subscriber's position into a single integer *fingerprint* and renders
that fingerprint as tags for the email service providers a publisher uses.
Individual subpackages handle specific concerns: the taxonomy and codec,
platform tag adapters, persistence of segment mappings, frame analytics and
the HTTP API.

The ``__all__`` variable enumerates the primary public modules for
convenience when using ``from sharpsend import ...``.
"""

from __future__ import annotations

__all__ = [
    "app",
    "config",
    "segmentation",
    "platforms",
    "storage",
    "analytics",
    "api",
]

# SemVer version of the package
__version__: str = "0.1.0"
