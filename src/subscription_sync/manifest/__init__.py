"""
Local manifest storage.
"""

from .manifest_store import ManifestStore

__all__ = [
    "ManifestStore"
]
