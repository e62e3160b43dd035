"""
Services module.

Credential rotation and batched lookups. The platform registry
(src.services.platforms) is imported directly since it depends on every
source module.
"""

from src.services.batch import fetch_in_batches
from src.services.key_rotator import KeyRotator

__all__ = [
    "KeyRotator",
    "fetch_in_batches",
]
