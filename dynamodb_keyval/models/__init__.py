from .base import Identity, KeyValModel, extract_key_metadata

__all__ = [
    "Identity",
    "KeyValModel",
    "extract_key_metadata",
]
