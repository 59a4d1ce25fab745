"""
Test helpers for the key-value client.

Record types used across unit and integration tests, together with their
codecs built once at import time.
"""

from .models import (
    PERSON_CODEC,
    RUN_CODEC,
    SAMPLE_CODEC,
    Level,
    Person,
    Run,
    Sample,
)

__all__ = [
    'PERSON_CODEC',
    'RUN_CODEC',
    'SAMPLE_CODEC',
    'Level',
    'Person',
    'Run',
    'Sample',
]
