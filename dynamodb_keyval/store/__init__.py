"""
Store layer: the generic key-value client and its lazy result sequence.

store/ (this layer) -> codec/ (record <-> attributes) -> core/ (backend) -> DynamoDB
"""

from .keyval import KeyVal, create_keyval
from .sequence import ResultSequence

__all__ = [
    "KeyVal",
    "ResultSequence",
    "create_keyval",
]
