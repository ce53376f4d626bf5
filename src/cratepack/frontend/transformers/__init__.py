"""
Cratepack Tree Transformers
===========================

Lark transformers producing the structural tree.
"""

from .base import CrateTransformer

__all__ = [
    'CrateTransformer',
]
