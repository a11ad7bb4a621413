"""
Rewrite support: provider variants and the best-effort Rewriter.
"""

from .rewriter import Rewriter

__all__ = ["Rewriter"]
