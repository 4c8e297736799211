"""Torsion trees for flexible molecules, packed triangular indexing and progress reporting."""

__version__ = "0.1.0"
__all__ = ["progress", "tree", "triangular"]