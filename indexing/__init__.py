"""
Dispatch Ledger Indexing Module
===============================
In-memory height-balanced (AVL) tree used to index outstanding orders.

Components:
  - avl: AVLIndex with insert, delete, search, range scan, rank, successor
"""

from indexing.avl import AVLIndex, AVLNode

__all__ = ["AVLIndex", "AVLNode"]
