"""
DXTREE core data models (ID3 decision trees).

These models define training observations and the immutable tree structure
built from them. For the JSON contract with the frontend table editor, see
also shared.schemas.
"""

from backend.models.decision_tree import (
    BinaryNode,
    DecisionTreeNode,
    Encoding,
    LeafNode,
    MultiwayNode,
    Observation,
    TreeSummary,
    leaf_categories,
    summarize_tree,
    tree_depth,
)

__all__ = [
    "BinaryNode",
    "DecisionTreeNode",
    "Encoding",
    "LeafNode",
    "MultiwayNode",
    "Observation",
    "TreeSummary",
    "leaf_categories",
    "summarize_tree",
    "tree_depth",
]
