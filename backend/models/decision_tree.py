"""
ID3 decision tree data model for DXTREE.

Observations are labeled training examples; the tree is a tagged union of
leaf and question nodes. Two attribute encodings are supported:

- binary: attributes are opaque tokens an observation either exhibits or not
- multiway: attributes are named and take one of several discrete values

All models are Pydantic v2, frozen after construction, and support JSON
schema generation. Trees are never persisted; they are rebuilt from the
training set on every prediction.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, field_serializer, field_validator


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class Encoding(str, Enum):
    """How observation attributes and answers are encoded."""

    BINARY = "binary"
    MULTIWAY = "multiway"


# -----------------------------------------------------------------------------
# Observation
# -----------------------------------------------------------------------------


class Observation(BaseModel):
    """
    One labeled training example.

    - attributes: tokens the example exhibits (binary scheme)
    - values: attribute name -> value (multiway scheme), read-only after validation
    """

    category: str = Field(..., description="Label carried by this example (e.g. a disease name)")
    attributes: frozenset[str] = Field(
        default_factory=frozenset,
        description="Attribute tokens exhibited by the example (binary scheme)",
    )
    values: dict[str, str] = Field(
        default_factory=dict,
        description="Attribute name -> value (multiway scheme)",
    )

    model_config = {"frozen": True}

    @field_validator("values", mode="after")
    @classmethod
    def _read_only_values(cls, values: dict[str, str]) -> MappingProxyType:
        return MappingProxyType(values)

    @field_serializer("values", mode="wrap")
    def _dump_values(self, values: MappingProxyType, handler: SerializerFunctionWrapHandler) -> dict[str, str]:
        return handler(dict(values))

    def value_of(self, attribute: str, encoding: Encoding) -> Optional[Union[bool, str]]:
        """Partition key of this example for `attribute`; None when a multiway value is absent."""
        if encoding == Encoding.BINARY:
            return attribute in self.attributes
        return self.values.get(attribute)


# -----------------------------------------------------------------------------
# Tree nodes
# -----------------------------------------------------------------------------


class LeafNode(BaseModel):
    """Terminal node carrying the predicted category."""

    kind: Literal["leaf"] = "leaf"
    category: str = Field(..., description="Predicted label")

    model_config = {"frozen": True}


class BinaryNode(BaseModel):
    """Question node of the binary scheme: does the subject exhibit the token?"""

    kind: Literal["binary"] = "binary"
    attribute_of_question: str = Field(..., description="Token asked about at this node")
    yes: "DecisionTreeNode" = Field(..., description="Subtree when the token is present")
    no: "DecisionTreeNode" = Field(..., description="Subtree when the token is absent")

    model_config = {"frozen": True}


class MultiwayNode(BaseModel):
    """
    Question node of the multiway scheme.

    children maps every value observed for the attribute in the training
    subset to its subtree, in order of first observation. The first child is
    the fallback for missing or unseen answers. The mapping is read-only so a
    tree can be shared between predictions.
    """

    kind: Literal["multiway"] = "multiway"
    attribute_of_question: str = Field(..., description="Attribute name asked about at this node")
    children: dict[str, "DecisionTreeNode"] = Field(
        default_factory=dict,
        description="Observed value -> subtree",
    )

    model_config = {"frozen": True}

    @field_validator("children", mode="after")
    @classmethod
    def _read_only_children(cls, children: dict[str, Any]) -> MappingProxyType:
        return MappingProxyType(children)

    @field_serializer("children", mode="wrap")
    def _dump_children(self, children: MappingProxyType, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        return handler(dict(children))


DecisionTreeNode = Annotated[
    Union[LeafNode, BinaryNode, MultiwayNode],
    Field(discriminator="kind"),
]

BinaryNode.model_rebuild()
MultiwayNode.model_rebuild()


# -----------------------------------------------------------------------------
# Tree-level summaries
# -----------------------------------------------------------------------------


def tree_depth(node: Any) -> int:
    """Number of questions on the longest root-to-leaf path."""
    if isinstance(node, LeafNode):
        return 0
    if isinstance(node, BinaryNode):
        return 1 + max(tree_depth(node.yes), tree_depth(node.no))
    if not node.children:
        return 1
    return 1 + max(tree_depth(c) for c in node.children.values())


def leaf_categories(node: Any) -> list[str]:
    """Categories of all leaves, left to right (duplicates kept)."""
    if isinstance(node, LeafNode):
        return [node.category]
    if isinstance(node, BinaryNode):
        return leaf_categories(node.yes) + leaf_categories(node.no)
    out: list[str] = []
    for child in node.children.values():
        out.extend(leaf_categories(child))
    return out


class TreeSummary(BaseModel):
    """Shape summary of a built tree, returned alongside its JSON form."""

    encoding: Encoding
    depth: int = Field(..., ge=0)
    leaves: int = Field(..., ge=1)
    categories: list[str] = Field(default_factory=list, description="Distinct leaf categories")
    root_question: Optional[str] = Field(None, description="Attribute asked at the root, if any")


def summarize_tree(node: Any, encoding: Encoding) -> TreeSummary:
    leaves = leaf_categories(node)
    return TreeSummary(
        encoding=encoding,
        depth=tree_depth(node),
        leaves=len(leaves),
        categories=list(dict.fromkeys(leaves)),
        root_question=None if isinstance(node, LeafNode) else node.attribute_of_question,
    )
