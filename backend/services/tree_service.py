"""
ID3 decision tree builder and predictor.

- build_tree: recursive partitioning driven by information gain, with
  explicit base cases (empty subset, pure subset, vocabulary exhausted).
- predict / trace_prediction: walk a built tree with an answer set, falling
  back to the first child when a multiway answer is missing or unseen.
- get_probable_result: build + predict in one call (the engine entry point).

Trees are immutable values; predictions never mutate them and may run
concurrently against one tree.
"""

import logging
from collections.abc import Mapping
from typing import Any, Collection, Iterable, Optional, Sequence, Union

from pydantic import BaseModel, Field

from backend.models.decision_tree import (
    BinaryNode,
    DecisionTreeNode,
    Encoding,
    LeafNode,
    MultiwayNode,
    Observation,
)
from backend.services.entropy_service import best_attribute, label_counts, partition

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "unknown"
TOKEN_SEPARATOR = "_"

AnswerSet = Union[Collection[str], Mapping[str, str]]


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


class InsufficientDataError(ValueError):
    """The training set is empty at the root; there is nothing to learn from."""


class EncodingMismatchError(ValueError):
    """An answer set was evaluated against a tree built with the other encoding."""


# -----------------------------------------------------------------------------
# Vocabulary and majority
# -----------------------------------------------------------------------------


def attribute_vocabulary(training_set: Iterable[Observation], encoding: Encoding) -> tuple[str, ...]:
    """Every distinct token (binary) or attribute name (multiway), in order of first appearance."""
    seen: dict[str, None] = {}
    for obs in training_set:
        names = sorted(obs.attributes) if encoding == Encoding.BINARY else obs.values.keys()
        for name in names:
            seen.setdefault(name, None)
    return tuple(seen)


def majority_category(counts: Mapping[str, int]) -> str:
    """Most frequent category; ties go to the category observed first."""
    best: Optional[str] = None
    best_count = 0
    for category, count in counts.items():
        if count > best_count:
            best, best_count = category, count
    if best is None:
        raise InsufficientDataError("No categories to choose a majority from")
    return best


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------


def build_tree(
    training_set: Sequence[Observation],
    vocabulary: Optional[Iterable[str]] = None,
    encoding: Encoding = Encoding.BINARY,
) -> DecisionTreeNode:
    """
    Build an ID3 tree.

    vocabulary defaults to every attribute present in the training set; its
    order decides gain ties. Raises InsufficientDataError on an empty set.
    """
    observations = list(training_set)
    if not observations:
        raise InsufficientDataError("Cannot build a decision tree from an empty training set")
    if vocabulary is None:
        vocab = attribute_vocabulary(observations, encoding)
    else:
        vocab = tuple(dict.fromkeys(vocabulary))
    logger.debug("Building %s tree: %d observations, %d attributes", encoding.value, len(observations), len(vocab))
    return _build(observations, vocab, encoding, parent_majority=None)


def _build(
    subset: list[Observation],
    vocabulary: tuple[str, ...],
    encoding: Encoding,
    parent_majority: Optional[str],
) -> DecisionTreeNode:
    # Only reachable below the root: the parent passes its own majority down
    if not subset:
        return LeafNode(category=parent_majority)

    first = subset[0].category
    if all(obs.category == first for obs in subset):
        return LeafNode(category=first)

    majority = majority_category(label_counts(subset))
    if not vocabulary:
        return LeafNode(category=majority)

    attribute = best_attribute(subset, vocabulary, encoding)
    remaining = tuple(a for a in vocabulary if a != attribute)
    groups = partition(subset, attribute, encoding)

    if encoding == Encoding.BINARY:
        return BinaryNode(
            attribute_of_question=attribute,
            yes=_build(groups[True], remaining, encoding, majority),
            no=_build(groups[False], remaining, encoding, majority),
        )

    if not groups:
        # Nobody in this subset answers the attribute; asking it cannot help
        logger.debug("Attribute %r has no values in subset of %d; skipping", attribute, len(subset))
        return _build(subset, remaining, encoding, parent_majority)

    return MultiwayNode(
        attribute_of_question=attribute,
        children={value: _build(members, remaining, encoding, majority) for value, members in groups.items()},
    )


# -----------------------------------------------------------------------------
# Predictor
# -----------------------------------------------------------------------------


class QuestionStep(BaseModel):
    """One question asked while walking the tree."""

    attribute: str = Field(..., description="Attribute asked at this node")
    answer: Optional[Union[bool, str]] = Field(None, description="Answer found in the answer set, if any")
    branch: str = Field(..., description="Branch taken ('yes'/'no' or a value)")
    fallback: bool = Field(False, description="True when the answer was missing or unseen during training")


class PredictionTrace(BaseModel):
    """Prediction plus the questions asked on the way to the leaf."""

    category: str
    path: list[QuestionStep] = Field(default_factory=list)


def trace_prediction(tree: DecisionTreeNode, answers: AnswerSet) -> PredictionTrace:
    """Walk the tree from the root to a leaf, recording every question."""
    node: Any = tree
    path: list[QuestionStep] = []
    tokens: Optional[frozenset[str]] = None

    while not isinstance(node, LeafNode):
        if isinstance(node, BinaryNode):
            if isinstance(answers, Mapping):
                raise EncodingMismatchError("Binary tree needs a set of attribute tokens, got a mapping")
            if tokens is None:
                tokens = frozenset(answers)
            present = node.attribute_of_question in tokens
            path.append(QuestionStep(attribute=node.attribute_of_question, answer=present, branch="yes" if present else "no"))
            node = node.yes if present else node.no
            continue

        if not isinstance(answers, Mapping):
            raise EncodingMismatchError("Multiway tree needs an attribute -> value mapping")
        attribute = node.attribute_of_question
        value = answers.get(attribute)
        if value is not None and value in node.children:
            path.append(QuestionStep(attribute=attribute, answer=value, branch=value))
            node = node.children[value]
            continue

        # Missing answer and value unseen in training take the same branch
        branch = next(iter(node.children))
        logger.debug("No usable answer for %r (got %r); falling back to %r", attribute, value, branch)
        path.append(QuestionStep(attribute=attribute, answer=value, branch=branch, fallback=True))
        node = node.children[branch]

    return PredictionTrace(category=node.category, path=path)


def predict(tree: DecisionTreeNode, answers: AnswerSet) -> str:
    """Category of the leaf reached with `answers`."""
    return trace_prediction(tree, answers).category


# -----------------------------------------------------------------------------
# Multiway -> binary adapter
# -----------------------------------------------------------------------------


def pair_token(attribute: str, value: str) -> str:
    """Binary-scheme token for an (attribute, value) pair, e.g. 'Fever_strong'."""
    return f"{attribute}{TOKEN_SEPARATOR}{value}"


def pairs_to_tokens(pairs: Mapping[str, str], omit_value: Optional[str] = None) -> frozenset[str]:
    """Combine each (attribute, value) pair into one token, dropping pairs whose value is `omit_value`."""
    return frozenset(pair_token(a, v) for a, v in pairs.items() if v is not None and v != omit_value)


def to_binary(observations: Iterable[Observation], omit_value: Optional[str] = None) -> list[Observation]:
    """Re-encode multiway observations as binary ones so the binary engine can be reused."""
    return [
        Observation(category=obs.category, attributes=pairs_to_tokens(obs.values, omit_value))
        for obs in observations
    ]


# -----------------------------------------------------------------------------
# Build + predict
# -----------------------------------------------------------------------------


def get_probable_result(
    training_set: Sequence[Observation],
    answers: AnswerSet,
    encoding: Encoding = Encoding.BINARY,
    vocabulary: Optional[Iterable[str]] = None,
    unknown_on_empty: bool = False,
) -> str:
    """
    Rebuild the tree from `training_set` and classify `answers`.

    An empty training set raises InsufficientDataError, or returns
    UNKNOWN_CATEGORY when unknown_on_empty is set.
    """
    if not training_set and unknown_on_empty:
        return UNKNOWN_CATEGORY
    tree = build_tree(training_set, vocabulary, encoding)
    return predict(tree, answers)
