"""
Entropy and information-gain calculator for ID3.

Stateless: every function is a pure function of its inputs. Gains are always
computed against the subset reaching the current node, never the root set.
"""

import logging
import math
from typing import Mapping, Optional, Sequence, Union

from backend.models.decision_tree import Encoding, Observation

logger = logging.getLogger(__name__)

# Gains closer than this are ties (equal splits can differ in the last bits)
GAIN_TOLERANCE = 1e-12


def label_counts(training_set: Sequence[Observation]) -> dict[str, int]:
    """Category -> number of observations carrying it, in order of first appearance."""
    counts: dict[str, int] = {}
    for obs in training_set:
        counts[obs.category] = counts.get(obs.category, 0) + 1
    return counts


def entropy(counts: Mapping[str, int], total: int) -> float:
    """
    Shannon entropy (bits) of a label distribution.

    0 for an empty set. Categories with zero probability contribute nothing.
    """
    if total <= 0:
        return 0.0
    h = 0.0
    for count in counts.values():
        if count <= 0:
            continue
        p = count / total
        h -= p * math.log2(p)
    # -0.0 for a pure set
    return h if h > 0.0 else 0.0


def partition(
    training_set: Sequence[Observation],
    attribute: str,
    encoding: Encoding,
) -> dict[Union[bool, str], list[Observation]]:
    """
    Group observations by their value for `attribute`.

    binary: keys True (has the token) and False, both always present.
    multiway: one key per observed value, in order of first appearance;
    observations without a value for the attribute are left out.
    """
    groups: dict[Union[bool, str], list[Observation]] = {}
    if encoding == Encoding.BINARY:
        groups[True] = []
        groups[False] = []
    for obs in training_set:
        key = obs.value_of(attribute, encoding)
        if key is None:
            continue
        groups.setdefault(key, []).append(obs)
    return groups


def conditional_entropy(
    training_set: Sequence[Observation],
    attribute: str,
    encoding: Encoding = Encoding.BINARY,
) -> float:
    """H(D | attribute): entropy of each partition weighted by its share of the set."""
    total = len(training_set)
    if total == 0:
        return 0.0
    h = 0.0
    for members in partition(training_set, attribute, encoding).values():
        if not members:
            continue
        h += (len(members) / total) * entropy(label_counts(members), len(members))
    return h


def information_gain(
    training_set: Sequence[Observation],
    attribute: str,
    encoding: Encoding = Encoding.BINARY,
    base_entropy: Optional[float] = None,
) -> float:
    """
    G = H(D) - H(D | attribute) for the given subset.

    base_entropy may be passed when scoring many attributes against the same
    subset; it must be the entropy of `training_set` itself.
    """
    if base_entropy is None:
        base_entropy = entropy(label_counts(training_set), len(training_set))
    return base_entropy - conditional_entropy(training_set, attribute, encoding)


def attribute_gains(
    training_set: Sequence[Observation],
    vocabulary: Sequence[str],
    encoding: Encoding = Encoding.BINARY,
) -> dict[str, float]:
    """Attribute -> information gain, in vocabulary order."""
    base = entropy(label_counts(training_set), len(training_set))
    return {a: information_gain(training_set, a, encoding, base_entropy=base) for a in vocabulary}


def best_attribute(
    training_set: Sequence[Observation],
    vocabulary: Sequence[str],
    encoding: Encoding = Encoding.BINARY,
) -> str:
    """
    Attribute with the highest information gain.

    The first attribute in vocabulary order is the initial best; a later one
    replaces it only with a strictly greater gain, so ties keep the earlier.

    "Strictly greater" means greater by more than GAIN_TOLERANCE. Two
    attributes that split the set equally well can come out a few ulps apart
    depending on summation order; those count as a tie and keep the earlier
    attribute. A later attribute whose gain exceeds the best by less than
    the tolerance therefore does not win.
    """
    if not vocabulary:
        raise ValueError("best_attribute needs a non-empty vocabulary")
    best: Optional[str] = None
    best_gain = 0.0
    for attribute, gain in attribute_gains(training_set, vocabulary, encoding).items():
        if best is None or gain > best_gain + GAIN_TOLERANCE:
            best, best_gain = attribute, gain
    logger.debug("best attribute %r gain=%.4f over %d candidates", best, best_gain, len(vocabulary))
    return best
