# -*- coding: utf-8 -*-
"""
ginitree.impurity
=================

Gini impurity for binary labels.

For a partition whose positive-label share is ``p`` the impurity is
``2 * p * (1 - p)``: zero for a homogeneous partition and 0.5 for an even mix.
A two-way split is scored by the size-weighted impurity of its sides; the
split finder minimises that score.
"""

from __future__ import annotations

import numpy as np

from .exceptions import EmptyPartitionError


def gini(p):
    """Gini impurity of a binary distribution with positive share ``p``.

    Accepts a scalar or a numpy array (evaluated elementwise).
    """
    return 2.0 * p * (1.0 - p)


def _known(labels) -> np.ndarray:
    arr = np.asarray(labels, dtype=float).reshape(-1)
    return arr[~np.isnan(arr)]


def gini_of_labels(labels) -> float:
    """Gini impurity of a label sequence, ignoring missing (NaN) entries.

    Raises
    ------
    EmptyPartitionError
        If no label remains once missing entries are dropped.
    """
    known = _known(labels)
    if known.size == 0:
        raise EmptyPartitionError("cannot compute impurity of an empty partition")
    return float(gini(known.mean()))


def weighted_gini(left_labels=None, right_labels=None) -> float:
    """Size-weighted Gini impurity of a two-way split.

    A side passed as ``None`` is absent (as opposed to empty): the impurity of
    the other side is returned on its own.  An empty side raises
    :class:`EmptyPartitionError` through :func:`gini_of_labels`.
    """
    if left_labels is None and right_labels is None:
        raise ValueError("at least one side of the split must be provided")
    if left_labels is None:
        return gini_of_labels(right_labels)
    if right_labels is None:
        return gini_of_labels(left_labels)
    left, right = _known(left_labels), _known(right_labels)
    g_left = gini_of_labels(left)
    g_right = gini_of_labels(right)
    n = left.size + right.size
    return float((left.size * g_left + right.size * g_right) / n)
