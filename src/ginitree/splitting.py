# -*- coding: utf-8 -*-
"""
ginitree.splitting
==================

Grid search for the Gini-minimising split of a node.

For a single feature, ``n_candidates`` thresholds are laid out evenly between
the column's minimum and maximum (both inclusive).  Every candidate partitions
the labels into ``value <= threshold`` (left) and ``value > threshold``
(right); candidates that leave a side empty are excluded, and the lowest
candidate reaching the minimum weighted impurity wins.  Across features the
lowest impurity wins, ties going to the first feature in declaration order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping

import numpy as np

from .exceptions import DegenerateSplitError
from .impurity import gini, weighted_gini

logger = logging.getLogger(__name__)

DEFAULT_N_CANDIDATES = 50


@dataclass(frozen=True)
class SplitCandidate:
    """Outcome of a threshold search.

    ``left_prediction`` is the mean label of the ``value <= threshold`` side
    and ``right_prediction`` the mean label of the ``value > threshold`` side.
    ``feature``/``feature_index`` are filled in by
    :func:`best_feature_and_split`.
    """
    impurity: float
    threshold: float
    left_prediction: float
    right_prediction: float
    n_left: int
    n_right: int
    feature: str | None = None
    feature_index: int | None = None

    @property
    def predictions(self) -> tuple[float, float]:
        return (self.left_prediction, self.right_prediction)


def optimal_split_for_feature(values, labels, n_candidates: int = DEFAULT_N_CANDIDATES) -> SplitCandidate:
    """Find the impurity-minimising threshold for one feature column.

    Parameters
    ----------
    values : array-like of shape (n_samples,)
        Feature values of the node's observations.
    labels : array-like of shape (n_samples,)
        Binary labels; NaN entries are treated as missing and ignored.
    n_candidates : int, default=50
        Number of evenly spaced thresholds between ``min(values)`` and
        ``max(values)``.

    Returns
    -------
    SplitCandidate

    Raises
    ------
    DegenerateSplitError
        If no candidate leaves both sides with at least one known label
        (constant column, single observation, all labels missing, ...).
    """
    v = np.asarray(values, dtype=float).reshape(-1)
    lab = np.asarray(labels, dtype=float).reshape(-1)
    if v.size != lab.size:
        raise ValueError(f"values ({v.size}) and labels ({lab.size}) differ in length")
    if int(n_candidates) < 1:
        raise ValueError("n_candidates must be >= 1")
    if v.size == 0:
        raise DegenerateSplitError("cannot split an empty partition")

    candidates = np.linspace(v.min(), v.max(), int(n_candidates))

    known = ~np.isnan(lab)
    v, lab = v[known], lab[known]
    n = v.size
    if n == 0:
        raise DegenerateSplitError("all labels are missing")

    # rows: candidates, columns: observations
    left = v[None, :] <= candidates[:, None]
    n_left = left.sum(axis=1)
    n_right = n - n_left
    pos_left = left @ lab
    pos_right = lab.sum() - pos_left

    usable = (n_left > 0) & (n_right > 0)
    if not usable.any():
        raise DegenerateSplitError("every candidate threshold leaves one side empty")

    with np.errstate(divide="ignore", invalid="ignore"):
        p_left = pos_left / n_left
        p_right = pos_right / n_right
        scores = (n_left * gini(p_left) + n_right * gini(p_right)) / n
    scores = np.where(usable, scores, np.nan)

    best = int(np.nanargmin(scores))
    threshold = float(candidates[best])
    side = v <= threshold
    return SplitCandidate(
        impurity=weighted_gini(lab[side], lab[~side]),
        threshold=threshold,
        left_prediction=float(p_left[best]),
        right_prediction=float(p_right[best]),
        n_left=int(n_left[best]),
        n_right=int(n_right[best]),
    )


def _columns(features, feature_names):
    if isinstance(features, Mapping):
        names = [str(k) for k in features.keys()]
        return names, [np.asarray(features[k], dtype=float) for k in features.keys()]
    M = np.asarray(features, dtype=float)
    if M.ndim != 2:
        raise ValueError(f"features must be a mapping or a 2-D array, got shape {M.shape}")
    names = list(feature_names) if feature_names is not None else [f"X{j}" for j in range(M.shape[1])]
    return names, [M[:, j] for j in range(M.shape[1])]


def best_feature_and_split(features, labels, n_candidates: int = DEFAULT_N_CANDIDATES,
                           feature_names=None, feature_indices=None) -> SplitCandidate:
    """Choose the single best (feature, threshold) pair for a node.

    Parameters
    ----------
    features : mapping name -> column, or ndarray of shape (n_samples, n_features)
        Candidate split columns, in declaration order.
    labels : array-like of shape (n_samples,)
        Binary labels of the node.
    n_candidates : int, default=50
        Threshold grid size passed to :func:`optimal_split_for_feature`.
    feature_names : list[str], optional
        Column names when ``features`` is an array.
    feature_indices : sequence of int, optional
        Restrict the search to these columns (per-node feature subsampling).
        They are searched in the given order, which decides ties.

    Raises
    ------
    DegenerateSplitError
        If no searched column admits a split.
    """
    names, columns = _columns(features, feature_names)
    indices = range(len(columns)) if feature_indices is None else [int(j) for j in feature_indices]

    best = None
    for j in indices:
        try:
            cand = optimal_split_for_feature(columns[j], labels, n_candidates)
        except DegenerateSplitError as exc:
            logger.debug("feature %r skipped: %s", names[j], exc)
            continue
        if best is None or cand.impurity < best.impurity:
            best = replace(cand, feature=names[j], feature_index=j)

    if best is None:
        raise DegenerateSplitError("no feature yields a defined impurity for this partition")
    return best
