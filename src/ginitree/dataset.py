# -*- coding: utf-8 -*-
"""
ginitree.dataset
================

Fixed-schema container for training data.

A :class:`Dataset` holds an ordered list of named numeric feature columns and
a binary label vector.  Inputs are validated once, at ingestion; after that
every resampling or partitioning step produces a new ``Dataset`` and never
touches the original arrays (they are marked read-only).
"""

from __future__ import annotations

import numpy as np


def _default_feature_names(n_features: int) -> list[str]:
    return [f"X{i}" for i in range(n_features)]


def resolve_feature_names(X, feature_names=None, n_features: int | None = None) -> list[str]:
    """Pick column names from ``feature_names``, ``X.columns`` or defaults."""
    if n_features is None:
        n_features = np.asarray(X).shape[1]
    if feature_names is None and hasattr(X, "columns"):
        feature_names = [str(c) for c in X.columns]
    if feature_names is None:
        return _default_feature_names(n_features)
    names = [str(n) for n in feature_names]
    if len(names) != n_features:
        raise ValueError("feature_names length must match X.shape[1]")
    if len(set(names)) != len(names):
        raise ValueError("feature_names must be unique")
    return names


def as_feature_matrix(X, n_features: int | None = None) -> np.ndarray:
    """Convert ``X`` to a 2-D float matrix, failing fast on bad input."""
    try:
        M = np.asarray(X, dtype=float)
    except (TypeError, ValueError) as exc:
        raise TypeError("features must be numeric or binary-encoded") from exc
    if M.ndim == 1:
        # no observations, a single observation when the width matches,
        # else a single column
        if n_features is not None and M.size == 0:
            M = M.reshape(0, n_features)
        elif n_features is not None and M.size == n_features:
            M = M.reshape(1, -1)
        else:
            M = M.reshape(-1, 1)
    if M.ndim != 2:
        raise ValueError(f"features must be 2-D, got shape {M.shape}")
    if n_features is not None and M.shape[1] != n_features:
        raise ValueError(f"expected {n_features} features, got {M.shape[1]}")
    if not np.all(np.isfinite(M)):
        raise ValueError("features must not contain missing or infinite values")
    return M


def as_label_vector(y, n_rows: int) -> np.ndarray:
    labels = np.asarray(y)
    if labels.ndim != 1:
        labels = labels.reshape(-1)
    if len(labels) != n_rows:
        raise ValueError(f"features have {n_rows} rows but labels have {len(labels)}")
    try:
        labels = labels.astype(float)
    except (TypeError, ValueError) as exc:
        raise TypeError("labels must be 0/1") from exc
    if not np.all(np.isin(labels, (0.0, 1.0))):
        raise ValueError("labels must be binary (0/1)")
    return labels


class Dataset:
    """Immutable features + binary labels with an explicit column schema.

    Parameters
    ----------
    X : ndarray of shape (n_samples, n_features)
        Float feature matrix.
    y : ndarray of shape (n_samples,)
        Labels in {0.0, 1.0}.
    feature_names : list[str]
        Column names, in declaration order.

    Use :meth:`from_arrays` to build one from user input; the constructor
    assumes its arguments are already validated.
    """

    def __init__(self, X: np.ndarray, y: np.ndarray, feature_names: list[str]):
        X = np.array(X, dtype=float)
        y = np.array(y, dtype=float)
        X.setflags(write=False)
        y.setflags(write=False)
        self.X = X
        self.y = y
        self.feature_names = list(feature_names)

    @classmethod
    def from_arrays(cls, X, y, feature_names=None) -> "Dataset":
        M = as_feature_matrix(X)
        if M.shape[0] == 0:
            raise ValueError("training data cannot be empty")
        names = resolve_feature_names(X, feature_names, M.shape[1])
        labels = as_label_vector(y, M.shape[0])
        return cls(M, labels, names)

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    @property
    def n_features(self) -> int:
        return self.X.shape[1]

    def __len__(self) -> int:
        return self.n_samples

    def take(self, indices) -> "Dataset":
        """Return a new dataset holding the rows at ``indices`` (repeats allowed)."""
        idx = np.asarray(indices, dtype=int)
        return Dataset(self.X[idx], self.y[idx], self.feature_names)

    def bootstrap(self, rng: np.random.Generator) -> "Dataset":
        """Resample rows with replacement, keeping the dataset size."""
        return self.take(rng.integers(0, self.n_samples, size=self.n_samples))

    def __repr__(self):
        return f"Dataset(n_samples={self.n_samples}, features={self.feature_names})"
