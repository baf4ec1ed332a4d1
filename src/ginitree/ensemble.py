# -*- coding: utf-8 -*-
"""
ginitree.ensemble
=================

Bagging and random forests built from :mod:`ginitree.tree`.

Every replicate draws a bootstrap sample of the training rows, grows its own
branch table and scores the test rows; the ensemble score of a row is the
mean over the replicates that produced a value for it.  Random forests
additionally restrict every node's split search to a random subset of
``m_features`` columns.

Replicates are independent: each one gets its own ``numpy`` generator spawned
from ``SeedSequence(random_state)`` by replicate index, so adding trees never
changes the trees already drawn.  They run through :class:`joblib.Parallel`
and are reassembled by index, so the result does not depend on completion
order.  A replicate that fails is recorded as a :class:`ReplicateFailure` and
contributes missing values (not zeros) for every row.
"""

from __future__ import annotations

import logging

import numpy as np
from joblib import Parallel, delayed
from sklearn.base import BaseEstimator, ClassifierMixin

from .dataset import Dataset
from .exceptions import ReplicateFailure
from .splitting import DEFAULT_N_CANDIDATES
from .tree import BranchTable, GrowthParams, _is_int, grow_table, observation_rows, predict_many

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Replicate tasks (module level so that joblib can pickle them)
# -----------------------------------------------------------------------------
def _fit_replicate(index: int, seed: np.random.SeedSequence, data: Dataset,
                   params: GrowthParams) -> tuple[BranchTable | None, ReplicateFailure | None]:
    rng = np.random.default_rng(seed)
    try:
        sample = data.bootstrap(rng)
        table = grow_table(sample, params, rng)
    except Exception as exc:
        return None, ReplicateFailure(index, "build", exc)
    return table, None


def _predict_replicate(index: int, table: BranchTable | None,
                       rows) -> tuple[np.ndarray, ReplicateFailure | None]:
    missing = np.full(len(rows), np.nan)
    if table is None:
        return missing, None
    try:
        return predict_many(table, rows), None
    except Exception as exc:
        return missing, ReplicateFailure(index, "predict", exc)


def average_scores(scores: np.ndarray) -> np.ndarray:
    """Row means over non-missing replicate columns.

    Rows without any contribution stay NaN.
    """
    scores = np.asarray(scores, dtype=float)
    counts = np.sum(~np.isnan(scores), axis=1).astype(float)
    sums = np.nansum(scores, axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = sums / counts
    n_empty = int(np.sum(counts == 0))
    if n_empty:
        logger.warning("%d of %d rows received no replicate prediction", n_empty, len(out))
    return out


# -----------------------------------------------------------------------------
# Estimators
# -----------------------------------------------------------------------------
class GiniBaggingClassifier(ClassifierMixin, BaseEstimator):
    """
    Bootstrap-aggregated Gini decision trees.

    Parameters
    ----------
    n_trees : int, default=10
        Number of bootstrap replicates.
    max_depth : int, default=5
        Maximum depth of every tree; the root counts as depth 1.
    gini_threshold : float, default=0.0
        Nodes whose split impurity is at or below this value stop growing.
    min_observations : int, default=1
        Nodes whose smaller child has fewer observations stop growing.
    n_candidates : int, default=50
        Number of evenly spaced thresholds tried per feature and node.
    random_state : int or None, default=None
        Seed of the ``SeedSequence`` from which every replicate's generator
        is spawned.
    n_jobs : int or None, default=None
        Number of joblib workers.  ``None`` runs sequentially, ``-1`` uses
        all cores.

    Attributes
    ----------
    tables_ : list[BranchTable or None]
        One branch table per replicate; ``None`` where the build failed.
    replicate_failures_ : list[ReplicateFailure]
        Failures recorded during ``fit``.
    classes_ : ndarray
        Always ``[0, 1]``.
    """

    _forest = False

    def __init__(
        self,
        *,
        n_trees: int = 10,
        max_depth: int = 5,
        gini_threshold: float = 0.0,
        min_observations: int = 1,
        n_candidates: int = DEFAULT_N_CANDIDATES,
        random_state: int | None = None,
        n_jobs: int | None = None,
    ):
        self.n_trees = n_trees
        self.max_depth = max_depth
        self.gini_threshold = gini_threshold
        self.min_observations = min_observations
        self.n_candidates = n_candidates
        self.random_state = random_state
        self.n_jobs = n_jobs

    def _m_features(self):
        return None

    def fit(self, X, y, feature_names=None):
        if not _is_int(self.n_trees) or self.n_trees < 1:
            raise ValueError(f"n_trees must be a positive integer, got {self.n_trees!r}")
        data = Dataset.from_arrays(X, y, feature_names)
        params = GrowthParams.build(
            data.n_features, max_depth=self.max_depth, gini_threshold=self.gini_threshold,
            min_observations=self.min_observations, m_features=self._m_features(),
            n_candidates=self.n_candidates, forest=self._forest,
        )
        seeds = np.random.SeedSequence(self.random_state).spawn(int(self.n_trees))
        results = Parallel(n_jobs=self.n_jobs)(
            delayed(_fit_replicate)(i, seed, data, params) for i, seed in enumerate(seeds)
        )

        self.tables_ = [table for table, _ in results]
        self.replicate_failures_ = [failure for _, failure in results if failure is not None]
        for failure in self.replicate_failures_:
            logger.warning("%s", failure)
        self.classes_ = np.array([0, 1])
        self.feature_names_ = data.feature_names
        self.n_features_in_ = data.n_features
        self.m_features_ = params.m_features
        logger.info("fitted %d replicates (%d failed) on %d rows, %d of %d features per node",
                    len(self.tables_), len(self.replicate_failures_), data.n_samples,
                    params.m_features, data.n_features)
        return self

    def _check_fitted(self):
        if not getattr(self, "tables_", None):
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def replicate_scores(self, X) -> np.ndarray:
        """
        Per-replicate scores, shape ``(n_samples, n_trees)``.

        Columns of replicates whose build or prediction failed are NaN.
        """
        self._check_fitted()
        template = next((t for t in self.tables_ if t is not None), None)
        if template is None:
            template = BranchTable(self.feature_names_, base_rate=np.nan)
        rows = observation_rows(template, X)
        results = Parallel(n_jobs=self.n_jobs)(
            delayed(_predict_replicate)(i, table, rows) for i, table in enumerate(self.tables_)
        )
        for _, failure in results:
            if failure is not None:
                logger.warning("%s", failure)
        return np.column_stack([column for column, _ in results])

    def predict_score(self, X) -> np.ndarray:
        """
        Ensemble score per row: mean of the non-missing replicate scores.

        Rows for which no replicate produced a score are NaN.
        """
        return average_scores(self.replicate_scores(X))

    def predict_proba(self, X) -> np.ndarray:
        p = self.predict_score(X)
        return np.column_stack([1.0 - p, p])

    def predict(self, X) -> np.ndarray:
        p = self.predict_score(X)
        missing = np.isnan(p)
        if missing.any():
            raise ValueError(f"no replicate produced a prediction for {int(missing.sum())} rows")
        return (p >= 0.5).astype(int)


class GiniForestClassifier(GiniBaggingClassifier):
    """
    Random forest of Gini decision trees.

    Identical to :class:`GiniBaggingClassifier` except that every node of every
    tree searches only ``m_features`` columns drawn at random without
    replacement.

    Parameters
    ----------
    m_features : int or None, default=None
        Columns searched per node.  ``None`` means
        ``max(2, ceil(sqrt(n_features)))``, capped at ``n_features``.

    Other parameters are those of :class:`GiniBaggingClassifier`.
    """

    _forest = True

    def __init__(
        self,
        *,
        n_trees: int = 10,
        max_depth: int = 5,
        gini_threshold: float = 0.0,
        min_observations: int = 1,
        n_candidates: int = DEFAULT_N_CANDIDATES,
        m_features: int | None = None,
        random_state: int | None = None,
        n_jobs: int | None = None,
    ):
        super().__init__(
            n_trees=n_trees, max_depth=max_depth, gini_threshold=gini_threshold,
            min_observations=min_observations, n_candidates=n_candidates,
            random_state=random_state, n_jobs=n_jobs,
        )
        self.m_features = m_features

    def _m_features(self):
        return self.m_features


# -----------------------------------------------------------------------------
# Functional entry points
# -----------------------------------------------------------------------------
def bag(train_features, train_labels, test_features, n_trees: int, max_depth: int,
        gini_threshold: float, min_observations: int, *, n_candidates: int = DEFAULT_N_CANDIDATES,
        feature_names=None, random_state=None, n_jobs=None) -> np.ndarray:
    """Fit ``n_trees`` bootstrap trees and return the averaged test scores.

    Returns one float per test row; rows no replicate could score are NaN.
    """
    model = GiniBaggingClassifier(
        n_trees=n_trees, max_depth=max_depth, gini_threshold=gini_threshold,
        min_observations=min_observations, n_candidates=n_candidates,
        random_state=random_state, n_jobs=n_jobs,
    )
    return model.fit(train_features, train_labels, feature_names=feature_names).predict_score(test_features)


def random_forest(train_features, train_labels, test_features, n_trees: int, max_depth: int,
                  gini_threshold: float, min_observations: int, *, m_features: int | None = None,
                  n_candidates: int = DEFAULT_N_CANDIDATES, feature_names=None,
                  random_state=None, n_jobs=None) -> np.ndarray:
    """Like :func:`bag`, with per-node feature subsampling of ``m_features`` columns."""
    model = GiniForestClassifier(
        n_trees=n_trees, max_depth=max_depth, gini_threshold=gini_threshold,
        min_observations=min_observations, n_candidates=n_candidates, m_features=m_features,
        random_state=random_state, n_jobs=n_jobs,
    )
    return model.fit(train_features, train_labels, feature_names=feature_names).predict_score(test_features)
