# -*- coding: utf-8 -*-
"""
ginitree.tree
=============

This module implements a binary Gini decision tree whose state is a flat
*branch table*: every split is stored as a :class:`Branch` keyed by a path
code over ``{"0", "1"}``.  The root is ``"0"``; appending ``"0"`` designates
the ``value <= threshold`` child and appending ``"1"`` the ``value >
threshold`` child.  Each branch also stores the mean label of both sides at
the time it was split, so prediction stops at the first child that was never
recorded and returns the stored value for that side.

Growth is depth-first.  A node's split is recorded before the stopping rules
are checked, so a node that hits ``max_depth`` still routes predictions
through its own threshold.  Partitions that cannot be split (one row,
constant columns) simply record nothing.

The module exposes the functional core (:func:`build_tree`,
:func:`predict_one`, :func:`predict_many`) and a scikit‑learn–style
estimator, :class:`GiniTreeClassifier`, with rule tracing, rule export,
pretty printing and Graphviz export.
"""

# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin

from .dataset import Dataset, as_feature_matrix
from .exceptions import DegenerateSplitError
from .splitting import DEFAULT_N_CANDIDATES, SplitCandidate, best_feature_and_split
from .stopping import check_post_split_stopping_conditions, check_pre_split_stopping_conditions

logger = logging.getLogger(__name__)

ROOT_ID = "0"


# -----------------------------------------------------------------------------
# Branch table
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Branch:
    """A single recorded split.

    Attributes
    ----------
    branch_id : str
        Path code from the root (``"0"``), one character per decision.
    feature : str
        Name of the split feature.
    feature_index : int
        Column position of ``feature`` in the training schema.
    threshold : float
        Observations with ``value <= threshold`` go left (direction ``"0"``).
    leaf_predictions : tuple[float, float]
        Mean label of the left and right sides when this node was split.
    impurity : float
        Weighted Gini impurity of the split.
    n_left, n_right : int
        Training observations on each side.
    """
    branch_id: str
    feature: str
    feature_index: int
    threshold: float
    leaf_predictions: tuple[float, float]
    impurity: float
    n_left: int
    n_right: int

    @property
    def depth(self) -> int:
        return len(self.branch_id)

    @property
    def parent_id(self) -> str | None:
        return self.branch_id[:-1] or None

    def direction(self, value: float) -> str:
        return "0" if value <= self.threshold else "1"


class BranchTable:
    """Insertion-ordered mapping ``branch_id -> Branch`` for one tree.

    Parameters
    ----------
    feature_names : list[str]
        Schema the tree was grown against; observations are read by position
        in this order (or by name for mappings).
    base_rate : float
        Mean training label of the root partition.  Returned for every
        observation when not even the root could be split.
    """

    def __init__(self, feature_names: list[str], base_rate: float):
        self.feature_names = list(feature_names)
        self.base_rate = float(base_rate)
        self._branches: dict[str, Branch] = {}

    def add(self, branch: Branch) -> None:
        if branch.branch_id in self._branches:
            raise ValueError(f"duplicate branch id {branch.branch_id!r}")
        parent = branch.parent_id
        if parent is not None and parent not in self._branches:
            raise ValueError(f"branch {branch.branch_id!r} recorded before its parent {parent!r}")
        self._branches[branch.branch_id] = branch

    def __getitem__(self, branch_id: str) -> Branch:
        return self._branches[branch_id]

    def __contains__(self, branch_id) -> bool:
        return branch_id in self._branches

    def __iter__(self) -> Iterator[Branch]:
        return iter(self._branches.values())

    def __len__(self) -> int:
        return len(self._branches)

    @property
    def depth(self) -> int:
        return max((len(b) for b in self._branches), default=0)

    def to_records(self) -> list[dict]:
        """Plain-dict view of the table, one record per branch."""
        return [
            {
                "branch_id": b.branch_id,
                "feature": b.feature,
                "threshold": b.threshold,
                "split0": b.leaf_predictions[0],
                "split1": b.leaf_predictions[1],
                "impurity": b.impurity,
                "n_left": b.n_left,
                "n_right": b.n_right,
            }
            for b in self
        ]

    def __repr__(self):
        return f"BranchTable(branches={len(self)}, depth={self.depth}, base_rate={self.base_rate:.4f})"


# -----------------------------------------------------------------------------
# Hyper-parameters
# -----------------------------------------------------------------------------
def _is_int(v) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, bool)


def resolve_m_features(m_features, n_features: int, forest: bool = False) -> int:
    """Number of columns searched per node.

    ``None`` means every column for a plain tree, and
    ``max(2, ceil(sqrt(n_features)))`` (capped at ``n_features``) for a random
    forest.
    """
    if m_features is None:
        if not forest:
            return n_features
        return min(n_features, max(2, int(np.ceil(np.sqrt(n_features)))))
    if not _is_int(m_features) or not 1 <= m_features <= n_features:
        raise ValueError(f"m_features must be an integer in [1, {n_features}], got {m_features!r}")
    return int(m_features)


@dataclass(frozen=True)
class GrowthParams:
    """Validated hyper-parameters for growing one tree."""
    max_depth: int
    gini_threshold: float
    min_observations: int
    m_features: int
    n_candidates: int = DEFAULT_N_CANDIDATES

    @classmethod
    def build(cls, n_features: int, *, max_depth, gini_threshold, min_observations,
              m_features=None, n_candidates=DEFAULT_N_CANDIDATES, forest=False) -> "GrowthParams":
        if not _is_int(max_depth) or max_depth < 1:
            raise ValueError(f"max_depth must be a positive integer, got {max_depth!r}")
        try:
            g = float(gini_threshold)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"gini_threshold must be a number, got {gini_threshold!r}") from exc
        if not 0.0 <= g <= 0.5:
            raise ValueError(f"gini_threshold must lie in [0, 0.5], got {gini_threshold!r}")
        if not _is_int(min_observations) or min_observations < 1:
            raise ValueError(f"min_observations must be a positive integer, got {min_observations!r}")
        if not _is_int(n_candidates) or n_candidates < 1:
            raise ValueError(f"n_candidates must be a positive integer, got {n_candidates!r}")
        return cls(
            max_depth=int(max_depth),
            gini_threshold=g,
            min_observations=int(min_observations),
            m_features=resolve_m_features(m_features, n_features, forest=forest),
            n_candidates=int(n_candidates),
        )


# -----------------------------------------------------------------------------
# Tree construction
# -----------------------------------------------------------------------------
def _draw_features(rng: np.random.Generator, n_features: int, m_features: int) -> np.ndarray:
    if m_features >= n_features:
        return np.arange(n_features)
    # sorted so that ties still go to the first declared feature
    return np.sort(rng.choice(n_features, size=m_features, replace=False))


def _try_split(X, y, feature_names, feature_indices, n_candidates) -> SplitCandidate | None:
    try:
        return best_feature_and_split(X, y, n_candidates=n_candidates,
                                      feature_names=feature_names,
                                      feature_indices=feature_indices)
    except DegenerateSplitError:
        return None


def _grow_branch(table: BranchTable, X: np.ndarray, y: np.ndarray, branch_id: str,
                 params: GrowthParams, rng: np.random.Generator) -> None:
    reason = check_pre_split_stopping_conditions(len(y), params.min_observations)
    if reason:
        logger.debug("branch %s not split: %s", branch_id, reason)
        return

    feats = _draw_features(rng, X.shape[1], params.m_features)
    split = _try_split(X, y, table.feature_names, feats, params.n_candidates)
    if split is None:
        logger.debug("branch %s not split: degenerate partition (%d rows)", branch_id, len(y))
        return

    table.add(Branch(
        branch_id=branch_id,
        feature=split.feature,
        feature_index=split.feature_index,
        threshold=split.threshold,
        leaf_predictions=split.predictions,
        impurity=split.impurity,
        n_left=split.n_left,
        n_right=split.n_right,
    ))
    logger.debug("branch %s: %s <= %.4f (gini=%.4f, %d/%d)", branch_id, split.feature,
                 split.threshold, split.impurity, split.n_left, split.n_right)

    reason = check_post_split_stopping_conditions(
        branch_id, split.impurity, split.n_left, split.n_right,
        params.max_depth, params.gini_threshold, params.min_observations,
    )
    if reason:
        logger.debug("branch %s stops: %s", branch_id, reason)
        return

    left = X[:, split.feature_index] <= split.threshold
    _grow_branch(table, X[left], y[left], branch_id + "0", params, rng)
    _grow_branch(table, X[~left], y[~left], branch_id + "1", params, rng)


def grow_table(data: Dataset, params: GrowthParams, rng: np.random.Generator) -> BranchTable:
    """Grow a branch table on an already validated dataset."""
    table = BranchTable(data.feature_names, base_rate=float(data.y.mean()))
    _grow_branch(table, data.X, data.y, ROOT_ID, params, rng)
    return table


def build_tree(X, y, *, max_depth: int, gini_threshold: float, min_observations: int,
               m_features: int | None = None, n_candidates: int = DEFAULT_N_CANDIDATES,
               feature_names=None, random_state=None) -> BranchTable:
    """
    Recursively grow a Gini decision tree and return its branch table.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        Numeric or binary-encoded features.  DataFrame column names are used
        when ``feature_names`` is omitted.
    y : array-like of shape (n_samples,)
        Binary labels (0/1).
    max_depth : int
        Maximum branch id length; the root counts as depth 1.
    gini_threshold : float
        A node whose split impurity is at or below this value grows no
        children.
    min_observations : int
        A node whose smaller child holds fewer observations grows no children.
    m_features : int or None, default=None
        Columns drawn (without replacement) at every node; ``None`` searches
        all of them.
    n_candidates : int, default=50
        Threshold grid size per feature.
    feature_names : list[str], optional
        Column names.
    random_state : int, Generator or None
        Source of randomness for per-node feature subsampling.

    Returns
    -------
    BranchTable
    """
    data = Dataset.from_arrays(X, y, feature_names)
    params = GrowthParams.build(
        data.n_features, max_depth=max_depth, gini_threshold=gini_threshold,
        min_observations=min_observations, m_features=m_features, n_candidates=n_candidates,
    )
    return grow_table(data, params, np.random.default_rng(random_state))


# -----------------------------------------------------------------------------
# Prediction
# -----------------------------------------------------------------------------
def _feature_value(observation, branch: Branch) -> float:
    if isinstance(observation, Mapping):
        return float(observation[branch.feature])
    return float(observation[branch.feature_index])


def predict_one(table: BranchTable, observation) -> float:
    """Walk the branch table for one observation.

    ``observation`` is a positional row (ordered like ``table.feature_names``)
    or a mapping keyed by feature name.
    """
    if ROOT_ID not in table:
        return table.base_rate
    branch_id = ROOT_ID
    while True:
        branch = table[branch_id]
        direction = branch.direction(_feature_value(observation, branch))
        child = branch_id + direction
        if child not in table:
            return branch.leaf_predictions[int(direction)]
        branch_id = child


def observation_rows(table: BranchTable, observations):
    if hasattr(observations, "columns"):
        return as_feature_matrix(observations[table.feature_names], len(table.feature_names))
    if isinstance(observations, (list, tuple)) and observations and isinstance(observations[0], Mapping):
        return observations
    return as_feature_matrix(observations, len(table.feature_names))


def predict_many(table: BranchTable, observations) -> np.ndarray:
    """Predict every observation independently, in input order."""
    return np.array([predict_one(table, row) for row in observation_rows(table, observations)], dtype=float)


# -----------------------------------------------------------------------------
# Rule helpers
# -----------------------------------------------------------------------------
def _condition(branch: Branch, direction: str) -> str:
    op = "<=" if direction == "0" else ">"
    return f"{branch.feature} {op} {branch.threshold:.4f}"


def _path_conditions(table: BranchTable, branch_id: str) -> list[str]:
    """Conditions leading from the root to (but excluding) ``branch_id``."""
    return [_condition(table[branch_id[:k]], branch_id[k]) for k in range(1, len(branch_id))]


def trace_rule(table: BranchTable, observation) -> str:
    if ROOT_ID not in table:
        return "<root>"
    parts, branch_id = [], ROOT_ID
    while True:
        branch = table[branch_id]
        direction = branch.direction(_feature_value(observation, branch))
        parts.append(_condition(branch, direction))
        child = branch_id + direction
        if child not in table:
            return " AND ".join(parts)
        branch_id = child


def collect_rules(table: BranchTable) -> list[str]:
    if ROOT_ID not in table:
        return [f"<root> => p={table.base_rate:.4f}"]
    rules = []
    for branch in table:
        for direction in "01":
            if branch.branch_id + direction in table:
                continue
            parts = _path_conditions(table, branch.branch_id) + [_condition(branch, direction)]
            pred = branch.leaf_predictions[int(direction)]
            rules.append(f"{' AND '.join(parts)} => p={pred:.4f}")
    return rules


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class GiniTreeClassifier(ClassifierMixin, BaseEstimator):
    """
    Binary decision tree grown by grid-searched Gini splits.

    Parameters
    ----------
    max_depth : int, default=5
        Maximum depth; the root counts as depth 1.
    gini_threshold : float, default=0.0
        Nodes whose split impurity is at or below this value stop growing.
    min_observations : int, default=1
        Nodes whose smaller child has fewer observations stop growing.
    n_candidates : int, default=50
        Number of evenly spaced thresholds tried per feature and node.
    m_features : int or None, default=None
        Features drawn at random for every node; ``None`` uses all of them.
    random_state : int or None, default=None
        Seed for the per-node feature draw.  Ignored when all features are
        searched.

    Attributes
    ----------
    table_ : BranchTable
        The fitted branch table.
    classes_ : ndarray
        Always ``[0, 1]``.
    feature_names_ : list[str]
        Column names used in rules and exports.
    n_features_in_ : int
        Number of features seen during ``fit``.

    Notes
    -----
    - ``predict_proba`` returns the stored mean label of the side an
      observation ends on; ``predict`` thresholds it at 0.5.
    - Rule tracing and export utilities (`predict_rule`, `export_rules`,
      `export_graphviz`, `print_tree`) read the branch table directly.
    """

    def __init__(
        self,
        *,
        max_depth: int = 5,
        gini_threshold: float = 0.0,
        min_observations: int = 1,
        n_candidates: int = DEFAULT_N_CANDIDATES,
        m_features: int | None = None,
        random_state: int | None = None,
    ):
        self.max_depth = max_depth
        self.gini_threshold = gini_threshold
        self.min_observations = min_observations
        self.n_candidates = n_candidates
        self.m_features = m_features
        self.random_state = random_state

    def fit(self, X, y, feature_names=None):
        data = Dataset.from_arrays(X, y, feature_names)
        params = GrowthParams.build(
            data.n_features, max_depth=self.max_depth, gini_threshold=self.gini_threshold,
            min_observations=self.min_observations, m_features=self.m_features,
            n_candidates=self.n_candidates,
        )
        self.table_ = grow_table(data, params, np.random.default_rng(self.random_state))
        self.classes_ = np.array([0, 1])
        self.feature_names_ = data.feature_names
        self.n_features_in_ = data.n_features
        logger.info("fitted tree: %d branches, depth %d, %d rows",
                    len(self.table_), self.table_.depth, data.n_samples)
        return self

    def _check_fitted(self):
        if getattr(self, "table_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def predict_score(self, X) -> np.ndarray:
        """Positive-class score (stored mean label) for each row."""
        self._check_fitted()
        return predict_many(self.table_, X)

    def predict_proba(self, X) -> np.ndarray:
        """
        Class probabilities, shape ``(n_samples, 2)`` ordered like ``classes_``.
        """
        p = self.predict_score(X)
        return np.column_stack([1.0 - p, p])

    def predict(self, X) -> np.ndarray:
        return (self.predict_score(X) >= 0.5).astype(int)

    def predict_rule(self, X) -> list[str]:
        """
        Return the conjunction of conditions followed by each input row.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)

        Returns
        -------
        list[str]
            One antecedent string per row, e.g. ``"X0 <= 0.1224 AND X1 > -0.5"``.
        """
        self._check_fitted()
        return [trace_rule(self.table_, x) for x in observation_rows(self.table_, X)]

    def export_rules(self) -> list[str]:
        """
        Export one ``<antecedent> => p=<score>`` line per leaf side of the tree.
        """
        self._check_fitted()
        return collect_rules(self.table_)

    def print_tree(self):
        """Pretty‑print the tree to ``stdout`` as nested if/else blocks."""
        self._check_fitted()
        if ROOT_ID not in self.table_:
            print(f"Predict p={self.table_.base_rate:.4f}")
            return
        self._print_branch(ROOT_ID, "")

    def export_graphviz(self, filename: str | None = None, *, format: str = "png") -> str:
        """
        Export the tree structure in Graphviz format.

        Split nodes are named by their branch id; leaf nodes by the id of the
        child that was never grown.  With ``format='dot'`` the DOT source is
        written directly and no Graphviz binary is needed.

        Parameters
        ----------
        filename : str or None, default=None
            Basename of the output file.  If None, the DOT source code is
            returned and no file is written.
        format : str, default="png"
            Any Graphviz output format, or ``'dot'``.

        Returns
        -------
        str
            Path to the written file, or the DOT source if ``filename`` is None.

        Raises
        ------
        RuntimeError
            If the ``graphviz`` package is not installed.
        """
        self._check_fitted()
        try:
            import graphviz
        except ImportError:
            raise RuntimeError("Graphviz is required for export_graphviz but not installed.")
        dot = graphviz.Digraph(format=format)
        if ROOT_ID in self.table_:
            self._add_graph_nodes(dot, ROOT_ID)
        else:
            dot.node(ROOT_ID, f"p={self.table_.base_rate:.4f}", shape="box", style="filled", color="lightgrey")

        if filename is None:
            return dot.source
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        try:
            dot.render(filename, cleanup=True)
            return f"{filename}.{format}"
        except graphviz.ExecutableNotFound:
            logger.warning("graphviz 'dot' executable not found; writing DOT source instead")
            fallback_path = f"{filename}.dot"
            dot.save(fallback_path)
            return fallback_path

    # ------------------------------------------------------------------
    # Printing / Graphviz helpers
    # ------------------------------------------------------------------
    def _print_branch(self, branch_id: str, indent: str):
        branch = self.table_[branch_id]
        print(f"{indent}if {_condition(branch, '0')}:")
        self._print_side(branch, "0", indent + "  ")
        print(f"{indent}else:")
        self._print_side(branch, "1", indent + "  ")

    def _print_side(self, branch: Branch, direction: str, indent: str):
        child = branch.branch_id + direction
        if child in self.table_:
            self._print_branch(child, indent)
        else:
            print(f"{indent}Predict p={branch.leaf_predictions[int(direction)]:.4f}")

    def _add_graph_nodes(self, dot, branch_id: str):
        branch = self.table_[branch_id]
        dot.node(branch_id, _condition(branch, "0"), shape="ellipse", style="filled", color="lightblue")
        for direction, label in (("0", "True"), ("1", "False")):
            child = branch_id + direction
            if child in self.table_:
                self._add_graph_nodes(dot, child)
            else:
                n = branch.n_left if direction == "0" else branch.n_right
                dot.node(child, f"p={branch.leaf_predictions[int(direction)]:.4f}\nn={n}",
                         shape="box", style="filled", color="lightgrey")
            dot.edge(branch_id, child, label=label)
