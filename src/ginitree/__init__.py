# ginitree/__init__.py
"""
ginitree: Gini decision trees, bagging and random forests in NumPy
(scikit-learn style).

Exports:
    - build_tree, predict_one, predict_many, BranchTable, Branch
    - bag, random_forest
    - GiniTreeClassifier, GiniBaggingClassifier, GiniForestClassifier
    - gini, gini_of_labels, weighted_gini
    - optimal_split_for_feature, best_feature_and_split
"""
import logging

from .dataset import Dataset
from .ensemble import GiniBaggingClassifier, GiniForestClassifier, bag, random_forest
from .exceptions import (
    DegenerateSplitError,
    EmptyPartitionError,
    GiniTreeError,
    ReplicateFailure,
)
from .impurity import gini, gini_of_labels, weighted_gini
from .splitting import SplitCandidate, best_feature_and_split, optimal_split_for_feature
from .tree import Branch, BranchTable, GiniTreeClassifier, build_tree, predict_many, predict_one

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Branch",
    "BranchTable",
    "Dataset",
    "DegenerateSplitError",
    "EmptyPartitionError",
    "GiniBaggingClassifier",
    "GiniForestClassifier",
    "GiniTreeClassifier",
    "GiniTreeError",
    "ReplicateFailure",
    "SplitCandidate",
    "bag",
    "best_feature_and_split",
    "build_tree",
    "gini",
    "gini_of_labels",
    "optimal_split_for_feature",
    "predict_many",
    "predict_one",
    "random_forest",
    "weighted_gini",
]
__version__ = "0.1.0"
