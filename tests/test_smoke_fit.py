import numpy as np
from ginitree import GiniBaggingClassifier, GiniForestClassifier, GiniTreeClassifier

X = np.array([[1.0, 0.5], [2.0, 0.1], [3.0, 0.9], [4.0, 0.3], [5.0, 0.7], [6.0, 0.2]])
y = np.array([0, 0, 0, 1, 1, 1])


def test_tree_smoke():
    clf = GiniTreeClassifier(max_depth=3)
    clf.fit(X, y, feature_names=['num', 'aux'])
    _ = clf.predict(X)
    _ = clf.export_rules()


def test_bagging_smoke():
    clf = GiniBaggingClassifier(n_trees=3, max_depth=3, random_state=0)
    clf.fit(X, y)
    _ = clf.predict_proba(X)


def test_forest_smoke():
    clf = GiniForestClassifier(n_trees=3, max_depth=3, random_state=0)
    clf.fit(X, y)
    _ = clf.predict(X)
