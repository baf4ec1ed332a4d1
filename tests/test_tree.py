from dataclasses import replace

import numpy as np
import pytest
from ginitree import BranchTable, build_tree, predict_many, predict_one
from ginitree.stopping import check_pre_split_stopping_conditions


def _checkerboard(n=1000, seed=0):
    """Label is 1 when both coordinates round to the same integer."""
    rng = np.random.default_rng(seed)
    X = rng.uniform(-1, 1, size=(n, 2))
    y = (np.round(X[:, 0]) == np.round(X[:, 1])).astype(int)
    return X, y


def _angled(n=1000, seed=0):
    rng = np.random.default_rng(seed)
    X = rng.uniform(-1, 1, size=(n, 2))
    y = (X[:, 0] > X[:, 1]).astype(int)
    return X, y


def _noisy(n=300, n_features=3, seed=1):
    rng = np.random.default_rng(seed)
    X = rng.normal(size=(n, n_features))
    y = (rng.random(n) < 1 / (1 + np.exp(-2 * X[:, 0]))).astype(int)
    return X, y


def _accuracy(table, X, y):
    return np.mean((predict_many(table, X) >= 0.5) == y)


def test_separable_data_gives_single_root_split():
    X = np.array([[-1.0], [-0.5], [0.5], [1.0]])
    table = build_tree(X, [0, 0, 1, 1], max_depth=5, gini_threshold=0.0, min_observations=1)
    assert len(table) == 1
    root = table["0"]
    assert root.leaf_predictions == (0.0, 1.0)
    assert predict_one(table, [-0.7]) == 0.0
    assert predict_one(table, [0.9]) == 1.0


@pytest.mark.parametrize("max_depth", [1, 2, 3, 5])
def test_branch_ids_never_exceed_max_depth(max_depth):
    X, y = _noisy()
    table = build_tree(X, y, max_depth=max_depth, gini_threshold=0.0, min_observations=1)
    assert len(table) > 0
    assert all(len(b.branch_id) <= max_depth for b in table)
    assert table.depth <= max_depth


def test_branch_table_is_prefix_closed():
    X, y = _noisy()
    table = build_tree(X, y, max_depth=6, gini_threshold=0.0, min_observations=1)
    ids = [b.branch_id for b in table]
    assert len(ids) == len(set(ids))
    assert ids[0] == "0"
    assert all(set(i) <= {"0", "1"} for i in ids)
    assert all(b.parent_id is None or b.parent_id in table for b in table)


def test_max_depth_one_keeps_only_the_root():
    X, y = _noisy()
    table = build_tree(X, y, max_depth=1, gini_threshold=0.0, min_observations=1)
    assert [b.branch_id for b in table] == ["0"]


def test_min_observations_stops_growth():
    X, y = _noisy(n=100)
    table = build_tree(X, y, max_depth=10, gini_threshold=0.0, min_observations=100)
    assert len(table) == 1


def test_gini_threshold_stops_growth():
    X, y = _noisy()
    table = build_tree(X, y, max_depth=10, gini_threshold=0.5, min_observations=1)
    assert len(table) == 1


def test_stopped_node_still_routes_predictions():
    X, y = _checkerboard(n=400)
    table = build_tree(X, y, max_depth=1, gini_threshold=0.0, min_observations=1)
    root = table["0"]
    below = np.zeros(2)
    below[root.feature_index] = root.threshold
    above = below.copy()
    above[root.feature_index] = root.threshold + 1e-6
    assert predict_one(table, below) == root.leaf_predictions[0]
    assert predict_one(table, above) == root.leaf_predictions[1]


def test_constant_features_give_empty_table_and_base_rate():
    X = np.ones((5, 2))
    y = [1, 0, 1, 1, 0]
    table = build_tree(X, y, max_depth=3, gini_threshold=0.0, min_observations=1)
    assert len(table) == 0
    assert predict_one(table, [1.0, 1.0]) == pytest.approx(0.6)


def test_predict_many_is_idempotent():
    X, y = _noisy()
    table = build_tree(X, y, max_depth=4, gini_threshold=0.0, min_observations=1)
    first = predict_many(table, X)
    second = predict_many(table, X)
    assert np.array_equal(first, second)
    assert first.shape == (len(X),)
    assert np.all((first >= 0) & (first <= 1))


def test_mapping_observations_match_positional_rows():
    X, y = _noisy()
    names = ["a", "b", "c"]
    table = build_tree(X, y, max_depth=4, gini_threshold=0.0, min_observations=1, feature_names=names)
    rows = [dict(zip(names, row)) for row in X[:20]]
    assert np.array_equal(predict_many(table, rows), predict_many(table, X[:20]))


def test_feature_subsampling_is_reproducible():
    X, y = _noisy(n_features=6)
    kw = dict(max_depth=5, gini_threshold=0.0, min_observations=1, m_features=2)
    t1 = build_tree(X, y, random_state=3, **kw)
    t2 = build_tree(X, y, random_state=3, **kw)
    assert t1.to_records() == t2.to_records()


def test_feature_subsampling_restricts_each_node_search():
    rng = np.random.default_rng(4)
    # a gap around zero wider than the grid spacing, so one cut is pure
    signal = rng.uniform(0.2, 1, size=200) * rng.choice([-1, 1], size=200)
    X = np.column_stack([signal, rng.uniform(-1, 1, size=200)])
    y = (signal > 0).astype(int)
    kw = dict(max_depth=4, gini_threshold=0.0, min_observations=1)

    full = build_tree(X, y, **kw)
    assert {b.feature for b in full} == {"X0"}

    # with one drawn column per node, some nodes only ever see the noise
    used = set()
    for seed in range(10):
        used |= {b.feature for b in build_tree(X, y, m_features=1, random_state=seed, **kw)}
    assert "X1" in used


def test_draws_hold_m_features_distinct_columns(monkeypatch):
    import ginitree.tree as tree

    real = tree._draw_features
    draws = []

    def recording(rng, n_features, m_features):
        feats = real(rng, n_features, m_features)
        draws.append(tuple(feats))
        return feats

    monkeypatch.setattr(tree, "_draw_features", recording)
    X, y = _noisy(n_features=6)
    build_tree(X, y, max_depth=4, gini_threshold=0.0, min_observations=1, m_features=2, random_state=0)

    assert len(draws) > 1
    assert all(len(d) == 2 and len(set(d)) == 2 for d in draws)
    assert all(0 <= i < 6 for d in draws for i in d)
    assert len(set(draws)) > 1


def test_root_with_fewer_rows_than_min_observations_is_not_split():
    X = np.array([[0.0], [1.0], [2.0], [3.0]])
    table = build_tree(X, [0, 0, 1, 1], max_depth=3, gini_threshold=0.0, min_observations=5)
    assert len(table) == 0
    assert predict_one(table, [3.0]) == pytest.approx(0.5)


def test_pre_split_stopping_reasons():
    assert check_pre_split_stopping_conditions(1) is not None
    assert check_pre_split_stopping_conditions(4, min_observations=5).startswith("insufficient_data")
    assert check_pre_split_stopping_conditions(5, min_observations=5) is None


def test_predict_many_on_no_observations():
    X, y = _noisy()
    table = build_tree(X, y, max_depth=3, gini_threshold=0.0, min_observations=1)
    assert predict_many(table, []).shape == (0,)
    assert predict_many(table, np.empty((0, 3))).shape == (0,)


def test_to_records_exposes_split_predictions():
    X, y = _noisy()
    table = build_tree(X, y, max_depth=2, gini_threshold=0.0, min_observations=1)
    records = table.to_records()
    assert len(records) == len(table)
    assert {"branch_id", "feature", "threshold", "split0", "split1"} <= set(records[0])


def test_branch_table_rejects_orphans():
    table = BranchTable(["x"], base_rate=0.5)
    X = np.array([[0.0], [1.0]])
    source = build_tree(X, [0, 1], max_depth=1, gini_threshold=0.0, min_observations=1)
    root = source["0"]
    orphan = replace(root, branch_id="01")
    with pytest.raises(ValueError):
        table.add(orphan)


@pytest.mark.parametrize("kwargs", [
    dict(max_depth=0),
    dict(max_depth=2.5),
    dict(gini_threshold=0.7),
    dict(gini_threshold=-0.1),
    dict(min_observations=0),
    dict(n_candidates=0),
    dict(m_features=4),
])
def test_bad_hyperparameters_fail_fast(kwargs):
    X, y = _noisy()
    params = dict(max_depth=3, gini_threshold=0.0, min_observations=1)
    params.update(kwargs)
    with pytest.raises(ValueError):
        build_tree(X, y, **params)


def test_malformed_data_fails_fast():
    X, y = _noisy(n=10)
    with pytest.raises(ValueError):
        build_tree(X, y[:-1], max_depth=3, gini_threshold=0.0, min_observations=1)
    with pytest.raises(ValueError):
        build_tree(X, np.full(10, 2), max_depth=3, gini_threshold=0.0, min_observations=1)
    X_nan = X.copy()
    X_nan[0, 0] = np.nan
    with pytest.raises(ValueError):
        build_tree(X_nan, y, max_depth=3, gini_threshold=0.0, min_observations=1)


def test_checkerboard_depth_four_fits_training_data():
    X, y = _checkerboard()
    table = build_tree(X, y, max_depth=4, gini_threshold=0.0, min_observations=1)
    assert _accuracy(table, X, y) > 0.9


def test_angled_boundary_is_approximated_by_rectangles():
    # at equal depth 2 the checkerboard scores lower (~75%) than the diagonal
    # (~87%): no single cut helps on it, so compare against its depth-4 fit
    Xc, yc = _checkerboard()
    checker_acc = _accuracy(build_tree(Xc, yc, max_depth=4, gini_threshold=0.0, min_observations=1), Xc, yc)
    Xa, ya = _angled()
    angled_acc = _accuracy(build_tree(Xa, ya, max_depth=2, gini_threshold=0.0, min_observations=1), Xa, ya)
    assert angled_acc > 0.6
    assert angled_acc < 0.95
    assert angled_acc < checker_acc - 0.03
