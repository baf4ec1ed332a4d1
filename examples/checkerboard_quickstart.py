import logging
import numpy as np
from time import perf_counter
from ginitree import GiniTreeClassifier, GiniBaggingClassifier, GiniForestClassifier

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")

rng = np.random.default_rng(42)
X = rng.uniform(-1, 1, size=(2000, 4))
y = (np.round(X[:, 0]) == np.round(X[:, 1])).astype(int)
feats = ["x0", "x1", "noise0", "noise1"]
X_train, X_test = X[:1500], X[1500:]
y_train, y_test = y[:1500], y[1500:]

tree = GiniTreeClassifier(max_depth=4, min_observations=5)
t0 = perf_counter(); tree.fit(X_train, y_train, feature_names=feats); print(f"fit: {perf_counter()-t0:.3f} s")
print(f"tree accuracy: {tree.score(X_test, y_test):.3f}")
tree.print_tree()
for rule in tree.export_rules():
    print(rule)
try:
    tree.export_graphviz("checkerboard_tree", format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")

for model in (GiniBaggingClassifier(n_trees=25, max_depth=4, random_state=0, n_jobs=-1),
              GiniForestClassifier(n_trees=25, max_depth=4, random_state=0, n_jobs=-1)):
    t0 = perf_counter(); model.fit(X_train, y_train, feature_names=feats)
    print(f"{type(model).__name__}: fit {perf_counter()-t0:.3f} s, "
          f"accuracy {model.score(X_test, y_test):.3f}")
