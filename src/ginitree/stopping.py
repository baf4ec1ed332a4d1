# -*- coding: utf-8 -*-
"""
ginitree.stopping
=================

Stopping rules for tree growth.

A node's split is always recorded before these checks run, so a node that
stops here still routes predictions through its own threshold; it simply
grows no children.
"""

from __future__ import annotations


def check_pre_split_stopping_conditions(n_observations: int, min_observations: int = 1) -> str | None:
    """Return a reason when a partition is too small to attempt a split.

    A partition with fewer than two rows, or fewer than ``min_observations``
    rows, is folded into the normal stopping logic instead of being surfaced
    as an error.  Below the root the child-size rule already guarantees this,
    so in practice it only stops a root fed with too few rows.
    """
    if n_observations < 2:
        return f"insufficient_data ({n_observations} < 2)"
    if n_observations < min_observations:
        return f"insufficient_data ({n_observations} < {min_observations})"
    return None


def check_post_split_stopping_conditions(
    branch_id: str,
    split_impurity: float,
    n_left: int,
    n_right: int,
    max_depth: int,
    gini_threshold: float,
    min_observations: int,
) -> str | None:
    """Decide whether a freshly recorded node should grow children.

    Conditions are checked in order: depth, purity, child size.  The root
    branch id ``"0"`` has depth 1.

    Args:
        branch_id (str): Path code of the node.
        split_impurity (float): Weighted Gini impurity of the chosen split.
        n_left (int): Observations on the ``<=`` side.
        n_right (int): Observations on the ``>`` side.
        max_depth (int): Maximum branch id length.
        gini_threshold (float): Impurity at or below which the node is pure enough.
        min_observations (int): Smallest child allowed to split further.

    Returns:
        str or None: The stopping reason, or None when both children should be grown.
    """
    if len(branch_id) >= max_depth:
        return f"max_depth ({len(branch_id)} >= {max_depth})"

    if split_impurity <= gini_threshold:
        return f"pure_enough ({split_impurity:.4f} <= {gini_threshold})"

    smallest = min(n_left, n_right)
    if smallest < min_observations:
        return f"min_observations ({smallest} < {min_observations})"

    return None
