# -*- coding: utf-8 -*-
"""
ginitree.exceptions
===================

Errors raised while growing trees and running ensembles.

Failures local to a single tree node (``DegenerateSplitError``,
``EmptyPartitionError``) or to a single ensemble replicate
(``ReplicateFailure``) are recovered by the caller; they never abort a sibling
branch or a sibling replicate.
"""

from __future__ import annotations


class GiniTreeError(Exception):
    """Base class for all ginitree errors."""


class EmptyPartitionError(GiniTreeError, ValueError):
    """A candidate split left one side without any (non-missing) label."""


class DegenerateSplitError(GiniTreeError, ValueError):
    """No candidate threshold yields a defined impurity for a partition."""


class ReplicateFailure(GiniTreeError, RuntimeError):
    """An ensemble replicate failed to build its tree or to predict.

    Parameters
    ----------
    index : int
        Replicate index within the ensemble.
    stage : {"build", "predict"}
        Step at which the replicate failed.
    cause : BaseException
        The original exception.
    """

    def __init__(self, index: int, stage: str, cause: BaseException):
        self.index = int(index)
        self.stage = stage
        self.cause = cause
        super().__init__(f"replicate {self.index} failed during {stage}: {cause!r}")

    def __reduce__(self):
        return (type(self), (self.index, self.stage, self.cause))
