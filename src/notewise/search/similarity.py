"""Cosine similarity over dense vectors."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Sequence


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``.

    The result lies in ``[-1, 1]``.  If either vector has zero magnitude
    the similarity is undefined and ``nan`` is returned.  Vectors of
    different lengths raise ``ValueError``.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        msg = f"Cannot compare vectors of length {va.size} and {vb.size}"
        raise ValueError(msg)
    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0.0:
        return float("nan")
    return float(np.dot(va, vb)) / norm
