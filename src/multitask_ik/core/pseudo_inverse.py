"""
SVD-based pseudo-inverse with optional singularity-robust damping.
"""

import numpy as np

DEFAULT_DAMPING = 0.2
DEFAULT_RCOND = 1e-10


def pseudo_inverse(M: np.ndarray, damped: bool = True,
                   damping: float = DEFAULT_DAMPING,
                   rcond: float = DEFAULT_RCOND) -> np.ndarray:
    """
    Pseudo-inverse of an (m, n) matrix.

    Damped mode returns V diag(s / (s^2 + lambda^2)) U^T, which stays bounded
    and goes to zero along directions whose singular value vanishes.
    Exact mode returns the Moore-Penrose inverse; singular values below
    rcond * max(s) are treated as zero rather than inverted.

    Args:
        M: (m, n) matrix
        damped: Use the damped (regularized) inverse
        damping: Damping factor lambda, only used when damped
        rcond: Relative cutoff for small singular values in exact mode

    Returns:
        (n, m) pseudo-inverse
    """
    if damping < 0.0:
        raise ValueError(f"damping must be non-negative, got {damping}")

    M = np.asarray(M, dtype=float)
    m, n = M.shape
    if m == 0 or n == 0:
        return np.zeros((n, m))

    U, s, Vt = np.linalg.svd(M, full_matrices=False)
    s_inv = np.zeros_like(s)

    if damped and damping > 0.0:
        s_inv = s / (s * s + damping * damping)
    else:
        cutoff = rcond * (s[0] if s.size else 0.0)
        nonzero = s > cutoff
        s_inv[nonzero] = 1.0 / s[nonzero]

    return (Vt.T * s_inv) @ U.T
