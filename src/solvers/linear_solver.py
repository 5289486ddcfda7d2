"""
Linear Solver
=============

Solution of the Newton system with some DOFs prescribed.
"""

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.linalg import spsolve, gmres, spilu, LinearOperator
from typing import Tuple

from .exceptions import LinearSolverError

LINEAR_SOLVERS = ('direct', 'gmres')


def solve_constrained(matrix: csr_matrix, rhs: np.ndarray,
                      constrained: np.ndarray, values: np.ndarray,
                      method: str = 'direct', rtol: float = 1e-10,
                      max_iterations: int = 1000) -> Tuple[np.ndarray, int]:
    """
    Solve A x = b with x[constrained] = values.

    Constrained rows and columns are eliminated; the remaining system is
    solved directly or with ILU-preconditioned GMRES.

    Args:
        matrix: sparse system matrix, shape (n, n)
        rhs: right-hand side, shape (n,)
        constrained: indices of prescribed entries
        values: prescribed values
        method: 'direct' or 'gmres'
        rtol: relative tolerance for GMRES
        max_iterations: GMRES iteration limit

    Returns:
        x: solution, shape (n,)
        n_iterations: linear iterations (1 for the direct solver)

    Raises:
        LinearSolverError: on failure or a non-finite solution
    """
    if method not in LINEAR_SOLVERS:
        raise ValueError(f"Unknown linear solver: {method}")

    n = matrix.shape[0]
    x = np.zeros(n)
    x[constrained] = values

    free = np.ones(n, dtype=bool)
    free[constrained] = False
    free_dofs = np.where(free)[0]
    if len(free_dofs) == 0:
        return x, 0

    matrix = csr_matrix(matrix)
    A_ff = matrix[free_dofs][:, free_dofs].tocsc()
    b_f = rhs[free_dofs] - matrix[free_dofs] @ x

    if method == 'direct':
        x_f = spsolve(A_ff, b_f)
        n_iterations = 1
    else:
        x_f, n_iterations = _solve_gmres(A_ff, b_f, rtol, max_iterations)

    x_f = np.atleast_1d(x_f)
    if not np.all(np.isfinite(x_f)):
        raise LinearSolverError("Linear solve produced a non-finite solution")

    x[free_dofs] = x_f
    return x, n_iterations


def _solve_gmres(A, b, rtol, max_iterations):
    """ILU-preconditioned GMRES; returns (solution, iterations)."""
    try:
        ilu = spilu(A)
    except RuntimeError as exc:
        raise LinearSolverError(f"ILU factorization failed: {exc}") from exc

    preconditioner = LinearOperator(A.shape, matvec=ilu.solve)
    count = [0]

    def callback(_):
        count[0] += 1

    x, info = gmres(A, b, M=preconditioner, rtol=rtol, maxiter=max_iterations,
                    callback=callback, callback_type='pr_norm')
    if info != 0:
        raise LinearSolverError(f"GMRES did not converge (info = {info})")
    return x, count[0]
