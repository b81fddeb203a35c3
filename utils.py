# utils.py
import numpy as np
from scipy.optimize import Bounds, LinearConstraint, linprog, milp

from bounds import Formula, StandardBound


def formula_from_arrays(c, A, b, optimizer='maximize', cmp='<=', names=None, **options):
    """Build a Formula from ``c``, ``A`` and ``b`` with one comparator for every row."""
    c = np.asarray(c)
    A = np.asarray(A)
    b = np.asarray(b)
    m, n = A.shape
    valid, message = validate_inputs(c, A, b, m, n)
    if not valid:
        raise ValueError(message)
    names = names or [f"x{i + 1}" for i in range(n)]
    objective = {name: value.item() for name, value in zip(names, c)}
    bounds = [
        StandardBound({name: value.item() for name, value in zip(names, row)}, cmp, rhs.item())
        for row, rhs in zip(A, b)
    ]
    return Formula(optimizer=optimizer, objective=objective, bounds=bounds, **options)


def create_example_3d():
    """Create a simple example 3D LP problem (Maximize)"""
    c = np.array([2, 3, 4])
    A = np.array([
        [1, 1, 1],
        [2, 1, 0],
        [0, 1, 3],
    ])
    b = np.array([6, 4, 7])
    return formula_from_arrays(c, A, b)


def create_example_2d():
    """Create a simple example 2D LP problem (Maximize)"""
    # Maximize: z = 3x1 + 5x2
    # Subject to:
    #   x1 <= 4
    #   2x2 <= 12  (x2 <= 6)
    #   3x1 + 2x2 <= 18
    #   x1, x2 >= 0
    # Optimal: x1=2, x2=6, z = 36
    c = np.array([3, 5])
    A = np.array([
        [1, 0],
        [0, 2],
        [3, 2]
    ])
    b = np.array([4, 12, 18])
    return formula_from_arrays(c, A, b)


def validate_inputs(c, A, b, m, n):
    """Validate input dimensions and values more thoroughly."""
    # Type checks
    if not isinstance(c, np.ndarray) or c.ndim != 1: return False, "Objective coefficients (c) must be a 1D array."
    if not isinstance(A, np.ndarray) or A.ndim != 2: return False, "Constraint matrix (A) must be a 2D array."
    if not isinstance(b, np.ndarray) or b.ndim != 1: return False, "RHS values (b) must be a 1D array."

    # Dimension consistency
    actual_m, actual_n = A.shape
    if actual_n != n: return False, f"Number of variables (n={n}) doesn't match A's columns ({actual_n})."
    if actual_m != m: return False, f"Number of constraints (m={m}) doesn't match A's rows ({actual_m})."
    if len(c) != n: return False, f"Length of objective coefficients c ({len(c)}) doesn't match n ({n})."
    if len(b) != m: return False, f"Length of RHS values b ({len(b)}) doesn't match m ({m})."

    if not np.issubdtype(A.dtype, np.number) or not np.issubdtype(b.dtype, np.number) \
            or not np.issubdtype(c.dtype, np.number):
        return False, "Inputs must be numeric."
    if not np.all(np.isfinite(c)): return False, "Objective coefficients (c) contain non-finite values (NaN or Inf)."
    if not np.all(np.isfinite(A)): return False, "Constraint matrix (A) contains non-finite values (NaN or Inf)."
    if not np.all(np.isfinite(b)): return False, "RHS values (b) contain non-finite values (NaN or Inf)."

    return True, "Inputs are valid."


def _variable_names(formula):
    names = []
    for terms in [formula.objective] + [bound.lhs for bound in formula.bounds]:
        for name in terms:
            if name not in names:
                names.append(name)
    for name in formula.binary + formula.integer + formula.urs:
        if name not in names:
            names.append(name)
    return names


def solve_with_scipy(formula):
    """
    Floating-point reference solution of a Formula with only standard bounds.

    Uses scipy.optimize.linprog, or scipy.optimize.milp when integrality is
    required. Strict comparators are treated as inclusive.

    Returns:
        tuple: (objective_value, values) as floats.
    Raises:
        ValueError: for logical bounds, or when scipy reports failure.
    """
    if not all(isinstance(bound, StandardBound) for bound in formula.bounds):
        raise ValueError("solve_with_scipy only accepts standard bounds")
    names = _variable_names(formula)
    index = {name: i for i, name in enumerate(names)}
    sign = formula.sign

    c = np.zeros(len(names))
    for name, value in formula.objective.items():
        c[index[name]] = -sign * float(value)

    A = np.zeros((len(formula.bounds), len(names)))
    lower = np.full(len(formula.bounds), -np.inf)
    upper = np.full(len(formula.bounds), np.inf)
    for row, bound in enumerate(formula.bounds):
        for name, value in bound.lhs.items():
            A[row, index[name]] = float(value)
        if bound.cmp in ('<', '<=', '='):
            upper[row] = float(bound.rhs)
        if bound.cmp in ('>', '>=', '='):
            lower[row] = float(bound.rhs)

    var_lower = np.zeros(len(names))
    var_upper = np.full(len(names), np.inf)
    integrality = np.zeros(len(names))
    for name in formula.urs:
        if name not in formula.binary:
            var_lower[index[name]] = -np.inf
    for name in formula.binary:
        var_upper[index[name]] = 1
        integrality[index[name]] = 1
    for name in formula.integer:
        integrality[index[name]] = 1

    if integrality.any():
        constraints = LinearConstraint(A, lower, upper) if len(formula.bounds) else None
        result = milp(c=c, constraints=constraints, integrality=integrality, bounds=Bounds(var_lower, var_upper))
    else:
        A_ub, b_ub, A_eq, b_eq = [], [], [], []
        for row in range(len(formula.bounds)):
            if lower[row] == upper[row]:
                A_eq.append(A[row])
                b_eq.append(upper[row])
                continue
            if np.isfinite(upper[row]):
                A_ub.append(A[row])
                b_ub.append(upper[row])
            if np.isfinite(lower[row]):
                A_ub.append(-A[row])
                b_ub.append(-lower[row])
        result = linprog(
            c,
            A_ub=np.array(A_ub) if A_ub else None,
            b_ub=np.array(b_ub) if b_ub else None,
            A_eq=np.array(A_eq) if A_eq else None,
            b_eq=np.array(b_eq) if b_eq else None,
            bounds=[(None if np.isinf(l) else l, None if np.isinf(u) else u) for l, u in zip(var_lower, var_upper)],
            method='highs',
        )

    if result.status == 2:
        raise ValueError("Problem is infeasible.")
    if result.status == 3:
        raise ValueError("Problem is unbounded.")
    if not result.success:
        raise ValueError(f"SciPy failed. Status: {result.status}, Message: {result.message}")

    objective_value = -sign * result.fun + float(formula.objective_offset)
    return objective_value, {name: float(result.x[i]) for i, name in enumerate(names)}
