# test_branch_and_bound.py

import pytest

from bounds import Formula, IfThen, Logical, StandardBound
from branch_and_bound import BranchAndBound, solve
from exceptions import IntegerSolutionNotFoundError, XorTrivialError
from rational import Rational
from utils import solve_with_scipy


def integer_example(**options):
    # Maximize: z = 8x + 5y
    # Subject to:
    #   x + y <= 6
    #   9x + 5y <= 45
    #   x, y integer
    # Relaxation: x=15/4, y=9/4, z=165/4. Integer optimum: x=5, y=0, z=40
    return Formula('maximize', {'x': 8, 'y': 5}, [
        StandardBound({'x': 1, 'y': 1}, '<=', 6),
        StandardBound({'x': 9, 'y': 5}, '<=', 45),
    ], integer=['x', 'y'], **options)


def test_integer_problem_matches_milp():
    formula = integer_example()
    solver = BranchAndBound(formula)
    solution = solver.solve()

    assert solution.objective_value == 40
    assert solution.values == {'x': 5, 'y': 0}
    assert solver.nodes_visited > 0

    reference_value, _ = solve_with_scipy(formula)
    assert reference_value == pytest.approx(40)


def test_root_relaxation_bound():
    solver = BranchAndBound(integer_example())
    root = solver.relax()
    assert root.objective_value == Rational(165, 4)
    assert root.values == {'x': Rational(15, 4), 'y': Rational(9, 4)}


def test_integral_objective_stops_at_rounded_bound():
    # Maximize: z = x + y
    # Subject to:
    #   -x + y <= 1
    #   3x + 2y <= 12
    #   2x + 3y <= 12
    # Relaxation z = 24/5, so any integer point with z = 4 is optimal
    formula = Formula('maximize', {'x': 1, 'y': 1}, [
        StandardBound({'x': -1, 'y': 1}, '<=', 1),
        StandardBound({'x': 3, 'y': 2}, '<=', 12),
        StandardBound({'x': 2, 'y': 3}, '<=', 12),
    ], integer=['x', 'y'])
    solver = BranchAndBound(formula)
    assert solver.integral_objective
    solution = solver.solve()
    assert solution.objective_value == 4
    assert all(value.is_integer() for value in solution.values.values())


def test_binary_knapsack():
    formula = Formula('maximize', {'a': 10, 'b': 13, 'c': 7}, [
        StandardBound({'a': 3, 'b': 4, 'c': 2}, '<=', 6),
    ], binary=['a', 'b', 'c'])
    solution = solve(formula)
    assert solution.objective_value == 20
    assert solution.values == {'a': 0, 'b': 1, 'c': 1}

    formula.objective_offset = Rational(10)
    assert solve(formula).objective_value == 30


def test_no_integer_solution():
    formula = Formula('maximize', {'x': 1}, [StandardBound({'x': 2}, '=', 1)], integer=['x'])
    with pytest.raises(IntegerSolutionNotFoundError):
        solve(formula)


def test_branch_limit():
    with pytest.raises(IntegerSolutionNotFoundError):
        solve(integer_example(), max_branches=0)
    with pytest.raises(ValueError):
        BranchAndBound(integer_example(), max_branches=-1)


def test_integral_relaxation_needs_no_branching():
    formula = Formula('maximize', {'x': 2}, [StandardBound({'x': 1}, '<=', 3)], integer=['x'])
    solver = BranchAndBound(formula)
    solution = solver.solve()
    assert solution.objective_value == 6
    assert solver.nodes_visited == 0


def test_unrestricted_integer():
    formula = Formula('minimize', {'x': 1}, [StandardBound({'x': 2}, '>=', -5)], integer=['x'], urs=['x'])
    solution = solve(formula)
    assert solution.objective_value == -2
    assert solution.values == {'x': -2}


def test_unrestricted_integer_strict_bound():
    # Maximize x subject to x < 3 with x integer and free: the row tightens to x <= 2
    formula = Formula('maximize', {'x': 1}, [StandardBound({'x': 1}, '<', 3)], integer=['x'], urs=['x'])
    solution = solve(formula)
    assert solution.objective_value == 2
    assert solution.values == {'x': 2}


def test_threshold_stops_early():
    formula = integer_example(threshold=0.9)
    solution = solve(formula)
    assert solution.objective_value >= Rational(165, 4) * Rational(9, 10)
    assert all(value.is_integer() for value in solution.values.values())
    with pytest.raises(ValueError):
        integer_example(threshold=1.5)


def test_if_then_hides_condition_binaries():
    # Maximize: z = 20x + y
    # Subject to:
    #   x > 0 => y <= 0
    #   y <= 10
    #   y >= 0
    #   x binary
    formula = Formula('maximize', {'x': 20, 'y': 1}, [
        IfThen(StandardBound({'x': 1}, '>', 0), StandardBound({'y': 1}, '<=', 0)),
        StandardBound({'y': 1}, '<=', 10),
        StandardBound({'y': 1}, '>=', 0),
    ], binary=['x'])
    solution = solve(formula)
    assert solution.objective_value == 20
    assert solution.values == {'x': 1, 'y': 0}
    assert '_y0' not in solution.reduced_cost


def test_big_m_disjunction():
    # Minimize x subject to 1 <= x <= 10 and (x <= 1/2 or x >= 4)
    formula = Formula('minimize', {'x': 1}, [
        StandardBound({'x': 1}, '>=', 1),
        StandardBound({'x': 1}, '<=', 10),
        Logical(StandardBound({'x': 1}, '<=', 0.5), StandardBound({'x': 1}, '>=', 4), 'or'),
    ])
    solution = solve(formula)
    assert solution.objective_value == 4
    assert solution.values == {'x': 4}


def test_trivial_xor_is_reported():
    formula = Formula('maximize', {'x': 1}, [
        Logical(StandardBound({'x': 1}, '>=', 2), StandardBound({'x': 1}, '>=', 3), 'xor'),
    ], binary=['x'])
    with pytest.raises(XorTrivialError):
        solve(formula)
