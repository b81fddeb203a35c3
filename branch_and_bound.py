import logging
import math

from bounds import Formula, StandardBound
from exceptions import InfeasibleProblemError, IntegerSolutionNotFoundError
from rational import ONE, ZERO
from simplex import ITERATION_MAX, PrimalSimplex
from solution import clean_export_values
from standardizer import augment, split_terms, standardize

log = logging.getLogger(__name__)

BRANCH_MAX = 200


# Node of the depth-first search: the branch rows added on top of the root problem
class Node:
    def __init__(self, level, bounds):
        self.level = level
        self.bounds = bounds

    def __repr__(self):
        return f"Node(L:{self.level}, rows:{[str(bound) for bound in self.bounds]})"


def _unique(names):
    seen = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return seen


class BranchAndBound:
    """
    Depth-first branch and bound over exact simplex relaxations.

    Every node re-solves the standardized problem plus its own branch rows
    from scratch; nothing is shared between nodes.
    """

    def __init__(self, formula, max_branches=BRANCH_MAX, max_iterations=ITERATION_MAX,
                 tie_break=None, bound_binaries=True):
        if max_branches < 0:
            raise ValueError("max_branches must be nonnegative")
        self.formula = formula
        self.max_branches = max_branches
        self.max_iterations = max_iterations
        self.tie_break = tie_break
        self.bound_binaries = bound_binaries

        self.standardized = standardize(formula.bounds, formula.binary, formula.integer, formula.urs)
        self.binary = _unique(formula.binary + self.standardized.condition)
        self.integer = [name for name in _unique(formula.integer) if name not in self.binary]
        self.objective = split_terms(formula.objective, self.standardized.split)
        self.nodes_visited = 0
        self._branch_counter = 0

    @property
    def needs_integrality(self):
        return bool(self.binary or self.integer)

    @property
    def integral_objective(self):
        """True when the objective can only take integer values."""
        integral = set(self.binary) | set(self.integer)
        return self.formula.objective_offset.is_integer() and all(
            name in integral and coefficient.is_integer()
            for name, coefficient in self.formula.objective.items()
        )

    def _binary_rows(self):
        if not self.bound_binaries:
            return []
        return [StandardBound({name: ONE}, '<=', 1) for name in self.binary]

    def relax(self, extra=()):
        """Solve the LP relaxation with ``extra`` rows added."""
        fixed = self.standardized.bounds
        rows = fixed + self._binary_rows() + list(extra)
        system = augment(
            self.objective, rows, self.standardized.condition, self.standardized.split, internal_from=len(fixed)
        )
        simplex = PrimalSimplex(
            system,
            self.objective,
            optimizer=self.formula.optimizer,
            objective_offset=self.formula.objective_offset,
            max_iterations=self.max_iterations,
            tie_break=self.tie_break,
        )
        return simplex.solve()

    def _next_name(self):
        self._branch_counter += 1
        return f"branch{self._branch_counter}"

    def _branch_rows(self, name, value):
        lhs = split_terms({name: ONE}, self.standardized.split)
        if name in self.binary:
            return (
                StandardBound(lhs, '=', 0, self._next_name()),
                StandardBound(lhs, '=', 1, self._next_name()),
            )
        return (
            StandardBound(lhs, '<=', math.floor(value), self._next_name()),
            StandardBound(lhs, '>=', math.ceil(value), self._next_name()),
        )

    def select_branch(self, solution):
        """Branch rows for the first variable violating integrality, or None."""
        for name in self.binary:
            value = solution.values.get(name, ZERO)
            if not (value.is_zero() or value.is_one()):
                return self._branch_rows(name, value)
        for name in self.integer:
            value = solution.values.get(name, ZERO)
            if not value.is_integer():
                return self._branch_rows(name, value)
        return None

    def _reached_target(self, root, incumbent):
        sign = self.formula.sign
        threshold = self.formula.threshold
        if threshold is not None:
            if incumbent.objective_value.mul(sign) >= root.objective_value.mul(sign).mul(threshold):
                log.debug("Incumbent %s reached the threshold of %s", incumbent.objective_value, threshold)
                return True
        if self.integral_objective:
            if self.formula.optimizer == 'maximize':
                target = math.floor(root.objective_value)
            else:
                target = math.ceil(root.objective_value)
            if incumbent.objective_value == target:
                log.debug("Incumbent %s matches the rounded root bound", incumbent.objective_value)
                return True
        return False

    def solve(self):
        """
        Solve the formula and return a Solution without condition binaries.

        Raises IntegerSolutionNotFoundError when the search ends without an
        integer-feasible solution.
        """
        condition = self.standardized.condition
        root = self.relax()
        log.debug("Root relaxation objective %s", root.objective_value)
        if not self.needs_integrality:
            return clean_export_values(root, condition)
        branches = self.select_branch(root)
        if branches is None:
            return clean_export_values(root, condition)

        sign = self.formula.sign
        stack = [Node(1, [branches[0]]), Node(1, [branches[1]])]
        incumbent = None
        while stack and self.nodes_visited < self.max_branches:
            node = stack.pop()
            self.nodes_visited += 1
            log.debug("Expanding %r", node)
            try:
                relaxed = self.relax(node.bounds)
            except InfeasibleProblemError:
                log.debug("Branch infeasible, skipping")
                continue

            if incumbent is not None and \
                    relaxed.objective_value.mul(sign) <= incumbent.objective_value.mul(sign):
                log.debug("Pruned branch with objective %s", relaxed.objective_value)
                continue

            branches = self.select_branch(relaxed)
            if branches is not None:
                stack.append(Node(node.level + 1, node.bounds + [branches[0]]))
                stack.append(Node(node.level + 1, node.bounds + [branches[1]]))
                continue

            incumbent = relaxed
            log.debug("New incumbent with objective %s", incumbent.objective_value)
            if self._reached_target(root, incumbent):
                break

        if incumbent is None:
            raise IntegerSolutionNotFoundError(f"after {self.nodes_visited} branches")
        return clean_export_values(incumbent, condition)


def solve(formula, **options):
    """Solve a Formula; ``options`` are passed to BranchAndBound."""
    return BranchAndBound(formula, **options).solve()


# --- Example Usage and Verification ---
if __name__ == "__main__":
    from utils import solve_with_scipy

    logging.basicConfig(level=logging.INFO)
    examples = [
        {
            "name": "Example 1: Simple case",
            "capacity": 10,
            "values": [10, 10, 12, 18],
            "weights": [2, 4, 6, 9]
        },
        {
            "name": "Example 2: Edge Case (Low Capacity)",
            "capacity": 5,
            "values": [60, 100, 120],
            "weights": [10, 20, 30]
        },
    ]

    for example in examples:
        names = [f"x{i + 1}" for i in range(len(example["values"]))]
        formula = Formula(
            optimizer='maximize',
            objective=dict(zip(names, example["values"])),
            bounds=[StandardBound(dict(zip(names, example["weights"])), '<=', example["capacity"])],
            binary=names,
        )
        result = solve(formula)
        reference_value, _ = solve_with_scipy(formula)
        print(f"--- {example['name']} ---")
        print(f"Branch&Bound: {result.objective_value} with {dict((k, str(v)) for k, v in result.values.items())}")
        print(f"SciPy MILP:   {reference_value}")
