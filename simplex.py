"""
Two-phase primal simplex over an exact rational tableau.

Row 0 of the tableau is the objective row holding reduced costs; every
other row is a constraint whose basic column is recorded in the basis.
"""

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from exceptions import (
    InfeasibleProblemError,
    IterationLimitError,
    NonOptimalError,
    TableauCorruptionError,
    UnboundedProblemError,
)
from matrix_exact import ExactMatrix
from rational import ZERO, as_rational
from solution import export_values
from standardizer import Column, ColumnKind

log = logging.getLogger(__name__)

ITERATION_MAX = 500


class IterationResult(Enum):
    INTERMEDIATE = 'intermediate'
    UNBOUNDED = 'unbounded'
    OPTIMAL = 'optimal'


class FirstTieBreak:
    """Always picks the first candidate."""

    def choose(self, candidates):
        return candidates[0]


class RandomTieBreak:
    """Picks uniformly among tied candidates; seed it for reproducible runs."""

    def __init__(self, seed=None):
        self._random = random.Random(seed)

    def choose(self, candidates):
        return self._random.choice(candidates)


@dataclass
class IterationState:
    """
    Per-run pivoting state.

    ``basis`` holds one column index per tableau row, with None for the
    objective row and for constraint rows found redundant. Once any
    constraint rhs reads zero the run is degenerate for good and switches
    to Bland's rule.
    """
    columns: List[Column]
    basis: List[Optional[int]]
    optimizer: str
    is_degenerate: bool = False
    phase: int = 2
    pivots: List[tuple] = field(default_factory=list)

    @property
    def names(self):
        return [column.name for column in self.columns]


class _Rendered:
    def __init__(self, simplex):
        self.simplex = simplex

    def __str__(self):
        return self.simplex.render()


class PrimalSimplex:
    def __init__(self, system, objective, optimizer='maximize', objective_offset=0,
                 max_iterations=ITERATION_MAX, tie_break=None):
        """
        Prepare the tableau of a LinearSystem.

        :param system: LinearSystem from standardizer.augment
        :param objective: dict, objective coefficients keyed by column name
        :param optimizer: 'maximize' or 'minimize'
        :param objective_offset: constant added to the reported objective value
        :param max_iterations: int, pivot limit for each phase
        :param tie_break: strategy with a ``choose(candidates)`` method
        """
        if optimizer not in ('maximize', 'minimize'):
            raise ValueError(f"optimizer must be 'maximize' or 'minimize', got '{optimizer}'")
        if max_iterations < 0:
            raise ValueError("max_iterations must be nonnegative")
        self.optimizer = optimizer
        self.objective = {name: as_rational(value) for name, value in objective.items()}
        self.objective_offset = as_rational(objective_offset)
        self.max_iterations = max_iterations
        self.tie_break = tie_break if tie_break is not None else RandomTieBreak()

        columns = [replace(column) for column in system.columns]
        unknown = [name for name in self.objective if name not in {column.name for column in columns}]
        if unknown:
            raise ValueError(f"Objective refers to unknown columns: {unknown}")
        self.state = IterationState(columns, [None] + list(system.basis), optimizer)
        self.tableau = ExactMatrix([self._phase_two_row()] + [list(row) for row in system.rows])
        self._check_basis()

    @property
    def has_artificials(self):
        return any(column.kind is ColumnKind.ARTIFICIAL for column in self.state.columns)

    def _phase_two_row(self):
        row = [ZERO if column.eliminated else self.objective.get(column.name, ZERO).negated()
               for column in self.state.columns]
        return row + [ZERO]

    def _check_basis(self):
        """Check that every row has a basis slot pointing at a real column."""
        basis = self.state.basis
        if len(basis) != self.tableau.row_count:
            raise TableauCorruptionError(
                f"Basis length {len(basis)} does not match tableau row count {self.tableau.row_count}"
            )
        if self.tableau.column_count != len(self.state.columns) + 1:
            raise TableauCorruptionError(
                f"Tableau has {self.tableau.column_count} columns for {len(self.state.columns)} variables"
            )
        for index in basis[1:]:
            if index is not None and not 0 <= index < len(self.state.columns):
                raise TableauCorruptionError(f"Basis refers to missing column {index}")

    # ~ pivoting ~

    def _sign(self):
        return 1 if self.state.optimizer == 'maximize' else -1

    def _latch_degeneracy(self):
        if self.state.is_degenerate:
            return
        for row in range(1, self.tableau.row_count):
            if self.tableau.get(row, -1).is_zero():
                self.state.is_degenerate = True
                log.debug("Degenerate tableau at row %d, switching to Bland's rule", row)
                return

    def _find_pivot_column(self):
        """Find the entering column, or None when the tableau is optimal."""
        costs = self.tableau.get_row(0)
        sign = self._sign()
        candidates = []
        for index, column in enumerate(self.state.columns):
            if column.eliminated or column.kind is ColumnKind.PSEUDO:
                continue
            if costs[index].mul(sign) < 0:
                candidates.append(index)
        if not candidates:
            return None
        if self.state.is_degenerate:
            return min(candidates)
        best = min(costs[index].mul(sign) for index in candidates)
        return self.tie_break.choose([index for index in candidates if costs[index].mul(sign) == best])

    def _find_pivot_row(self, pivot_column):
        """Find the leaving row using the minimum ratio test, or None when unbounded."""
        ratios = []
        for row in range(1, self.tableau.row_count):
            entry = self.tableau.get(row, pivot_column)
            if entry > 0:
                ratios.append((self.tableau.get(row, -1).div(entry), row))
        if not ratios:
            return None
        best = min(ratio for ratio, _ in ratios)
        tied = [row for ratio, row in ratios if ratio == best]
        if self.state.is_degenerate:
            return min(tied)
        return self.tie_break.choose(tied)

    def _pivot(self, pivot_row, pivot_column):
        self.tableau.divide_to_one(pivot_row, pivot_column)
        for row in range(self.tableau.row_count):
            if row != pivot_row:
                self.tableau.zero_out(row, pivot_row, pivot_column)
        self.state.basis[pivot_row] = pivot_column
        self.state.pivots.append((pivot_row, pivot_column))
        log.debug(
            "Phase %d pivot on row %d, column %s",
            self.state.phase, pivot_row, self.state.columns[pivot_column].name,
        )
        log.debug("Tableau after pivot:\n%s", _Rendered(self))
        self._check_tableau_integrity()

    def _check_tableau_integrity(self):
        """Every constraint rhs stays nonnegative after a pivot."""
        for row in range(1, self.tableau.row_count):
            value = self.tableau.get(row, -1)
            if value < 0:
                raise TableauCorruptionError(f"Negative right-hand side {value} at row {row} after pivot")

    def iterate(self, allow_pivot=True):
        """Run a single pivot step."""
        self._latch_degeneracy()
        pivot_column = self._find_pivot_column()
        if pivot_column is None:
            return IterationResult.OPTIMAL
        if not allow_pivot:
            raise IterationLimitError(f"phase {self.state.phase} after {self.max_iterations} pivots")
        pivot_row = self._find_pivot_row(pivot_column)
        if pivot_row is None:
            return IterationResult.UNBOUNDED
        self._pivot(pivot_row, pivot_column)
        return IterationResult.INTERMEDIATE

    def _run(self):
        pivots = 0
        while True:
            result = self.iterate(allow_pivot=pivots < self.max_iterations)
            if result is not IterationResult.INTERMEDIATE:
                return result
            pivots += 1

    # ~ phases ~

    def _phase_one(self):
        """Minimize the sum of artificial columns."""
        self.state.phase = 1
        self.state.optimizer = 'minimize'
        row = [-1 if column.kind is ColumnKind.ARTIFICIAL else 0 for column in self.state.columns]
        self.tableau.set_row(0, row + [0])
        for index in range(1, self.tableau.row_count):
            basic = self.state.basis[index]
            if basic is not None and self.state.columns[basic].kind is ColumnKind.ARTIFICIAL:
                self.tableau.zero_out(0, index, basic)
        log.debug("Phase 1 start, infeasibility %s", self.tableau.get(0, -1))

        if self._run() is IterationResult.UNBOUNDED:
            raise NonOptimalError("phase 1 objective is unbounded")
        infeasibility = self.tableau.get(0, -1)
        if infeasibility > 0:
            raise InfeasibleProblemError(f"phase 1 ended with infeasibility {infeasibility}")

    def _eliminate(self, index):
        self.tableau.set_column(index, 0)
        self.state.columns[index].eliminated = True

    def _transition_to_phase_two(self):
        """Drop artificials and restore the real objective."""
        columns = self.state.columns
        basis = self.state.basis
        costs = self.tableau.get_row(0)
        basic = set(index for index in basis if index is not None)
        for index, column in enumerate(columns):
            if index in basic:
                continue
            if column.kind is ColumnKind.ARTIFICIAL or costs[index] < 0:
                self._eliminate(index)

        for row in range(1, self.tableau.row_count):
            artificial = basis[row]
            if artificial is None or columns[artificial].kind is not ColumnKind.ARTIFICIAL:
                continue
            target = None
            for index, column in enumerate(columns):
                if column.eliminated or column.kind in (ColumnKind.ARTIFICIAL, ColumnKind.PSEUDO):
                    continue
                if not self.tableau.get(row, index).is_zero():
                    target = index
                    break
            if target is not None:
                self._pivot(row, target)
            else:
                log.debug("Row %d is redundant, dropping it", row)
                self.tableau.set_row(row, 0)
                basis[row] = None
            self._eliminate(artificial)

        self.state.phase = 2
        self.state.optimizer = self.optimizer
        self.tableau.set_row(0, self._phase_two_row())
        for row in range(1, self.tableau.row_count):
            if basis[row] is not None:
                self.tableau.zero_out(0, row, basis[row])
        log.debug("Phase 2 start, objective %s", self.tableau.get(0, -1))

    def solve(self):
        """
        Solve the problem and return a Solution.

        Raises InfeasibleProblemError, UnboundedProblemError or
        IterationLimitError when no optimum is reached.
        """
        if self.has_artificials:
            self._phase_one()
            self._transition_to_phase_two()
        else:
            self.state.phase = 2
        if self._run() is IterationResult.UNBOUNDED:
            raise UnboundedProblemError("Problem is unbounded.")
        self._check_basis()
        return export_values(self.tableau, self.state.columns, self.state.basis, self.objective_offset)

    @property
    def pivot_history(self):
        return list(self.state.pivots)

    def render(self):
        """Tableau as a text table with basis labels."""
        names = self.state.names
        row_names = ['z'] + [names[index] if index is not None else '-' for index in self.state.basis[1:]]
        return self.tableau.to_string(row_names, names + ['RHS'])
