"""Maps final tableau columns back to caller-visible names."""

from dataclasses import dataclass, field
from typing import Dict

from rational import ZERO, Rational, as_rational
from standardizer import SLACK_KINDS, ColumnKind


@dataclass
class Solution:
    objective_value: Rational
    values: Dict[str, Rational] = field(default_factory=dict)
    slacks: Dict[str, Rational] = field(default_factory=dict)
    reduced_cost: Dict[str, Rational] = field(default_factory=dict)
    dual: Dict[str, Rational] = field(default_factory=dict)

    def to_payload(self):
        """Float rendering of the solution, e.g. for JSON output."""
        return {
            'objective_value': self.objective_value.to_float(),
            'values': {name: value.to_float() for name, value in self.values.items()},
            'slacks': {name: value.to_float() for name, value in self.slacks.items()},
            'reduced_cost': {name: value.to_float() for name, value in self.reduced_cost.items()},
            'dual': {name: value.to_float() for name, value in self.dual.items()},
        }


def export_values(tableau, columns, basis, offset=0):
    """
    Read a Solution off an optimal tableau.

    Artificial columns and auxiliaries of internal rows are omitted;
    unrestricted parts are recombined into their caller variable.
    """
    levels = {}
    for row, index in enumerate(basis):
        if row > 0 and index is not None:
            levels[index] = tableau.get(row, -1)
    costs = tableau.get_row(0)

    solution = Solution(costs[-1].add(as_rational(offset)))
    positive, negative = {}, {}
    for index, column in enumerate(columns):
        if column.kind is ColumnKind.ARTIFICIAL or column.internal:
            continue
        value = levels.get(index, ZERO)
        if column.kind in SLACK_KINDS:
            solution.slacks[column.origin] = value
            solution.dual[column.origin] = costs[index]
        elif column.kind is ColumnKind.URS_POSITIVE:
            positive[column.origin] = (value, costs[index])
        elif column.kind is ColumnKind.URS_NEGATIVE:
            negative[column.origin] = value
        else:
            solution.values[column.name] = value
            solution.reduced_cost[column.name] = costs[index]

    for name in list(positive) + [name for name in negative if name not in positive]:
        value, cost = positive.get(name, (ZERO, ZERO))
        solution.values[name] = value.sub(negative.get(name, ZERO))
        solution.reduced_cost[name] = cost
    return solution


def clean_export_values(solution, condition):
    """Drop generated condition binaries from a solution."""
    condition = set(condition)
    return Solution(
        solution.objective_value,
        {name: value for name, value in solution.values.items() if name not in condition},
        dict(solution.slacks),
        {name: value for name, value in solution.reduced_cost.items() if name not in condition},
        dict(solution.dual),
    )
