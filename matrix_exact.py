"""Rectangular matrix of Rational values, used as the live simplex tableau."""

import warnings

import numpy as np
from tabulate import tabulate

from rational import ONE, ZERO, as_rational


def _coerce(value):
    if isinstance(value, np.generic):
        value = value.item()
    return as_rational(value)


class ExactMatrix:
    """
    Mutable grid of Rational values.

    The determinant is computed lazily and cached until the next mutation.
    Row and column accessors accept negative indices counted from the end.
    """

    def __init__(self, values):
        rows = [list(row) for row in values]
        if len(rows) == 0:
            raise ValueError("Cannot form empty matrix without rows")
        width = len(rows[0])
        if width == 0:
            raise ValueError("Cannot form empty matrix without columns")
        for row in rows[1:]:
            if len(row) != width:
                raise ValueError("Non-rectangular matrix")
        self._values = [[_coerce(value) for value in row] for row in rows]
        self._determinant = None

    @classmethod
    def identity(cls, size):
        return cls([[ONE if r == c else ZERO for c in range(size)] for r in range(size)])

    def clone(self):
        clone = ExactMatrix([row[:] for row in self._values])
        clone._determinant = self._determinant
        return clone

    # ~ shape ~

    @property
    def row_count(self):
        return len(self._values)

    @property
    def column_count(self):
        return len(self._values[0])

    @property
    def shape(self):
        return self.row_count, self.column_count

    @property
    def is_square(self):
        return self.row_count == self.column_count

    @staticmethod
    def _fix_index(index, size, kind):
        fixed = index + size if index < 0 else index
        if not 0 <= fixed < size:
            raise IndexError(f"Invalid {kind} index {index} for size {size}")
        return fixed

    def _row_index(self, row):
        return self._fix_index(row, self.row_count, 'row')

    def _column_index(self, column):
        return self._fix_index(column, self.column_count, 'column')

    # ~ accessors ~

    def get(self, row, column):
        return self._values[self._row_index(row)][self._column_index(column)]

    def __getitem__(self, cell):
        row, column = cell
        return self.get(row, column)

    def get_row(self, row):
        return self._values[self._row_index(row)][:]

    def get_column(self, column):
        column = self._column_index(column)
        return [row[column] for row in self._values]

    def row_sum(self, row):
        return sum(self.get_row(row), ZERO)

    def column_sum(self, column):
        return sum(self.get_column(column), ZERO)

    def __eq__(self, other):
        if not isinstance(other, ExactMatrix):
            return NotImplemented
        return self.shape == other.shape and all(
            a == b for mine, theirs in zip(self._values, other._values) for a, b in zip(mine, theirs)
        )

    # ~ mutators ~

    def set_row(self, row, values):
        """Replace a row with a sequence, or fill it with one scalar."""
        if isinstance(values, (list, tuple, np.ndarray)):
            new_row = [_coerce(value) for value in values]
        else:
            new_row = [_coerce(values)] * self.column_count
        if len(new_row) != self.column_count:
            raise ValueError(
                f"Incorrect number of values in set_row, expected {self.column_count} but got {len(new_row)}"
            )
        self._values[self._row_index(row)] = new_row
        self._determinant = None

    def set_column(self, column, values):
        """Replace a column with a sequence, or fill it with one scalar."""
        if isinstance(values, (list, tuple, np.ndarray)):
            new_column = [_coerce(value) for value in values]
        else:
            new_column = [_coerce(values)] * self.row_count
        if len(new_column) != self.row_count:
            raise ValueError(
                f"Incorrect number of values in set_column, expected {self.row_count} but got {len(new_column)}"
            )
        column = self._column_index(column)
        for row, value in zip(self._values, new_column):
            row[column] = value
        self._determinant = None

    def scale_row(self, row, scalar):
        scalar = _coerce(scalar)
        if scalar.is_zero():
            warnings.warn("Multiplying entire row by 0 at ExactMatrix.scale_row", UserWarning)
        row = self._row_index(row)
        self._values[row] = [value.mul(scalar) for value in self._values[row]]
        self._determinant = None

    def divide_to_one(self, row, column):
        """Scale ``row`` so that the entry at ``column`` reads exactly one."""
        self.scale_row(row, self.get(row, column).reciprocal())

    def linear_combination(self, active_row, reference_row, scalar):
        """active_row += reference_row * scalar; the reference row is unchanged."""
        active_row = self._row_index(active_row)
        reference_row = self._row_index(reference_row)
        scalar = _coerce(scalar)
        reference = self._values[reference_row]
        self._values[active_row] = [
            value.add(other.mul(scalar)) for value, other in zip(self._values[active_row], reference)
        ]
        self._determinant = None

    def zero_out(self, active_row, reference_row, column):
        """Cancel the active row's entry at ``column`` using the reference row."""
        active = self.get(active_row, column)
        if active.is_zero():
            return
        self.linear_combination(active_row, reference_row, active.negated().div(self.get(reference_row, column)))

    # ~ algebra ~

    @property
    def transposed(self):
        return ExactMatrix([self.get_column(c) for c in range(self.column_count)])

    def multiply(self, other):
        if self.column_count != other.row_count:
            return None
        columns = [other.get_column(c) for c in range(other.column_count)]
        field = []
        for row in self._values:
            field.append([sum((a.mul(b) for a, b in zip(row, column)), ZERO) for column in columns])
        return ExactMatrix(field)

    def minor(self, row, column):
        return ExactMatrix([
            [value for j, value in enumerate(values) if j != column]
            for i, values in enumerate(self._values) if i != row
        ])

    @property
    def determinant(self):
        if not self.is_square:
            return None
        if self._determinant is None:
            self._determinant = self._compute_determinant()
        return self._determinant

    def _compute_determinant(self):
        size = self.row_count
        values = self._values
        if size == 1:
            return values[0][0]
        if size == 2:
            return values[0][0].mul(values[1][1]).sub(values[0][1].mul(values[1][0]))

        # Expand along the row or column with the most zeros.
        direction, rank = 'col', 1
        if size > 3:
            most_zeros = 0
            for i in range(size):
                zeros_in_row = sum(1 for value in values[i] if value.is_zero())
                zeros_in_column = sum(1 for row in values if row[i].is_zero())
                if zeros_in_row > most_zeros:
                    direction, rank, most_zeros = 'row', i, zeros_in_row
                if zeros_in_column > most_zeros:
                    direction, rank, most_zeros = 'col', i, zeros_in_column

        total = ZERO
        for i in range(size):
            if direction == 'row':
                scalar, minor = values[rank][i], (rank, i)
            else:
                scalar, minor = values[i][rank], (i, rank)
            if scalar.is_zero():
                continue
            term = scalar.mul(self.minor(*minor).determinant)
            total = total.add(term) if (rank + i) % 2 == 0 else total.sub(term)
        return total

    def adjugate(self):
        size = self.row_count
        cofactors = []
        for i in range(size):
            row = []
            for j in range(size):
                cofactor = self.minor(i, j).determinant
                row.append(cofactor if (i + j) % 2 == 0 else cofactor.negated())
            cofactors.append(row)
        return ExactMatrix(cofactors).transposed

    def inverse(self):
        """Exact inverse, or None for a singular or non-square matrix."""
        if not self.is_square:
            return None
        determinant = self.determinant
        if determinant.is_zero():
            return None
        values = self._values
        if self.row_count == 1:
            return ExactMatrix([[values[0][0].reciprocal()]])
        if self.row_count == 2:
            return ExactMatrix([
                [values[1][1].div(determinant), values[0][1].negated().div(determinant)],
                [values[1][0].negated().div(determinant), values[0][0].div(determinant)],
            ])
        adjugate = self.adjugate()
        return ExactMatrix([[value.div(determinant) for value in row] for row in adjugate._values])

    # ~ display ~

    def to_numpy(self):
        """Floating-point approximation of the matrix."""
        return np.array([[value.to_float() for value in row] for row in self._values], dtype=float)

    def to_string(self, row_names=None, column_names=None):
        rows = []
        for i, values in enumerate(self._values):
            label = [row_names[i] if row_names and i < len(row_names) else ""] if row_names else []
            rows.append(label + [str(value) for value in values])
        headers = ([""] if row_names else []) + list(column_names) if column_names else ()
        return tabulate(rows, headers=headers, stralign="right", disable_numparse=True)

    def __str__(self):
        return self.to_string()

    def __repr__(self):
        return f"ExactMatrix({self.row_count}x{self.column_count})"
