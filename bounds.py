"""
Constraint and problem description types.

A ``Formula`` holds the objective and a mixed list of bounds: plain
``StandardBound`` rows plus the logical forms ``IfThen``, ``Iff`` and
``Logical`` whose operands are themselves standard bounds. Logical forms
never reach the tableau; ``standardizer`` compiles them first.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from rational import Rational, as_rational

INEQUALITIES = ('<', '<=', '=', '>=', '>')
OPTIMIZERS = ('maximize', 'minimize')

# Logical negation of a comparator. Equality has no single-row negation and is kept.
OPPOSITE = {'<': '>=', '<=': '>', '>': '<=', '>=': '<', '=': '='}

# Comparator after both sides are multiplied by -1.
MIRRORED = {'<': '>', '<=': '>=', '>': '<', '>=': '<=', '=': '='}


class Operator(Enum):
    AND = 'and'
    OR = 'or'
    XOR = 'xor'
    NOR = 'nor'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {'&': 'and', '|': 'or'}
        try:
            return cls(aliases.get(text, text))
        except ValueError:
            raise ValueError(f"Unknown logical operator '{value}'") from None


def _clean_terms(terms):
    cleaned = {}
    for name, coefficient in dict(terms).items():
        coefficient = as_rational(coefficient)
        if not coefficient.is_zero():
            cleaned[name] = coefficient
    return cleaned


@dataclass(frozen=True)
class StandardBound:
    """A single linear row ``sum(lhs) cmp rhs``; zero coefficients are dropped."""
    lhs: Dict[str, Rational]
    cmp: str
    rhs: Rational
    name: Optional[str] = None

    def __post_init__(self):
        if self.cmp not in INEQUALITIES:
            raise ValueError(f"Unknown comparator '{self.cmp}', expected one of {INEQUALITIES}")
        object.__setattr__(self, 'lhs', _clean_terms(self.lhs))
        object.__setattr__(self, 'rhs', as_rational(self.rhs))

    @property
    def strict(self):
        return self.cmp in ('<', '>')

    @property
    def names(self):
        return list(self.lhs)

    def negated(self):
        """Logical negation; ``=`` is returned unchanged."""
        return StandardBound(self.lhs, OPPOSITE[self.cmp], self.rhs, self.name)

    def mirrored(self):
        """The same constraint with both sides multiplied by -1."""
        return StandardBound(
            {name: -value for name, value in self.lhs.items()}, MIRRORED[self.cmp], -self.rhs, self.name
        )

    def replace(self, **changes):
        values = {'lhs': self.lhs, 'cmp': self.cmp, 'rhs': self.rhs, 'name': self.name}
        values.update(changes)
        return StandardBound(**values)

    def __str__(self):
        return stringify_bound(self)


@dataclass(frozen=True)
class IfThen:
    antecedent: StandardBound
    consequent: StandardBound

    def __str__(self):
        return stringify_bound(self)


@dataclass(frozen=True)
class Iff:
    p: StandardBound
    q: StandardBound

    def __str__(self):
        return stringify_bound(self)


@dataclass(frozen=True)
class Logical:
    a: StandardBound
    b: StandardBound
    operator: Operator

    def __post_init__(self):
        object.__setattr__(self, 'operator', Operator.parse(self.operator))

    def __str__(self):
        return stringify_bound(self)


Bound = Union[StandardBound, IfThen, Iff, Logical]


@dataclass
class Formula:
    """
    A complete problem description.

    ``threshold`` is an optional early-stop fraction of the root relaxation
    bound, used only by branch and bound.
    """
    optimizer: str
    objective: Dict[str, Rational]
    bounds: List[Bound] = field(default_factory=list)
    binary: List[str] = field(default_factory=list)
    integer: List[str] = field(default_factory=list)
    urs: List[str] = field(default_factory=list)
    objective_offset: Rational = 0
    threshold: Optional[float] = None

    def __post_init__(self):
        if self.optimizer not in OPTIMIZERS:
            raise ValueError(f"optimizer must be one of {OPTIMIZERS}, got '{self.optimizer}'")
        if self.threshold is not None and not 0 < self.threshold <= 1:
            raise ValueError(f"threshold must be in (0, 1], got {self.threshold}")
        self.objective = _clean_terms(self.objective)
        self.objective_offset = as_rational(self.objective_offset)
        self.binary = list(self.binary)
        self.integer = list(self.integer)
        self.urs = list(self.urs)

    @property
    def sign(self):
        return 1 if self.optimizer == 'maximize' else -1


# ~ text rendering ~

def format_number(value):
    value = as_rational(value)
    if value.is_integer():
        return str(value.numerator)
    return repr(value.to_float())


def format_terms(terms):
    """Render a term map as ``3x + 2y - z``."""
    parts = []
    for name, coefficient in terms.items():
        coefficient = as_rational(coefficient)
        if coefficient.is_zero():
            continue
        if coefficient.is_one():
            text = ''
        elif coefficient == -1:
            text = '-'
        else:
            text = format_number(coefficient)
        if parts:
            text = text.replace('-', '- ')
            if coefficient > 0:
                text = '+ ' + text
        parts.append(text + name)
    return ' '.join(parts)


def stringify_bound(bound):
    if isinstance(bound, StandardBound):
        return f"{format_terms(bound.lhs)} {bound.cmp} {format_number(bound.rhs)}"
    if isinstance(bound, Logical):
        return f"{stringify_bound(bound.a)} {bound.operator.value} {stringify_bound(bound.b)}"
    if isinstance(bound, Iff):
        return f"{stringify_bound(bound.p)} <=> {stringify_bound(bound.q)}"
    if isinstance(bound, IfThen):
        return f"{stringify_bound(bound.antecedent)} => {stringify_bound(bound.consequent)}"
    raise TypeError(f"Unknown bound type {type(bound).__name__}")
