"""
Rewrites a mixed bound list into standard linear rows.

Unrestricted variables are split into nonnegative parts, strict rows over
integer variables are tightened, and logical bounds are linearized with
auxiliary condition binaries and a Big-M constant. ``augment`` then turns
the flat rows into tableau columns with surplus, excess, pseudo and
artificial auxiliaries.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from bounds import IfThen, Iff, Logical, Operator, StandardBound, stringify_bound
from exceptions import IfThenParseError, InfeasibleProblemError, XorTrivialError
from rational import ONE, ZERO, Rational, as_rational

log = logging.getLogger(__name__)

BIG_M_FALLBACK = 10 ** 10
CONDITION_PREFIX = '_y'


class ColumnKind(Enum):
    DECISION = 'decision'
    URS_POSITIVE = 'urs+'
    URS_NEGATIVE = 'urs-'
    CONDITION = 'condition'
    SURPLUS = 'surplus'
    EXCESS = 'excess'
    PSEUDO = 'pseudo'
    ARTIFICIAL = 'artificial'


SLACK_KINDS = (ColumnKind.SURPLUS, ColumnKind.EXCESS, ColumnKind.PSEUDO)


@dataclass
class Column:
    """
    One tableau column.

    ``origin`` is the caller variable of an unrestricted part, or the bound
    label of an auxiliary. ``internal`` marks auxiliaries of rows added by
    the solver itself (binary upper bounds and branch rows).
    """
    name: str
    kind: ColumnKind
    origin: Optional[str] = None
    internal: bool = False
    eliminated: bool = False


@dataclass
class StandardizedBounds:
    bounds: List[StandardBound]
    condition: List[str] = field(default_factory=list)
    split: List[str] = field(default_factory=list)


@dataclass
class LinearSystem:
    """Constraint rows (rhs last), their columns and the starting basis."""
    rows: list
    columns: List[Column]
    basis: List[int]

    @property
    def names(self):
        return [column.name for column in self.columns]


# ~ unrestricted split ~

def positive_part(name):
    return f"{name}+"


def negative_part(name):
    return f"{name}-"


def split_terms(terms, split):
    """Replace every unrestricted ``x`` with ``x+ - x-`` in a term map."""
    result = {}
    for name, coefficient in terms.items():
        if name in split:
            result[positive_part(name)] = coefficient
            result[negative_part(name)] = -coefficient
        else:
            result[name] = coefficient
    return result


def split_bound(bound, split):
    if not any(name in split for name in bound.lhs):
        return bound
    return bound.replace(lhs=split_terms(bound.lhs, split))


# ~ integrality ~

def _is_integral(bound, integral_names):
    return bool(bound.lhs) and all(
        name in integral_names and coefficient.is_integer() for name, coefficient in bound.lhs.items()
    )


def tighten(bound, integral_names):
    """Rewrite ``<``/``>`` as ``<=``/``>=`` when the left side can only take integer values."""
    if not bound.strict or not _is_integral(bound, integral_names):
        return bound
    if bound.cmp == '<':
        return bound.replace(cmp='<=', rhs=Rational(math.ceil(bound.rhs) - 1))
    return bound.replace(cmp='>=', rhs=Rational(math.floor(bound.rhs) + 1))


def loosen(bound, integral_names):
    """The strict equivalent of an integral ``<=``/``>=`` row, or None."""
    if not _is_integral(bound, integral_names):
        return None
    if bound.cmp == '>=':
        return bound.replace(cmp='>', rhs=Rational(math.ceil(bound.rhs) - 1))
    if bound.cmp == '<=':
        return bound.replace(cmp='<', rhs=Rational(math.floor(bound.rhs) + 1))
    return None


def normalize(bound):
    """Flip a row with a negative right-hand side."""
    if bound.rhs < 0:
        return bound.mirrored()
    return bound


# ~ single binary classification ~

ALWAYS = 'always'
NEVER = 'never'


def _compare(left, cmp, right):
    if cmp == '<':
        return left < right
    if cmp == '<=':
        return left <= right
    if cmp == '=':
        return left == right
    if cmp == '>=':
        return left >= right
    return left > right


def classify_binary(bound):
    """
    Truth of a single-binary row over {0, 1}.

    Returns ALWAYS, NEVER or ``(name, value)`` for the one satisfying value.
    """
    (name, coefficient), = bound.lhs.items()
    holds = [value for value in (0, 1) if _compare(coefficient * value, bound.cmp, bound.rhs)]
    if len(holds) == 2:
        return ALWAYS
    if not holds:
        return NEVER
    return name, holds[0]


def _literal_bound(literal):
    name, value = literal
    return StandardBound({name: ONE}, '=', value)


# ~ Big-M ~

def big_m(operands, others):
    """
    Heuristic Big-M for a logical bound.

    The largest own coefficient of each variable times the largest
    |rhs / coefficient| any unrelated row allows it. Not a certified bound.
    """
    scalars = {}
    for operand in operands:
        for name, coefficient in operand.lhs.items():
            scalars[name] = max(scalars.get(name, ZERO), abs(coefficient))
    reach = {}
    for other in others:
        for name, coefficient in other.lhs.items():
            ratio = abs(other.rhs.div(coefficient))
            reach[name] = max(reach.get(name, ZERO), ratio)

    m = None
    for name, scalar in scalars.items():
        candidate = scalar.mul(reach.get(name, ZERO))
        if candidate > 0 and (m is None or candidate > m):
            m = candidate
    if m is None:
        return Rational(BIG_M_FALLBACK)
    return max(m, max(scalars.values()))


def _with_condition(bound, condition, coefficient, rhs_shift=ZERO):
    lhs = dict(bound.lhs)
    lhs[condition] = as_rational(coefficient)
    return StandardBound(lhs, bound.cmp, bound.rhs.add(rhs_shift))


def _halves(bound):
    if bound.cmp == '=':
        return [bound.replace(cmp='<='), bound.replace(cmp='>=')]
    return [bound]


class BoundCompiler:
    """Linearizes logical bounds against a fixed set of unrelated rows."""

    def __init__(self, others, binary, integral):
        self.others = others
        self.binary = set(binary)
        self.integral = set(integral)
        self.condition = []

    def is_single_binary(self, bound):
        return len(bound.lhs) == 1 and bound.names[0] in self.binary

    def _condition(self, index):
        name = f"{CONDITION_PREFIX}{index}"
        if name not in self.condition:
            self.condition.append(name)
        return name

    def _emit(self, *rows):
        return [tighten(row, self.integral) for row in rows]

    def compile(self, bound, index):
        if isinstance(bound, IfThen):
            return self.if_then(bound.antecedent, bound.consequent, index)
        if isinstance(bound, Iff):
            return self.iff(bound.p, bound.q, index)
        if isinstance(bound, Logical):
            return self.logical(bound, index)
        raise TypeError(f"Cannot compile bound of type {type(bound).__name__}")

    # ~ boolean operators ~

    def logical(self, bound, index):
        a, b = bound.a, bound.b
        if bound.operator is Operator.AND:
            return self._emit(a, b)
        if bound.operator is Operator.NOR:
            return self._emit(a.negated(), b.negated())
        if bound.operator is Operator.OR:
            if self.is_single_binary(a) and self.is_single_binary(b):
                return self._binary_or(bound)
            return self._big_m_or(a, b, index)
        if self.is_single_binary(a) and self.is_single_binary(b):
            return self._binary_xor(bound)
        return self.iff(a, b.negated(), index)

    def _binary_or(self, bound):
        left, right = classify_binary(bound.a), classify_binary(bound.b)
        if left == ALWAYS or right == ALWAYS:
            return []
        if left == NEVER and right == NEVER:
            raise InfeasibleProblemError(stringify_bound(bound), bound)
        if left == NEVER:
            return [_literal_bound(right)]
        if right == NEVER:
            return [_literal_bound(left)]
        if left[0] == right[0]:
            return [_literal_bound(left)] if left[1] == right[1] else []
        # value 1 contributes x, value 0 contributes 1 - x
        lhs = {}
        negatives = 0
        for name, value in (left, right):
            lhs[name] = ONE if value == 1 else -ONE
            negatives += value == 0
        return [StandardBound(lhs, '>=', 1 - negatives)]

    def _binary_xor(self, bound):
        left, right = classify_binary(bound.a), classify_binary(bound.b)
        fixed = (ALWAYS, NEVER)
        if left in fixed and right in fixed:
            if left == right:
                raise XorTrivialError(stringify_bound(bound), bound)
            return []
        if left in fixed or right in fixed:
            fixed_side, literal = (left, right) if left in fixed else (right, left)
            name, value = literal
            return [_literal_bound((name, 1 - value if fixed_side == ALWAYS else value))]
        if left[0] == right[0]:
            if left[1] == right[1]:
                raise XorTrivialError(stringify_bound(bound), bound)
            return []
        if left[1] == right[1]:
            return [StandardBound({left[0]: ONE, right[0]: ONE}, '=', 1)]
        return [StandardBound({left[0]: ONE, right[0]: -ONE}, '=', 0)]

    def _big_m_or(self, a, b, index):
        m = big_m((a, b), self.others)
        condition = self._condition(index)
        rows = []
        # condition = 0 enforces a, condition = 1 enforces b
        for half in _halves(tighten(a, self.integral)):
            sign = -1 if half.cmp in ('<', '<=') else 1
            rows.append(_with_condition(half, condition, m.mul(sign)))
        for half in _halves(tighten(b, self.integral)):
            sign = -1 if half.cmp in ('<', '<=') else 1
            rows.append(_with_condition(half, condition, m.mul(-sign), m.mul(-sign)))
        return rows

    # ~ implications ~

    def iff(self, p, q, index):
        return self.if_then(p, q, index) + self.if_then(q, p, index + 1)

    def if_then(self, antecedent, consequent, index):
        report = f"{stringify_bound(antecedent)} => {stringify_bound(consequent)}"
        origin = IfThen(antecedent, consequent)

        if self.is_single_binary(antecedent):
            truth = classify_binary(antecedent)
            if truth == ALWAYS:
                return self._emit(consequent)
            if truth == NEVER:
                return []
            if consequent.cmp == '=' and consequent.rhs.is_zero():
                return self._binary_zero_consequent(truth, consequent, (antecedent, consequent))
            name, value = truth
            antecedent = StandardBound({name: ONE}, '>' if value == 1 else '<', 0 if value == 1 else 1)
        elif not antecedent.strict:
            antecedent = loosen(antecedent, self.integral)
            if antecedent is None:
                raise IfThenParseError(report, origin)

        consequents = [tighten(half, self.integral) for half in _halves(consequent)]
        if any(half.strict for half in consequents):
            raise IfThenParseError(report, origin)

        m = big_m((antecedent, consequent), self.others)
        condition = self._condition(index)
        ante_sign = 1 if antecedent.cmp == '>' else -1
        rows = []
        # condition = 1 falsifies the antecedent, condition = 0 enforces the consequent
        for half in consequents:
            cons_sign = 1 if half.cmp == '>=' else -1
            lhs = {name: coefficient.mul(-cons_sign) for name, coefficient in half.lhs.items()}
            lhs[condition] = m.negated()
            rows.append(StandardBound(lhs, '<=', half.rhs.mul(-cons_sign)))
        lhs = {name: coefficient.mul(ante_sign) for name, coefficient in antecedent.lhs.items()}
        lhs[condition] = m
        rows.append(StandardBound(lhs, '<=', m.add(antecedent.rhs.mul(ante_sign))))
        return rows

    def _binary_zero_consequent(self, truth, consequent, operands):
        """``x = v => lhs = 0`` linearized on ``x`` itself."""
        m = big_m(operands, self.others)
        name, value = truth
        rows = []
        for sign in (1, -1):
            lhs = {key: coefficient.mul(sign) for key, coefficient in consequent.lhs.items()}
            if value == 1:
                lhs[name] = lhs.get(name, ZERO).add(m)
                rows.append(StandardBound(lhs, '<=', m))
            else:
                lhs[name] = lhs.get(name, ZERO).sub(m)
                rows.append(StandardBound(lhs, '<=', ZERO))
        return rows


def _declared_names(bounds, *name_lists):
    names = set()
    for name_list in name_lists:
        names.update(name_list)
    for bound in bounds:
        if isinstance(bound, IfThen):
            operands = (bound.antecedent, bound.consequent)
        elif isinstance(bound, Iff):
            operands = (bound.p, bound.q)
        elif isinstance(bound, Logical):
            operands = (bound.a, bound.b)
        else:
            operands = (bound,)
        for operand in operands:
            names.update(operand.lhs)
    return names


def standardize(bounds, binary=(), integer=(), urs=(), split_urs=True):
    """
    Flatten a mixed bound list into standard rows.

    Returns a StandardizedBounds with the rows, the generated condition
    binaries and the unrestricted names that were split. Names starting
    with ``CONDITION_PREFIX`` are reserved for condition binaries.
    """
    reserved = sorted(
        name for name in _declared_names(bounds, binary, integer, urs) if name.startswith(CONDITION_PREFIX)
    )
    if reserved:
        raise ValueError(f"Variable names starting with '{CONDITION_PREFIX}' are reserved: {reserved}")
    binary = list(binary)
    split = [name for name in urs if name not in binary] if split_urs else []
    integral = set(binary) | set(integer)
    # both parts of a split integer are integral
    for name in split:
        if name in integral:
            integral.update((positive_part(name), negative_part(name)))

    standard = []
    for bound in bounds:
        if isinstance(bound, StandardBound):
            standard.append(tighten(split_bound(bound, split), integral))

    compiler = BoundCompiler(standard, binary, integral)
    derived = []
    index = 0
    for bound in bounds:
        if isinstance(bound, StandardBound):
            continue
        if isinstance(bound, IfThen):
            bound = IfThen(split_bound(bound.antecedent, split), split_bound(bound.consequent, split))
        elif isinstance(bound, Iff):
            bound = Iff(split_bound(bound.p, split), split_bound(bound.q, split))
        elif isinstance(bound, Logical):
            bound = Logical(split_bound(bound.a, split), split_bound(bound.b, split), bound.operator)
        rows = compiler.compile(bound, index)
        log.debug("Compiled %s into %d rows", stringify_bound(bound), len(rows))
        derived.extend(rows)
        index += 2

    return StandardizedBounds(standard + derived, compiler.condition, split)


def augment(objective, bounds, condition=(), split=(), internal_from=None):
    """
    Build the tableau columns and rows for a list of standard bounds.

    Rows at position ``internal_from`` and later get internal auxiliaries.
    """
    split_origin = {}
    for name in split:
        split_origin[positive_part(name)] = (ColumnKind.URS_POSITIVE, name)
        split_origin[negative_part(name)] = (ColumnKind.URS_NEGATIVE, name)
    condition = set(condition)

    columns = []
    positions = {}

    def add_column(column):
        positions[column.name] = len(columns)
        columns.append(column)
        return positions[column.name]

    bounds = [normalize(bound) for bound in bounds]
    for terms in [objective] + [bound.lhs for bound in bounds]:
        for name in terms:
            if name in positions:
                continue
            if name in split_origin:
                kind, origin = split_origin[name]
                add_column(Column(name, kind, origin))
            elif name in condition:
                add_column(Column(name, ColumnKind.CONDITION))
            else:
                add_column(Column(name, ColumnKind.DECISION))

    basis = []
    entries = []
    for i, bound in enumerate(bounds):
        label = bound.name if bound.name is not None else str(i + 1)
        internal = internal_from is not None and i >= internal_from
        auxiliaries = {}
        if bound.cmp == '=':
            auxiliaries[add_column(Column(f"p_{label}", ColumnKind.PSEUDO, label, internal))] = -ONE
            basic = add_column(Column(f"a_{label}", ColumnKind.ARTIFICIAL, label, internal))
            auxiliaries[basic] = ONE
        elif bound.cmp in ('<', '<='):
            basic = add_column(Column(f"s_{label}", ColumnKind.SURPLUS, label, internal))
            auxiliaries[basic] = ONE
        else:
            auxiliaries[add_column(Column(f"e_{label}", ColumnKind.EXCESS, label, internal))] = -ONE
            basic = add_column(Column(f"a_{label}", ColumnKind.ARTIFICIAL, label, internal))
            auxiliaries[basic] = ONE
        basis.append(basic)
        entries.append(auxiliaries)

    rows = []
    for bound, auxiliaries in zip(bounds, entries):
        row = [ZERO] * len(columns)
        for name, coefficient in bound.lhs.items():
            row[positions[name]] = coefficient
        for position, coefficient in auxiliaries.items():
            row[position] = coefficient
        rows.append(row + [bound.rhs])

    if len(set(column.name for column in columns)) != len(columns):
        raise ValueError("Duplicate column names; bound names must be unique")
    return LinearSystem(rows, columns, basis)
