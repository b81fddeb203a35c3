# test_standardizer.py

import pytest

from bounds import IfThen, Iff, Logical, StandardBound, format_terms
from exceptions import IfThenParseError, InfeasibleProblemError, XorTrivialError
from rational import Rational
from standardizer import (
    ALWAYS,
    BIG_M_FALLBACK,
    NEVER,
    ColumnKind,
    augment,
    big_m,
    classify_binary,
    normalize,
    standardize,
)


def rows_of(result):
    return [(dict(bound.lhs), bound.cmp, bound.rhs) for bound in result.bounds]


def test_unrestricted_split():
    result = standardize([StandardBound({'x': 1, 'y': 1}, '<=', 4)], urs=['x'])
    assert result.split == ['x']
    assert rows_of(result) == [({'x+': 1, 'x-': -1, 'y': 1}, '<=', 4)]


def test_binary_is_never_split():
    result = standardize([StandardBound({'x': 1}, '<=', 1)], binary=['x'], urs=['x'])
    assert result.split == []
    assert rows_of(result) == [({'x': 1}, '<=', 1)]


@pytest.mark.parametrize("bound, expected", [
    (StandardBound({'x': 1}, '<', 3.5), ('<=', 3)),
    (StandardBound({'x': 1}, '<', 3), ('<=', 2)),
    (StandardBound({'x': 1}, '>', 2), ('>=', 3)),
    (StandardBound({'x': 1}, '>', 2.5), ('>=', 3)),
])
def test_strict_rows_over_integers_are_tightened(bound, expected):
    result = standardize([bound], integer=['x'])
    assert (result.bounds[0].cmp, result.bounds[0].rhs) == expected


def test_strict_rows_over_continuous_are_kept():
    result = standardize([StandardBound({'x': 1, 'y': 1}, '<', 3)], integer=['x'])
    assert rows_of(result) == [({'x': 1, 'y': 1}, '<', 3)]
    result = standardize([StandardBound({'x': Rational(1, 2)}, '<', 3)], integer=['x'])
    assert result.bounds[0].cmp == '<'


def test_strict_rows_over_split_integers_are_tightened():
    result = standardize([StandardBound({'x': 1}, '<', 3)], integer=['x'], urs=['x'])
    assert rows_of(result) == [({'x+': 1, 'x-': -1}, '<=', 2)]


def test_condition_prefix_is_reserved():
    with pytest.raises(ValueError):
        standardize([StandardBound({'_y0': 1}, '<=', 1)])
    with pytest.raises(ValueError):
        standardize([
            Logical(StandardBound({'x': 1}, '<=', 1), StandardBound({'_y3': 1}, '>=', 2), 'or'),
        ])
    with pytest.raises(ValueError):
        standardize([], binary=['_y1'])


def test_and_nor():
    a = StandardBound({'x': 1}, '<=', 2)
    b = StandardBound({'y': 1}, '>=', 5)
    assert rows_of(standardize([Logical(a, b, 'and')])) == [({'x': 1}, '<=', 2), ({'y': 1}, '>=', 5)]
    assert rows_of(standardize([Logical(a, b, 'nor')])) == [({'x': 1}, '>', 2), ({'y': 1}, '<', 5)]


def test_classify_binary():
    assert classify_binary(StandardBound({'x': 1}, '<=', 1)) == ALWAYS
    assert classify_binary(StandardBound({'x': 1}, '>=', 2)) == NEVER
    assert classify_binary(StandardBound({'x': 1}, '>', 0)) == ('x', 1)
    assert classify_binary(StandardBound({'x': 1}, '<', 1)) == ('x', 0)
    assert classify_binary(StandardBound({'x': 2}, '=', 2)) == ('x', 1)


@pytest.mark.parametrize("a, b, expected", [
    ({'cmp': '>=', 'rhs': 1}, {'cmp': '>=', 'rhs': 1}, [({'x': 1, 'y': 1}, '>=', 1)]),
    ({'cmp': '=', 'rhs': 0}, {'cmp': '>=', 'rhs': 1}, [({'x': -1, 'y': 1}, '>=', 0)]),
    ({'cmp': '=', 'rhs': 0}, {'cmp': '=', 'rhs': 0}, [({'x': -1, 'y': -1}, '>=', -1)]),
    ({'cmp': '>=', 'rhs': 2}, {'cmp': '>=', 'rhs': 1}, [({'y': 1}, '=', 1)]),
    ({'cmp': '<=', 'rhs': 1}, {'cmp': '>=', 'rhs': 1}, []),
])
def test_binary_or(a, b, expected):
    bound = Logical(StandardBound({'x': 1}, **a), StandardBound({'y': 1}, **b), 'or')
    result = standardize([bound], binary=['x', 'y'])
    assert rows_of(result) == expected
    assert result.condition == []


def test_binary_or_same_variable():
    same = Logical(StandardBound({'x': 1}, '>=', 1), StandardBound({'x': 1}, '>', 0), '|')
    assert rows_of(standardize([same], binary=['x'])) == [({'x': 1}, '=', 1)]
    opposite = Logical(StandardBound({'x': 1}, '=', 1), StandardBound({'x': 1}, '=', 0), '|')
    assert rows_of(standardize([opposite], binary=['x'])) == []


def test_binary_or_never_never_is_infeasible():
    bound = Logical(StandardBound({'x': 1}, '>=', 2), StandardBound({'y': 1}, '<', 0), 'or')
    with pytest.raises(InfeasibleProblemError):
        standardize([bound], binary=['x', 'y'])


def test_big_m_or():
    """Continuous OR gets one condition binary; _y0 = 0 keeps a, _y0 = 1 keeps b."""
    bound = Logical(StandardBound({'x': 1}, '<=', 0.5), StandardBound({'x': 1}, '>=', 4), 'or')
    result = standardize([StandardBound({'x': 1}, '<=', 10), bound])
    assert result.condition == ['_y0']
    assert rows_of(result) == [
        ({'x': 1}, '<=', 10),
        ({'x': 1, '_y0': -10}, '<=', Rational(1, 2)),
        ({'x': 1, '_y0': -10}, '>=', -6),
    ]


def test_big_m_or_with_equality_operand():
    bound = Logical(StandardBound({'x': 1}, '=', 2), StandardBound({'x': 1}, '>=', 5), 'or')
    result = standardize([StandardBound({'x': 1}, '<=', 8), bound])
    assert rows_of(result)[1:] == [
        ({'x': 1, '_y0': -8}, '<=', 2),
        ({'x': 1, '_y0': 8}, '>=', 2),
        ({'x': 1, '_y0': -8}, '>=', -3),
    ]


@pytest.mark.parametrize("a, b, expected", [
    (('>=', 1), ('>=', 1), [({'x': 1, 'y': 1}, '=', 1)]),
    (('=', 0), ('=', 0), [({'x': 1, 'y': 1}, '=', 1)]),
    (('>=', 1), ('<=', 0), [({'x': 1, 'y': -1}, '=', 0)]),
    (('<=', 1), ('>=', 1), [({'y': 1}, '=', 0)]),
    (('>=', 2), ('>=', 1), [({'y': 1}, '=', 1)]),
    (('<=', 1), ('>=', 2), []),
])
def test_binary_xor(a, b, expected):
    bound = Logical(StandardBound({'x': 1}, *a), StandardBound({'y': 1}, *b), 'xor')
    assert rows_of(standardize([bound], binary=['x', 'y'])) == expected


def test_xor_of_fixed_sides_is_trivial():
    """Both sides unconditionally true."""
    bound = Logical(StandardBound({'x': 1}, '<=', 1), StandardBound({'y': 1}, '>=', 0), 'xor')
    with pytest.raises(XorTrivialError) as info:
        standardize([bound], binary=['x', 'y'])
    assert 'x <= 1 xor y >= 0' in str(info.value)

    never = Logical(StandardBound({'x': 1}, '>=', 2), StandardBound({'y': 1}, '<', 0), 'xor')
    with pytest.raises(XorTrivialError):
        standardize([never], binary=['x', 'y'])

    same = Logical(StandardBound({'x': 1}, '>=', 1), StandardBound({'x': 1}, '=', 1), 'xor')
    with pytest.raises(XorTrivialError):
        standardize([same], binary=['x'])


def test_non_binary_xor_becomes_biconditional():
    bound = Logical(StandardBound({'x': 1}, '>=', 3), StandardBound({'y': 1}, '>=', 2), 'xor')
    result = standardize([bound], integer=['x', 'y'])
    assert result.condition == ['_y0', '_y1']
    assert len(result.bounds) == 4


def test_iff_uses_two_conditions():
    bound = Iff(StandardBound({'x': 1}, '>', 2), StandardBound({'y': 1}, '<', 3))
    result = standardize([bound], integer=['x', 'y'])
    assert result.condition == ['_y0', '_y1']
    result = standardize([bound, IfThen(StandardBound({'y': 1}, '>', 1), StandardBound({'x': 1}, '<=', 1))],
                         integer=['x', 'y'])
    assert result.condition == ['_y0', '_y1', '_y2']


def test_if_then_rows():
    """b > 0 => z <= 0 with z <= 10 elsewhere gives M = 10."""
    bound = IfThen(StandardBound({'b': 1}, '>', 0), StandardBound({'z': 1}, '<=', 0))
    result = standardize([StandardBound({'z': 1}, '<', 10), bound], binary=['b'])
    assert result.condition == ['_y0']
    assert rows_of(result) == [
        ({'z': 1}, '<', 10),
        ({'z': 1, '_y0': -10}, '<=', 0),
        ({'b': 1, '_y0': 10}, '<=', 10),
    ]


def test_if_then_integral_antecedent_is_made_strict():
    bound = IfThen(StandardBound({'x': 1}, '>=', 3), StandardBound({'y': 1}, '=', 4))
    result = standardize([StandardBound({'x': 1}, '<=', 5), bound], integer=['x'])
    assert rows_of(result)[1:] == [
        ({'y': 1, '_y0': -5}, '<=', 4),
        ({'y': -1, '_y0': -5}, '<=', -4),
        ({'x': 1, '_y0': 5}, '<=', 7),
    ]


def test_if_then_with_binary_zero_consequent():
    """x = 1 => y + z = 0 is written directly on x."""
    bound = IfThen(StandardBound({'x': 1}, '>=', 1), StandardBound({'y': 1, 'z': 1}, '=', 0))
    result = standardize([StandardBound({'y': 1}, '<=', 5), bound], binary=['x'])
    assert result.condition == []
    assert rows_of(result)[1:] == [
        ({'y': 1, 'z': 1, 'x': 5}, '<=', 5),
        ({'y': -1, 'z': -1, 'x': 5}, '<=', 5),
    ]

    inactive = IfThen(StandardBound({'x': 1}, '=', 0), StandardBound({'y': 1}, '=', 0))
    result = standardize([StandardBound({'y': 1}, '<=', 5), inactive], binary=['x'])
    assert rows_of(result)[1:] == [
        ({'y': 1, 'x': -5}, '<=', 0),
        ({'y': -1, 'x': -5}, '<=', 0),
    ]


def test_if_then_with_fixed_binary_antecedent():
    always = IfThen(StandardBound({'x': 1}, '>=', 0), StandardBound({'y': 1}, '<=', 3))
    assert rows_of(standardize([always], binary=['x'])) == [({'y': 1}, '<=', 3)]
    never = IfThen(StandardBound({'x': 1}, '>=', 2), StandardBound({'y': 1}, '<=', 3))
    assert rows_of(standardize([never], binary=['x'])) == []


def test_if_then_parse_errors():
    with pytest.raises(IfThenParseError):
        standardize([IfThen(StandardBound({'x': 1}, '<=', 3), StandardBound({'y': 1}, '<=', 2))])
    with pytest.raises(IfThenParseError):
        standardize([IfThen(StandardBound({'x': 1}, '>', 3), StandardBound({'y': 1}, '<', 2))])
    with pytest.raises(IfThenParseError):
        standardize([IfThen(StandardBound({'x': 1}, '=', 3), StandardBound({'y': 1}, '<=', 2))], integer=['x'])


def test_big_m_heuristic():
    a = StandardBound({'x': 2}, '>', 1)
    b = StandardBound({'y': 1}, '<=', 0)
    others = [StandardBound({'x': 1}, '<=', 6), StandardBound({'y': 4}, '<=', 12)]
    assert big_m((a, b), others) == 12
    assert big_m((a, b), []) == BIG_M_FALLBACK
    tiny = [StandardBound({'x': 10}, '<=', 1)]
    assert big_m((a, b), tiny) == 2


def test_normalize_flips_negative_rhs():
    bound = normalize(StandardBound({'x': 1, 'y': -2}, '>=', -2))
    assert (dict(bound.lhs), bound.cmp, bound.rhs) == ({'x': -1, 'y': 2}, '<=', 2)
    unchanged = StandardBound({'x': 1}, '>', 0)
    assert normalize(unchanged) is unchanged


def test_augment_columns_and_basis():
    bounds = [
        StandardBound({'x': 1, 'y': 1}, '<=', 4),
        StandardBound({'x': 1}, '>=', 1),
        StandardBound({'y': 1}, '=', 2, name='fix'),
        StandardBound({'x': 1}, '<=', -1),
    ]
    system = augment({'x': 3, 'y': 2}, bounds, internal_from=3)
    assert system.names == ['x', 'y', 's_1', 'e_2', 'a_2', 'p_fix', 'a_fix', 'e_4', 'a_4']
    kinds = [column.kind for column in system.columns]
    assert kinds == [
        ColumnKind.DECISION, ColumnKind.DECISION, ColumnKind.SURPLUS, ColumnKind.EXCESS,
        ColumnKind.ARTIFICIAL, ColumnKind.PSEUDO, ColumnKind.ARTIFICIAL, ColumnKind.EXCESS, ColumnKind.ARTIFICIAL,
    ]
    assert system.basis == [2, 4, 6, 8]
    assert system.rows[1] == [1, 0, 0, -1, 1, 0, 0, 0, 0, 1]
    assert system.rows[3] == [-1, 0, 0, 0, 0, 0, 0, -1, 1, 1]
    assert [column.internal for column in system.columns][-2:] == [True, True]
    assert not any(column.internal for column in system.columns[:-2])
    assert system.columns[5].origin == 'fix'


def test_augment_tags_split_and_condition_columns():
    result = standardize(
        [IfThen(StandardBound({'x': 1}, '>', 0), StandardBound({'y': 1}, '<=', 1))], binary=['x'], urs=['y']
    )
    system = augment({'x': 1}, result.bounds, result.condition, result.split)
    kinds = {column.name: column.kind for column in system.columns}
    assert kinds['y+'] is ColumnKind.URS_POSITIVE
    assert kinds['y-'] is ColumnKind.URS_NEGATIVE
    assert kinds['_y0'] is ColumnKind.CONDITION
    assert kinds['x'] is ColumnKind.DECISION


def test_format_terms():
    assert format_terms({'x': -3, 'y': 2.5, 'z': -1}) == "-3x + 2.5y - z"
    assert format_terms({'b': 1, 'z': 1}) == "b + z"
    assert format_terms({'z': 1, '__y0': -10}) == "z - 10__y0"
