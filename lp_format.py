"""Plain-text LP model export."""

from bounds import format_number, format_terms
from standardizer import CONDITION_PREFIX, standardize

EXPORT_CONDITION_PREFIX = '__y'


def _rename(terms, names):
    return {names.get(name, name): coefficient for name, coefficient in terms.items()}


def export_model(formula):
    """
    Render a Formula as LP text.

    Logical bounds are compiled to standard rows first; unrestricted
    variables are declared FREE rather than split. Compilation errors
    propagate.
    """
    standardized = standardize(formula.bounds, formula.binary, formula.integer, formula.urs, split_urs=False)
    names = {
        name: EXPORT_CONDITION_PREFIX + name[len(CONDITION_PREFIX):] for name in standardized.condition
    }

    lines = [f"{formula.optimizer[:3].upper()} {format_terms(formula.objective)}", "SUBJECT TO"]
    for bound in standardized.bounds:
        lines.append(f"{format_terms(_rename(bound.lhs, names))} {bound.cmp[0]} {format_number(bound.rhs)}")
    lines.append("END")

    binary = []
    for name in formula.binary + standardized.condition:
        if name not in binary:
            binary.append(name)
    for name in formula.integer:
        if name not in binary:
            lines.append(f"GIN {name}")
    for name in binary:
        lines.append(f"INT {names.get(name, name)}")
    for name in formula.urs:
        lines.append(f"FREE {name}")
    return "\n".join(lines)
