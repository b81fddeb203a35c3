from enum import Enum


class InfeasibleName(Enum):
    XOR_TRIVIAL = 'An XOR expression cannot be satisfied'
    RESOLVE_ITER_MAX = 'The iteration limit was reached'
    RESOLVE_NON_OPTIMAL = 'The result was non-optimal'
    INTEGER_NON_FOUND = 'No integer solution could be found'
    INFEASIBLE = 'This problem is infeasible'
    IF_THEN_NON_PARSE = 'An If-Then statement could not be parsed'


# Custom Exception Classes for better error handling
class SimplexError(Exception):
    """Base class for simplex-related errors."""
    pass


class CompilationInfeasible(SimplexError):
    """
    A classified failure of standardization or solving.

    ``report_with`` is the text of the offending bound (when there is one)
    and ``origin`` the bound object itself.
    """

    reason = InfeasibleName.INFEASIBLE

    def __init__(self, report_with=None, origin=None):
        self.report_with = report_with
        self.origin = origin
        message = self.reason.value
        if report_with:
            message = f"{message}: {report_with}"
        super().__init__(message)


class XorTrivialError(CompilationInfeasible):
    """Raised when an XOR of two fixed binary constraints is a contradiction."""
    reason = InfeasibleName.XOR_TRIVIAL


class IfThenParseError(CompilationInfeasible):
    """Raised when an implication has comparators that cannot be linearized."""
    reason = InfeasibleName.IF_THEN_NON_PARSE


class InfeasibleProblemError(CompilationInfeasible):
    """Raised when the linear programming problem is infeasible."""
    reason = InfeasibleName.INFEASIBLE


class IterationLimitError(CompilationInfeasible):
    """Raised when a simplex phase needs more pivots than allowed."""
    reason = InfeasibleName.RESOLVE_ITER_MAX


class NonOptimalError(CompilationInfeasible):
    """Raised when a simplex phase stops on a tableau that is not optimal."""
    reason = InfeasibleName.RESOLVE_NON_OPTIMAL


class IntegerSolutionNotFoundError(CompilationInfeasible):
    """Raised when branch and bound ends without an integer-feasible incumbent."""
    reason = InfeasibleName.INTEGER_NON_FOUND


class UnboundedProblemError(SimplexError):
    """Raised when the linear programming problem is unbounded."""
    pass


class TableauCorruptionError(SimplexError):
    """Raised when the tableau appears to be in an invalid state."""
    pass
