"""
Exact rational arithmetic for the simplex tableau.

Every value is kept in lowest terms with a positive denominator. Reduction
uses prime factorizations held in a FactorCache instead of Euclid's
algorithm, so factorizations discovered while solving one problem are
reused by every later reduction.
"""

import math
import numbers
import threading
from fractions import Fraction


EPSILON = 1e-10

SMALL_PRIMES = (
    2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71, 73, 79, 83, 89, 97,
    101, 103, 107, 109, 113, 127, 131, 137, 139, 149, 151, 157, 163, 167, 173, 179, 181, 191, 193, 197, 199,
    211, 223, 227, 229, 233, 239, 241, 251, 257, 263, 269, 271, 277, 281, 283, 293,
    307, 311, 313, 317, 331, 337, 347, 349, 353, 359, 367, 373, 379, 383, 389, 397,
    401, 409, 419, 421, 431, 433, 439, 443, 449, 457, 461, 463, 467, 479, 487, 491, 499,
    503, 509, 521, 523, 541, 547, 557, 563, 569, 571, 577, 587, 593, 599,
    601, 607, 613, 617, 619, 631, 641, 643, 647, 653, 659, 661, 673, 677, 683, 691,
    701, 709, 719, 727, 733, 739, 743, 751, 757, 761, 769, 773, 787, 797,
    809, 811, 821, 823, 827, 829, 839, 853, 857, 859, 863, 877, 881, 883, 887,
    907, 911, 919, 929, 937, 941, 947, 953, 967, 971, 977, 983, 991, 997,
)


class FactorCache:
    """Prime table plus an append-only memo of integer factorizations."""

    def __init__(self, primes=SMALL_PRIMES):
        self._primes = tuple(primes)
        self._prime_set = frozenset(self._primes)
        self._memo = {}
        self._lock = threading.Lock()

    def __contains__(self, number):
        return number in self._memo

    def __len__(self):
        return len(self._memo)

    def get(self, number):
        """Return the cached factor tuple of ``number`` or None."""
        return self._memo.get(number)

    def _remember(self, number, factors):
        if number in self._memo:
            return
        with self._lock:
            self._memo.setdefault(number, tuple(factors))

    def _trial_divisors(self):
        yield from self._primes
        candidate = self._primes[-1] + 2
        while True:
            yield candidate
            candidate += 2

    def is_prime(self, number):
        if number < 2:
            return False
        if number in self._prime_set:
            return True
        if number < self._primes[-1]:
            return False
        cached = self._memo.get(number)
        if cached is not None:
            return len(cached) == 1
        limit = math.isqrt(number)
        for divisor in self._trial_divisors():
            if divisor > limit:
                break
            if number % divisor == 0:
                return False
        self._remember(number, (number,))
        return True

    def factorize(self, number):
        """
        Return the sorted prime factors of ``number`` as a list.

        Negative numbers get a leading -1; 0 and 1 factor as themselves.
        """
        if number < 0:
            return [-1] + self.factorize(-number)
        if number in (0, 1):
            return [number]
        cached = self._memo.get(number)
        if cached is not None:
            return list(cached)
        if self.is_prime(number):
            return [number]

        remaining = number
        product = 1
        factors = []
        done = False
        for divisor in self._trial_divisors():
            if divisor * divisor > remaining:
                break
            while remaining % divisor == 0:
                remaining //= divisor
                product *= divisor
                factors.append(divisor)
                self._remember(product, factors)
                known = self._memo.get(remaining)
                if remaining > 1 and known is not None:
                    factors.extend(known)
                    remaining = 1
                if remaining == 1:
                    done = True
                    break
            if done:
                break
        if remaining > 1:
            factors.append(remaining)
        factors.sort()
        self._remember(number, factors)
        return factors

    def gcf(self, a, b):
        """Greatest common factor of two integers from their factorizations."""
        a, b = abs(a), abs(b)
        if a == 0 or b == 0 or a == 1 or b == 1:
            return 1
        if a == b:
            return a
        smaller, other = (a, b) if a < b else (b, a)
        result = 1
        for factor in self.factorize(smaller):
            if other % factor == 0:
                other //= factor
                result *= factor
        return result


DEFAULT_FACTOR_CACHE = FactorCache()


def _is_approx_integer(value):
    return abs(value - round(value)) < EPSILON


class Rational:
    """
    Immutable fraction ``numerator / denominator`` in lowest terms.

    Accepts an integer pair, a single int/float, another Rational or a
    ``fractions.Fraction``. Floats are resolved to the smallest denominator
    in 2..99, then in the powers of ten up to 1e9, that makes them integral
    within EPSILON; 1e10 is the fallback. ``error`` keeps the residual
    against the originating float.
    """

    __slots__ = ('_numerator', '_denominator', '_error')

    factor_cache = DEFAULT_FACTOR_CACHE

    def __init__(self, a=0, b=None):
        error = 0.0
        if b is not None:
            if isinstance(a, numbers.Integral) and isinstance(b, numbers.Integral):
                numerator, denominator = int(a), int(b)
            else:
                quotient = as_rational(a).div(as_rational(b))
                numerator, denominator = quotient.numerator, quotient.denominator
        elif isinstance(a, Rational):
            numerator, denominator, error = a._numerator, a._denominator, a._error
        elif isinstance(a, numbers.Integral):
            numerator, denominator = int(a), 1
        elif isinstance(a, numbers.Rational):
            numerator, denominator = int(a.numerator), int(a.denominator)
        elif isinstance(a, numbers.Real):
            numerator, denominator, error = self._from_float(float(a))
        else:
            raise TypeError(f"Cannot build a Rational from {type(a).__name__}")

        if denominator == 0:
            raise ZeroDivisionError(f"Zero denominator in Rational({a}, {b})")
        if denominator < 0:
            numerator, denominator = -numerator, -denominator
        if numerator == 0:
            denominator = 1
        else:
            common = self.factor_cache.gcf(numerator, denominator)
            numerator //= common
            denominator //= common
        self._numerator = numerator
        self._denominator = denominator
        self._error = error

    @staticmethod
    def _from_float(value):
        if math.isnan(value):
            raise ArithmeticError("NaN cannot be represented as a Rational")
        if math.isinf(value):
            raise ArithmeticError(f"{value} cannot be represented as a Rational")
        if value == 0:
            return 0, 1, 0.0
        if value == 1:
            return 1, 1, 0.0

        denominator = None
        for candidate in range(2, 100):
            if _is_approx_integer(value * candidate):
                denominator = candidate
                break
        if denominator is None:
            candidate = 100
            while candidate < 10 ** 10:
                if _is_approx_integer(value * candidate):
                    denominator = candidate
                    break
                candidate *= 10
        if denominator is None:
            denominator = 10 ** 10
        numerator = round(value * denominator)
        return numerator, denominator, value - numerator / denominator

    @classmethod
    def _raw(cls, numerator, denominator):
        return cls(numerator, denominator)

    @property
    def numerator(self):
        return self._numerator

    @property
    def denominator(self):
        return self._denominator

    @property
    def error(self):
        return self._error

    # ~ predicates ~

    def is_zero(self):
        return self._numerator == 0

    def is_one(self):
        return self._numerator == self._denominator

    def is_integer(self):
        return self._denominator == 1

    def floor(self):
        """Largest integer not above this value, as a Rational."""
        return Rational(self.__floor__())

    def ceil(self):
        return Rational(self.__ceil__())

    def eq(self, other):
        other = as_rational(other)
        return self._numerator == other._numerator and self._denominator == other._denominator

    # ~ arithmetic ~

    def add(self, other):
        return self._add_sub(as_rational(other), 1)

    def sub(self, other):
        return self._add_sub(as_rational(other), -1)

    def _add_sub(self, other, sign):
        if self._denominator == other._denominator:
            return self._raw(self._numerator + sign * other._numerator, self._denominator)
        if self._denominator % other._denominator == 0:
            quotient = self._denominator // other._denominator
            return self._raw(self._numerator + sign * quotient * other._numerator, self._denominator)
        if other._denominator % self._denominator == 0:
            quotient = other._denominator // self._denominator
            return self._raw(sign * other._numerator + quotient * self._numerator, other._denominator)
        return self._raw(
            self._numerator * other._denominator + sign * other._numerator * self._denominator,
            self._denominator * other._denominator,
        )

    def mul(self, other):
        other = as_rational(other)
        if self.is_zero() or other.is_zero():
            return ZERO
        if self.is_one():
            return other
        if other.is_one():
            return self
        return self._raw(self._numerator * other._numerator, self._denominator * other._denominator)

    def div(self, other):
        other = as_rational(other)
        if other.is_zero():
            raise ZeroDivisionError("Cannot divide by 0 at Rational.div")
        if self.is_zero() or other.is_one():
            return self
        if self.is_one():
            return other.reciprocal()
        return self._raw(self._numerator * other._denominator, self._denominator * other._numerator)

    def reciprocal(self):
        if self._numerator == 0:
            raise ZeroDivisionError("Cannot divide by 0 at Rational.reciprocal")
        return self._raw(self._denominator, self._numerator)

    def negated(self):
        return self._raw(-self._numerator, self._denominator)

    # ~ conversions ~

    def to_float(self):
        return self._numerator / self._denominator

    def to_fixed(self, width):
        if self.is_integer():
            text = str(self._numerator)
        else:
            text = f"{self._numerator}/{self._denominator}"
        return text.rjust(width + 2)

    def to_fraction(self):
        return Fraction(self._numerator, self._denominator)

    # ~ python protocol ~

    def __add__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self.sub(other)

    def __rsub__(self, other):
        if not _is_number(other):
            return NotImplemented
        return as_rational(other).sub(self)

    def __mul__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self.mul(other)

    __rmul__ = __mul__

    def __truediv__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self.div(other)

    def __rtruediv__(self, other):
        if not _is_number(other):
            return NotImplemented
        return as_rational(other).div(self)

    def __neg__(self):
        return self.negated()

    def __pos__(self):
        return self

    def __abs__(self):
        return self.negated() if self._numerator < 0 else self

    def __eq__(self, other):
        if not _is_number(other):
            return NotImplemented
        if isinstance(other, float) and not math.isfinite(other):
            return False
        return self.eq(other)

    def _compare(self, other):
        other = as_rational(other)
        return self._numerator * other._denominator - other._numerator * self._denominator

    def __lt__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self._compare(other) < 0

    def __le__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self._compare(other) <= 0

    def __gt__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self._compare(other) > 0

    def __ge__(self, other):
        if not _is_number(other):
            return NotImplemented
        return self._compare(other) >= 0

    def __hash__(self):
        return hash(Fraction(self._numerator, self._denominator))

    def __bool__(self):
        return self._numerator != 0

    def __float__(self):
        return self.to_float()

    def __int__(self):
        return int(self.to_fraction())

    def __floor__(self):
        return self._numerator // self._denominator

    def __ceil__(self):
        return -(-self._numerator // self._denominator)

    def __str__(self):
        if self.is_integer():
            return str(self._numerator)
        return f"{self._numerator}/{self._denominator}"

    def __repr__(self):
        return f"Rational({self._numerator}, {self._denominator})"


def _is_number(value):
    return isinstance(value, (Rational, numbers.Real))


def as_rational(value):
    """Return ``value`` unchanged when already a Rational, else convert it."""
    if isinstance(value, Rational):
        return value
    return Rational(value)


ZERO = Rational(0, 1)
ONE = Rational(1, 1)
