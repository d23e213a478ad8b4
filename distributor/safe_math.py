"""
Fixed-width integer helpers.

Python ints never wrap, so the failure mode we guard against is an amount that
the hosting ledger could not store. Every amount, index and timestamp is a u64;
intermediate products such as `total * bp` are allowed to use u128.
"""
from distributor.errors import ArithmeticOverflowError

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1


def check_u64(value: int, name: str = "value") -> int:
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflowError(f"{name} out of u64 range: {value}")
    return value


def check_u128(value: int, name: str = "value") -> int:
    if value < 0 or value > U128_MAX:
        raise ArithmeticOverflowError(f"{name} out of u128 range: {value}")
    return value


def add_u64(a: int, b: int, name: str = "sum") -> int:
    return check_u64(a + b, name)


def sub_u64(a: int, b: int, name: str = "difference") -> int:
    return check_u64(a - b, name)


def mul_div_u64(a: int, b: int, denominator: int, name: str = "product") -> int:
    """`a * b // denominator` with a u128 intermediate and a u64 result"""
    if denominator == 0:
        raise ZeroDivisionError(f"{name}: zero denominator")
    product = check_u128(a * b, name)
    return check_u64(product // denominator, name)
