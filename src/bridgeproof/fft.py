from typing import Iterator

from pymcl import r as ρ

from .errors import ConfigError
from .types import Fld


# Radix-2 number theoretic transforms over the scalar field of BLS12-381. The prover uses them to move the
# gate polynomials between coefficients and evaluations on the I-th roots of unity, or on a coset of them.


def pows(a: Fld, n: int) -> Iterator[Fld]:
    # a⁰, a¹, ..., aⁿ⁻¹
    r = 0x01
    for _ in range(n):
        yield r
        r = r * a % ρ


def root(n: int) -> Fld:
    # primitive n-th root of unity, n has to be a power of 2 that divides ρ - 1
    if n <= 0 or n & n - 1 or (ρ - 1) % n:
        raise ConfigError("no primitive root of unity of order {}".format(n))
    for z in range(2, ρ):
        if pow(z, (ρ - 1) // 2, ρ) != 0x01:  # quadratic non-residue
            break
    return pow(z, (ρ - 1) // n, ρ)


def ntt(a: list[Fld], w: Fld) -> list[Fld]:
    # A = [a(w⁰), a(w¹), ..., a(wⁿ⁻¹)], iterative Cooley-Tukey on the bit-reversed input
    a = list(a)
    n = len(a)
    j = 0
    for i in range(1, n):
        b = n >> 1
        while j & b:
            j ^= b
            b >>= 1
        j |= b
        if i < j:
            a[i], a[j] = a[j], a[i]
    m = 2
    while m <= n:
        h = m >> 1
        wm = pow(w, n // m, ρ)
        for s in range(0, n, m):
            k = 0x01
            for i in range(s, s + h):
                u, v = a[i], a[i + h] * k % ρ
                a[i], a[i + h] = (u + v) % ρ, (u - v) % ρ
                k = k * wm % ρ
        m <<= 1
    return a


def intt(a: list[Fld], w: Fld) -> list[Fld]:
    m = pow(len(a), -1, ρ)
    return [x * m % ρ for x in ntt(a, pow(w, -1, ρ))]


def coset(a: list[Fld], k: Fld) -> list[Fld]:
    # coefficients of a(kX)
    return [x * s % ρ for x, s in zip(a, pows(k, len(a)), strict=True)]
