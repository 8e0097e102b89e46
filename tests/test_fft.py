import pytest
from pymcl import r as ρ

from bridgeproof import fft
from bridgeproof.errors import ConfigError


def evaluate(coeffs, x):
    return sum(c * pow(x, i, ρ) for i, c in enumerate(coeffs)) % ρ


@pytest.mark.parametrize("n", [1, 2, 8, 32])
def test_root_has_exact_order(n):
    w = fft.root(n)
    assert pow(w, n, ρ) == 1
    assert n == 1 or pow(w, n // 2, ρ) != 1


def test_root_rejects_bad_order():
    with pytest.raises(ConfigError):
        fft.root(6)
    with pytest.raises(ConfigError):
        fft.root(2**40)


def test_ntt_evaluates_on_roots_of_unity():
    coeffs = [3, 1, 4, 1, 5, 9, 2, 6]
    w = fft.root(8)
    assert fft.ntt(coeffs, w) == [evaluate(coeffs, x) for x in fft.pows(w, 8)]
    assert fft.intt(fft.ntt(coeffs, w), w) == coeffs


def test_coset_shifts_the_argument():
    coeffs = [7, 0, ρ - 1, 2]
    k = 5
    assert evaluate(fft.coset(coeffs, k), 11) == evaluate(coeffs, 55)


def test_product_through_transforms():
    # (1 + 2X)(3 + X) = 3 + 7X + 2X²
    w = fft.root(4)
    a = fft.ntt([1, 2, 0, 0], w)
    b = fft.ntt([3, 1, 0, 0], w)
    assert fft.intt([x * y % ρ for x, y in zip(a, b)], w) == [3, 7, 2, 0]
