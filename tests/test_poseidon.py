import pytest
from pymcl import r as ρ

from bridgeproof import poseidon
from bridgeproof.circuit import Circuit
from bridgeproof.errors import ConfigError


def test_params_are_deterministic_and_cached():
    assert poseidon.params(2) is poseidon.params(2)
    assert poseidon.instance(2) is poseidon.instance(2)


def test_params_come_from_the_library_instance():
    hasher = poseidon.instance(3)
    prm = poseidon.params(3)
    assert hasher.p == ρ
    assert [c for row in prm.rcs for c in row] == [int(c) for c in hasher.rc_field]
    assert prm.mds[1][2] == int(hasher.mds_matrix[1][2])


def test_library_output_stays_off_stdout(capsys):
    poseidon.instance.cache_clear()
    poseidon.params.cache_clear()
    poseidon.poseidon(1, 2)
    assert capsys.readouterr().out == ""


def test_params_shape():
    for arity, rp in [(2, 57), (3, 56)]:
        prm = poseidon.params(arity)
        assert prm.t == arity + 1
        assert (prm.rf, prm.rp) == (8, rp)
        assert len(prm.rcs) == prm.rf + prm.rp
        assert all(len(row) == prm.t for row in prm.rcs)
        assert all(0 <= c < ρ for row in prm.rcs for c in row)
        assert len(prm.mds) == prm.t and all(len(row) == prm.t for row in prm.mds)


def test_instances_are_independent():
    assert poseidon.params(2).rcs[0] != poseidon.params(3).rcs[0][:3]


def test_unsupported_arity():
    with pytest.raises(ConfigError):
        poseidon.params(20)
    with pytest.raises(ConfigError):
        poseidon.poseidon()


def test_native_hash_is_order_sensitive():
    assert poseidon.poseidon(1, 2) != poseidon.poseidon(2, 1)
    assert poseidon.poseidon(1, 2) == poseidon.poseidon(1, 2)
    assert 0 <= poseidon.poseidon(1, 2, 3) < ρ


def test_native_hash_reduces_inputs():
    assert poseidon.poseidon(ρ + 1, 2) == poseidon.poseidon(1, 2)


@pytest.mark.parametrize("inputs", [(1, 7), (0, 0), (2**32 - 1, ρ - 1), (1, 2, 100), (3, 4, 10**12)])
def test_circuit_matches_native(inputs):
    c = Circuit()
    names = ["i{}".format(k) for k in range(len(inputs))]
    hGal = c.POSEIDON([c.PARAM(name) for name in names])
    w = c.satisfy(dict(zip(names, inputs)))
    assert w.apply(hGal) == poseidon.poseidon(*inputs)


def test_circuit_folds_constant_inputs():
    c = Circuit()
    assert c.POSEIDON([1, 2]) == poseidon.poseidon(1, 2)
    assert c.gates == []


def test_sbox_uses_three_gates():
    c = Circuit()
    xGal = c.PARAM("x")
    yGal = c.SBOX(xGal)
    assert len(c.gates) == 3
    assert c.satisfy({"x": 3}).apply(yGal) == 243
