import io

import pytest
from pymcl import g1, g2, r as ρ

from bridgeproof import groth16
from bridgeproof.circuit import Circuit
from bridgeproof.errors import ConstraintError, FieldError, NullifierReused
from bridgeproof.groth16 import L0, Proof, VKey
from bridgeproof.inputs import DepositEvent, derive_nullifier, encode_args
from bridgeproof.ledger import NullifierLedger, accept
from bridgeproof.types import Witness


pytestmark = pytest.mark.slow


@pytest.fixture(scope="module")
def product():
    c = Circuit()
    xGal = c.PARAM("x")
    yGal = c.PARAM("y")
    c.REVEAL("z", c.MUL(c.ADD(xGal, 1), yGal))
    key = groth16.setup(c.wire_count, c.stmts.keys(), c.gates)
    return c, key


def test_prove_and_verify(product):
    c, key = product
    witness = c.satisfy({"x": 2, "y": 4})
    proof = groth16.prove(c.wire_count, c.stmts.keys(), c.gates, key.pk, witness)
    result = groth16.verify(c.stmts.values(), key.vk, proof)
    assert result.passed
    assert result.values == {"ONE": 1, "z": 12}


def test_tampered_statement_fails(product):
    c, key = product
    witness = c.satisfy({"x": 2, "y": 4})
    proof = groth16.prove(c.wire_count, c.stmts.keys(), c.gates, key.pk, witness)
    proof.uU[-1] = 13
    assert not groth16.verify(c.stmts.values(), key.vk, proof).passed


def test_unreduced_statement_is_malformed(product):
    c, key = product
    witness = c.satisfy({"x": 2, "y": 4})
    proof = groth16.prove(c.wire_count, c.stmts.keys(), c.gates, key.pk, witness)
    proof.uU[-1] = 12 + ρ
    with pytest.raises(FieldError):
        groth16.verify(c.stmts.values(), key.vk, proof)


def test_loading_unreduced_statement_is_malformed():
    buffer = io.BytesIO(g1.serialize() + g2.serialize() + g1.serialize() + (1).to_bytes(L0, "big") + (12 + ρ).to_bytes(L0, "big"))
    with pytest.raises(FieldError, match="public value 1"):
        Proof.loads(buffer, 2)


def test_prover_refuses_bad_witness(product):
    c, key = product
    witness = Witness(c.funcs, {"x": 2, "y": 4})
    witness.vec[-1] = 13
    with pytest.raises(ConstraintError, match="reveal error"):
        groth16.prove(c.wire_count, c.stmts.keys(), c.gates, key.pk, witness)


def test_key_and_proof_serialization(product):
    c, key = product
    witness = c.satisfy({"x": 5, "y": 6})
    proof = groth16.prove(c.wire_count, c.stmts.keys(), c.gates, key.pk, witness)
    buffer = io.BytesIO()
    key.vk.dumps(buffer)
    proof.dumps(buffer)
    buffer.seek(0)
    vk = VKey.loads(buffer, len(c.stmts))
    loaded = Proof.loads(buffer, len(c.stmts))
    assert loaded.uU == [1, 36]
    assert groth16.verify(c.stmts.values(), vk, loaded).passed


def test_deposit_end_to_end(verifier):
    event = DepositEvent(tx_hash=0xABCDEF, recipient=0x1234, amount=10**9)
    args = encode_args(event, 99)
    witness = verifier.ensure(args)
    skeys = list(verifier.stmts.keys())
    key = groth16.setup(verifier.wire_count, skeys, verifier.gates)
    proof = groth16.prove(verifier.wire_count, skeys, verifier.gates, key.pk, witness)
    book = NullifierLedger()
    record = accept(verifier.names, key.vk, proof, event, book)
    assert record.nullifier == derive_nullifier(event, 99)
    with pytest.raises(NullifierReused):
        accept(verifier.names, key.vk, proof, event, book)
