import threading

import pytest

from bridgeproof import ledger
from bridgeproof.errors import NullifierReused, ProofRejected
from bridgeproof.groth16 import Result
from bridgeproof.inputs import DepositEvent, derive_event_id, derive_nullifier, encode_args
from bridgeproof.ledger import NullifierLedger, accept


def test_consume_once():
    book = NullifierLedger()
    book.consume(0x1234)
    assert 0x1234 in book
    assert 0x4321 not in book
    with pytest.raises(NullifierReused, match="0x0000000000001234"):
        book.consume(0x1234)
    assert len(book) == 1


def test_ledger_persists(tmp_path):
    path = str(tmp_path / "nullifiers.dill")
    book = NullifierLedger.load(path)
    assert len(book) == 0
    book.consume(1)
    book.consume(2**63)
    reloaded = NullifierLedger.load(path)
    assert 2**63 in reloaded
    assert len(reloaded) == 2
    with pytest.raises(NullifierReused):
        reloaded.consume(1)


def test_failed_write_leaves_nullifier_unconsumed(tmp_path):
    book = NullifierLedger.load(str(tmp_path / "missing" / "nullifiers.dill"))
    with pytest.raises(OSError):
        book.consume(7)
    assert 7 not in book
    assert len(book) == 0
    (tmp_path / "missing").mkdir()
    book.consume(7)
    assert 7 in NullifierLedger.load(book.path)


def test_concurrent_consume_accepts_exactly_one():
    book = NullifierLedger()
    barrier = threading.Barrier(8)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            book.consume(42)
            outcomes.append("accepted")
        except NullifierReused:
            outcomes.append("rejected")

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert sorted(outcomes) == ["accepted"] + ["rejected"] * 7


# accept, with the pairing check replaced by a canned result


@pytest.fixture
def statement(verifier, deposit):
    args = encode_args(deposit, 7)
    witness = verifier.ensure(args)
    return verifier.names, [witness.vec[m] for m in verifier.stmts]


def fake_verify(monkeypatch, names, values, passed=True):
    monkeypatch.setattr(ledger.groth16, "verify", lambda n, vk, proof: Result(passed=passed, values=dict(zip(names, values))))


def test_accept(monkeypatch, statement, deposit):
    names, values = statement
    fake_verify(monkeypatch, names, values)
    book = NullifierLedger()
    record = accept(names, None, None, deposit, book)
    assert record.event == deposit
    assert record.event_id == derive_event_id(deposit)
    assert record.nullifier == derive_nullifier(deposit, 7)
    assert record.nullifier in book


def test_accept_rejects_replay(monkeypatch, statement, deposit):
    names, values = statement
    fake_verify(monkeypatch, names, values)
    book = NullifierLedger()
    accept(names, None, None, deposit, book)
    with pytest.raises(NullifierReused):
        accept(names, None, None, deposit, book)


def test_accept_rejects_failed_pairing(monkeypatch, statement, deposit):
    names, values = statement
    fake_verify(monkeypatch, names, values, passed=False)
    book = NullifierLedger()
    with pytest.raises(ProofRejected, match="failed to verify"):
        accept(names, None, None, deposit, book)
    assert len(book) == 0


def test_accept_rejects_unverified_claim(monkeypatch, verifier, deposit):
    args = encode_args(deposit, 0)
    witness = verifier.satisfy(args)
    names = verifier.names
    fake_verify(monkeypatch, names, [witness.vec[m] for m in verifier.stmts])
    book = NullifierLedger()
    with pytest.raises(ProofRejected, match="verified = 1"):
        accept(names, None, None, deposit, book)
    assert len(book) == 0


def test_accept_rejects_other_deposit(monkeypatch, statement):
    names, values = statement
    fake_verify(monkeypatch, names, values)
    book = NullifierLedger()
    with pytest.raises(ProofRejected, match="different deposit"):
        accept(names, None, None, DepositEvent(1, 2, 101), book)
    assert len(book) == 0
