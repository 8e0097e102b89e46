import logging
import os
import threading
from dataclasses import dataclass
from typing import Iterable

import dill

from . import groth16
from .errors import ProofRejected, NullifierReused
from .event import VerifierParams
from .groth16 import VKey, Proof
from .inputs import DepositEvent, decode_vector


logger = logging.getLogger(__name__)


# The predicate only proves that a nullifier is derived correctly, rejecting a second proof for the same
# deposit is up to the verifier, which keeps every nullifier it has accepted in a ledger.


class NullifierLedger:
    def __init__(self, path: str | None = None, consumed: Iterable[int] = ()) -> None:
        self.path = path
        self.consumed: set[int] = set(consumed)
        self.lock = threading.Lock()

    def __contains__(self, nullifier: int) -> bool:
        with self.lock:
            return nullifier in self.consumed

    def __len__(self) -> int:
        with self.lock:
            return len(self.consumed)

    def consume(self, nullifier: int) -> None:
        # check and insert under one lock, so two threads cannot both accept the same nullifier
        with self.lock:
            if nullifier in self.consumed:
                raise NullifierReused(nullifier)
            # the nullifier only counts as consumed once it is on disk
            if self.path is not None:
                self._save(self.consumed | {nullifier})
            self.consumed.add(nullifier)
        logger.info("consumed nullifier %#018x", nullifier)

    def save(self) -> None:
        with self.lock:
            self._save()

    def _save(self, consumed: set[int] | None = None) -> None:
        # write to a temporary file first, a crash never leaves a truncated ledger behind
        tmp = "{}.tmp".format(self.path)
        with open(tmp, "wb") as file:
            file.write(dill.dumps(sorted(self.consumed if consumed is None else consumed)))
        os.replace(tmp, self.path)

    @staticmethod
    def load(path: str) -> "NullifierLedger":
        if not os.path.exists(path):
            return NullifierLedger(path)
        with open(path, "rb") as file:
            consumed = dill.loads(file.read())
        logger.debug("loaded %d nullifiers from %s", len(consumed), path)
        return NullifierLedger(path, consumed)


@dataclass(frozen=True)
class VerifiedEvent:
    event: DepositEvent
    event_id: int
    nullifier: int


def accept(
    names: list[str],
    vk: VKey,
    proof: Proof,
    event: DepositEvent,
    ledger: NullifierLedger,
    params: VerifierParams | None = None,
) -> VerifiedEvent:
    # Accept a proof for the given deposit: the pairing check passes, verified is exactly 1, the public
    # inputs carried by the proof are the ones of the deposit, and the nullifier is new.
    params = params or VerifierParams()
    n = params.vector_bits
    result = groth16.verify(names, vk, proof)
    if not result.passed:
        raise ProofRejected("proof failed to verify")
    values = result.values
    if values.get("verified") != 0x01:
        raise ProofRejected("proof does not reveal verified = 1")
    claimed = DepositEvent(
        tx_hash=decode_vector(values, "tx_hash", n),
        recipient=decode_vector(values, "recipient", n),
        amount=values["amount"],
    )
    if claimed != event:
        raise ProofRejected("proof is for a different deposit")
    record = VerifiedEvent(
        event=event,
        event_id=decode_vector(values, "event_id", n),
        nullifier=decode_vector(values, "nullifier", n),
    )
    ledger.consume(record.nullifier)
    return record
