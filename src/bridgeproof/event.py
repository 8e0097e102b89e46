import logging
from dataclasses import dataclass

from .circuit import Circuit, Bit
from .errors import ConfigError, PredicateError, AmountExceedsBound, EventIdMismatch, NullifierMismatch, SecretIsZero
from .types import Args, Witness


logger = logging.getLogger(__name__)


MAX_AMOUNT = 10**12


@dataclass(frozen=True)
class VerifierParams:
    max_amount: int = MAX_AMOUNT
    amount_bits: int = 64  # width of the range constraint on amount and of the comparator
    vector_bits: int = 64  # width of tx_hash, recipient, event_id and nullifier
    packed_bits: int = 32  # only the low packed_bits of tx_hash and recipient enter the hashes

    def __post_init__(self) -> None:
        if not 0 < self.packed_bits <= self.vector_bits:
            raise ConfigError("packed_bits must be in (0, vector_bits]")
        if self.max_amount.bit_length() > self.amount_bits:
            raise ConfigError("max_amount does not fit in {} bits".format(self.amount_bits))


# The four sub-predicates in the order they are reported, paired with the error raised when they fail.
PREDICATES: dict[str, type[PredicateError]] = {
    "amount": AmountExceedsBound,
    "event_id": EventIdMismatch,
    "nullifier": NullifierMismatch,
    "secret": SecretIsZero,
}


class EventVerifier(Circuit):
    # The bridge deposit predicate. Public inputs are the bits of tx_hash, recipient, event_id and
    # nullifier (little-endian) and amount, the private input is secret, and the only public output
    # is verified, which is 1 iff
    #     amount <= max_amount,
    #     event_id = low bits of H(txVal, recipientVal, amount),
    #     nullifier = low bits of H(txVal, secret),
    #     secret != 0,
    # where txVal and recipientVal are packed from the low packed_bits of tx_hash and recipient.

    def __init__(self, params: VerifierParams | None = None) -> None:
        super().__init__()
        self.params = prm = params or VerifierParams()
        n = prm.vector_bits

        tx_hash = self.PARAMS("tx_hash", n, public=True)
        recipient = self.PARAMS("recipient", n, public=True)
        amount = self.PARAM("amount", public=True)
        event_id = self.PARAMS("event_id", n, public=True)
        nullifier = self.PARAMS("nullifier", n, public=True)
        secret = self.PARAM("secret")
        for xBit in tx_hash + recipient + event_id + nullifier:
            self.ASSERT_IS_BOOL(xBit, msg="public input bit is not boolean")

        tx_val = self.GALOIS(tx_hash[: prm.packed_bits])
        recipient_val = self.GALOIS(recipient[: prm.packed_bits])

        # amount has to fit in the comparator width, otherwise LE gives no meaningful result
        self.BINARY(amount, prm.amount_bits, msg="amount out of range")
        amount_ok = self.LE(amount, prm.max_amount, prm.amount_bits)

        event_hash = self.POSEIDON([tx_val, recipient_val, amount])
        event_id_ok = self.BINEQ(event_id, self.LOWBITS(event_hash, n))

        null_hash = self.POSEIDON([tx_val, secret])
        nullifier_ok = self.BINEQ(nullifier, self.LOWBITS(null_hash, n))

        secret_ok = self.NOT(self.ISZ(secret))

        step1 = self.AND(amount_ok, event_id_ok)
        step2 = self.AND(nullifier_ok, secret_ok)
        self.verified = self.REVEAL("verified", self.AND(step1, step2))

        self.checks: dict[str, Bit] = {
            "amount": amount_ok,
            "event_id": event_id_ok,
            "nullifier": nullifier_ok,
            "secret": secret_ok,
        }
        logger.debug("event verifier built: %d wires, %d gates, %d public entries", self.wire_count, len(self.gates), len(self.stmts))

    @property
    def names(self) -> list[str]:
        return list(self.stmts.values())

    def evaluate(self, args: Args) -> int:
        # The value of verified for the given arguments, raising ConstraintError when no witness exists.
        return self.satisfy(args).apply(self.verified)

    def diagnose(self, witness: Witness) -> list[str]:
        return [name for name, xBit in self.checks.items() if witness.apply(xBit) != 0x01]

    def ensure(self, args: Args) -> Witness:
        # Like satisfy, but additionally raise the error of the first failing sub-predicate, the others
        # are listed in its failed attribute.
        witness = self.satisfy(args)
        failed = self.diagnose(witness)
        if failed:
            logger.info("predicate failed: %s", ", ".join(failed))
            raise PREDICATES[failed[0]](failed)
        return witness