# Errors are split by the stage that detects them: building the circuit (ConfigError), encoding the
# arguments (FieldError, WidthError), evaluating the witness against the gates (ConstraintError), reading
# the sub-predicates of a satisfied witness (PredicateError) and accepting a proof (ProofRejected).


class BridgeProofError(Exception):
    pass


class ConfigError(BridgeProofError, ValueError):
    # A gadget was instantiated with parameters it cannot handle, e.g. an empty vector.
    pass


class FieldError(BridgeProofError, ValueError):
    # An argument is not a valid field element, or a bit is not 0 or 1.
    pass


class WidthError(BridgeProofError, ValueError):
    # A bit vector or an argument set does not have the expected width.
    pass


class ConstraintError(BridgeProofError):
    # The witness does not satisfy a gate, so no proof can be produced for the given arguments.

    def __init__(self, msg: str, index: int | None = None) -> None:
        super().__init__(msg if index is None else "{} (gate {})".format(msg, index))
        self.msg = msg
        self.index = index


class PredicateError(BridgeProofError):
    # The witness exists but one of the sub-predicates evaluated to 0, so verified = 0.
    reason = "predicate failed"

    def __init__(self, failed: list[str] | None = None) -> None:
        super().__init__(self.reason)
        self.failed = failed or []


class AmountExceedsBound(PredicateError):
    reason = "amount exceeds bound"


class EventIdMismatch(PredicateError):
    reason = "event-id mismatch"


class NullifierMismatch(PredicateError):
    reason = "nullifier mismatch"


class SecretIsZero(PredicateError):
    reason = "secret is zero"


class ProofRejected(BridgeProofError):
    pass


class NullifierReused(ProofRejected):
    def __init__(self, nullifier: int) -> None:
        super().__init__("nullifier {:#018x} already consumed".format(nullifier))
        self.nullifier = nullifier
