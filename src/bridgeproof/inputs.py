from dataclasses import dataclass

from pymcl import r as ρ

from .errors import FieldError, WidthError
from .event import VerifierParams
from .poseidon import poseidon
from .types import Args, Fld


# Chain observers hand over deposits as plain integers, the helpers below turn them into the named
# arguments of EventVerifier and derive event_id and nullifier off-circuit exactly as the circuit does.


def bits(x: int, n: int) -> list[int]:
    # little-endian, bit i has weight 2ⁱ
    return [x >> i & 0x01 for i in range(n)]


def unbits(xBin: list[int]) -> int:
    return sum(xBit << i for i, xBit in enumerate(xBin))


def low(x: int, n: int) -> int:
    return x & (0x01 << n) - 0x01


@dataclass(frozen=True)
class DepositEvent:
    tx_hash: int
    recipient: int
    amount: int

    def __post_init__(self) -> None:
        for name in ("tx_hash", "recipient", "amount"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise FieldError("{} must be a non-negative integer, got {!r}".format(name, value))
        if self.amount >= ρ:
            raise FieldError("amount is not a field element")

    @classmethod
    def from_hex(cls, tx_hash: str, recipient: str, amount: int | str, width: int = 64) -> "DepositEvent":
        # Chain hashes and addresses are wider than the circuit vectors, only their low bits are kept.
        try:
            tx_val = int(tx_hash, 16)
            recipient_val = int(recipient, 16)
            amount_val = int(amount, 0) if isinstance(amount, str) else amount
        except ValueError as e:
            raise FieldError(str(e)) from e
        return cls(tx_hash=low(tx_val, width), recipient=low(recipient_val, width), amount=amount_val)

    def validate(self, params: VerifierParams) -> None:
        n = params.vector_bits
        if self.tx_hash.bit_length() > n or self.recipient.bit_length() > n:
            raise WidthError("tx_hash and recipient must fit in {} bits".format(n))


def pack(x: int, params: VerifierParams) -> Fld:
    # txVal and recipientVal only take the low packed_bits of the vectors
    return low(x, params.packed_bits)


def derive_event_id(event: DepositEvent, params: VerifierParams | None = None) -> int:
    params = params or VerifierParams()
    digest = poseidon(pack(event.tx_hash, params), pack(event.recipient, params), event.amount)
    return low(digest, params.vector_bits)


def derive_nullifier(event: DepositEvent, secret: int, params: VerifierParams | None = None) -> int:
    params = params or VerifierParams()
    digest = poseidon(pack(event.tx_hash, params), secret % ρ)
    return low(digest, params.vector_bits)


def encode_args(
    event: DepositEvent,
    secret: int,
    event_id: int | None = None,
    nullifier: int | None = None,
    params: VerifierParams | None = None,
) -> Args:
    # event_id and nullifier default to the honest derivation, passing them explicitly allows to build
    # arguments for a claim that does not hold.
    params = params or VerifierParams()
    event.validate(params)
    n = params.vector_bits
    if event_id is None:
        event_id = derive_event_id(event, params)
    if nullifier is None:
        nullifier = derive_nullifier(event, secret, params)
    args: Args = {}
    for name, value in (("tx_hash", event.tx_hash), ("recipient", event.recipient), ("event_id", event_id), ("nullifier", nullifier)):
        if not 0 <= value < 0x01 << n:
            raise WidthError("{} must fit in {} bits".format(name, n))
        args.update(("{}[{}]".format(name, i), xBit) for i, xBit in enumerate(bits(value, n)))
    args["amount"] = event.amount
    args["secret"] = secret
    validate_args(args, params)
    return args


def decode_vector(values: dict[str, int], name: str, n: int) -> int:
    return unbits([values["{}[{}]".format(name, i)] for i in range(n)])


def validate_args(args: Args, params: VerifierParams | None = None) -> None:
    # Reject malformed arguments before the witness is evaluated, so that encoding problems are not
    # reported as unsatisfied gates.
    params = params or VerifierParams()
    n = params.vector_bits
    vectors = ("tx_hash", "recipient", "event_id", "nullifier")
    expected = {"{}[{}]".format(name, i) for name in vectors for i in range(n)} | {"amount", "secret"}
    missing = expected - args.keys()
    if missing:
        raise WidthError("missing arguments: {}".format(", ".join(sorted(missing))))
    unknown = args.keys() - expected
    if unknown:
        raise WidthError("unknown arguments: {}".format(", ".join(sorted(unknown))))
    for name, value in args.items():
        if not isinstance(value, int) or isinstance(value, bool):
            raise FieldError("{} must be an integer, got {!r}".format(name, value))
        if not 0 <= value < ρ:
            raise FieldError("{} is not a field element".format(name))
        if name.endswith("]") and value not in (0x00, 0x01):
            raise FieldError("{} must be 0 or 1, got {}".format(name, value))
