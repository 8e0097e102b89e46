import contextlib
import functools
import io
import logging
import threading
from dataclasses import dataclass

from poseidon import Poseidon
from pymcl import r as ρ

from .errors import ConfigError
from .types import Fld


logger = logging.getLogger(__name__)


# Poseidon over the scalar field of BLS12-381 with the x⁵ S-box. The number of partial rounds is taken
# from the round-number table for 128-bit security, keyed by the width t = arity + 1. Round constants
# (Grain LFSR) and the MDS matrix come from the poseidon-hash instance, so the in-circuit permutation
# and the native hash share them.

SECURITY_LEVEL = 128
ALPHA = 0x05
FULL_ROUNDS = 8
PARTIAL_ROUNDS = {2: 56, 3: 57, 4: 56, 5: 60, 6: 60, 7: 63, 8: 64, 9: 63}


@functools.cache
def instance(arity: int) -> Poseidon:
    t = arity + 1
    if t not in PARTIAL_ROUNDS:
        raise ConfigError("unsupported Poseidon arity {}".format(arity))
    # the library reports its progress on stdout
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        hasher = Poseidon(ρ, SECURITY_LEVEL, ALPHA, arity, t, full_round=FULL_ROUNDS, partial_round=PARTIAL_ROUNDS[t])
    for line in out.getvalue().splitlines():
        logger.debug("poseidon-hash: %s", line)
    logger.debug("generated Poseidon parameters t=%d R_F=%d R_P=%d", t, FULL_ROUNDS, PARTIAL_ROUNDS[t])
    return hasher


@dataclass(frozen=True)
class Params:
    t: int
    rf: int
    rp: int
    rcs: tuple[tuple[Fld, ...], ...]  # one row of t constants per round
    mds: tuple[tuple[Fld, ...], ...]

    def is_full(self, r: int) -> bool:
        return r < self.rf // 2 or r >= self.rf // 2 + self.rp


@functools.cache
def params(arity: int) -> Params:
    # The constants of instance(arity) as plain integers, the form Circuit.POSEIDON works with.
    hasher = instance(arity)
    t = hasher.t
    rf, rp = hasher.full_round, hasher.partial_round
    flat = [int(c) for c in hasher.rc_field]
    rcs = tuple(tuple(flat[r * t : (r + 1) * t]) for r in range(rf + rp))
    mds = tuple(tuple(int(m) for m in row) for row in hasher.mds_matrix)
    return Params(t=t, rf=rf, rp=rp, rcs=rcs, mds=mds)


lock = threading.Lock()


def poseidon(*inputs: Fld) -> Fld:
    # Native counterpart of Circuit.POSEIDON: the state is [i₁, ..., iₖ, 0] and the digest is state[1].
    if not inputs:
        raise ConfigError("Poseidon needs at least one input")
    hasher = instance(len(inputs))
    # run_hash keeps the state on the instance
    with lock:
        return int(hasher.run_hash([x % ρ for x in inputs]))
