import logging
from typing import Iterable

from pymcl import r as ρ

from . import poseidon
from .errors import ConfigError, ConstraintError
from .types import Fld, Var, Gal, Args, Gate, S_Fn, M_Fn, Func, Witness


logger = logging.getLogger(__name__)


Bit = Gal
Bin = list[Bit]


class Circuit:
    # Builder for rank-1 constraint systems. Wires are linear combinations of witness entries (or plain
    # constants), every gadget is a method that takes wires, appends the gates x * y = z it needs, and
    # returns its output wires. Linear operations only rewrite coefficients and cost no gate, so no
    # constraint ever exceeds degree 2.

    wire_count: int  # number of witness entries allocated so far
    funcs: list[Func]  # how each witness entry (or run of entries) is computed from the arguments
    stmts: dict[int, str]  # public entries, witness index -> name, in allocation order
    gates: list[Gate]  # (x, y, z, msg) for x * y = z

    def __init__(self) -> None:
        self.wire_count = 0
        self.funcs = []
        self.stmts = {}
        self.gates = []
        # entry 0 is the constant 1, constants in linear combinations are its coefficients
        [self.one] = self.MKWIRE(lambda getw, args: 0x01, "ONE").data

    def MKWIRE(self, func: S_Fn, name: str | None = None) -> Var:
        # Allocate one witness entry whose value is func(getw, args), e.g.
        #     z = MKWIRE(lambda getw, args: getw(x) * getw(y) % ρ)
        # Nothing constrains the entry until a gate mentions it. Named entries become public.
        i = self.wire_count
        self.funcs.append((None, func))
        self.wire_count += 1
        if name is not None:
            self.stmts[i] = name
        return Var({i: 0x01})

    def MKWIRES(self, func: M_Fn, n: int) -> list[Var]:
        # Allocate n consecutive private entries filled from the n values returned by func.
        i = self.wire_count
        self.funcs.append((n, func))
        self.wire_count += n
        return [Var({i + j: 0x01}) for j in range(n)]

    def MKGATE(self, xGal: Gal, yGal: Gal, zGal: Gal, *, msg="assertion error") -> None:
        # Append x * y = z. When x or y is a constant the product is linear, so the gate is rewritten as
        # 0 * 0 = z - x * y, and dropped (or rejected right away) when that difference is a constant.
        if isinstance(xGal, Fld) or isinstance(yGal, Fld):
            zGal = self.SUB(zGal, self.MUL(xGal, yGal))
            if isinstance(zGal, Fld):
                if zGal != 0x00:
                    raise ConstraintError(msg)
                return
            xGal = yGal = 0x00
        self.gates.append((xGal, yGal, zGal, msg))

    def PARAM(self, name: str, public: bool = False) -> Var:
        # An entry read from args[name] when the witness is evaluated.
        return self.MKWIRE(lambda getw, args: args[name] % ρ, name if public else None)

    def PARAMS(self, name: str, n: int, public: bool = False) -> list[Var]:
        # name[0], name[1], ..., name[n - 1]
        return [self.PARAM("{}[{}]".format(name, i), public) for i in range(n)]

    def REVEAL(self, name: str, xGal: Gal, *, msg="reveal error") -> Var:
        # Copy x into a new public entry.
        rGal = self.MKWIRE(lambda getw, args: getw(xGal), name)
        self.ASSERT_EQZ(self.SUB(xGal, rGal), msg=msg)
        return rGal

    def satisfy(self, args: Args) -> Witness:
        # Evaluate the witness for the given arguments and make sure every gate holds.
        witness = Witness(self.funcs, args)
        witness.check(self.gates)
        return witness

    # linear combinations

    def LINEAR(self, terms: Iterable[tuple[Fld, Gal]]) -> Gal:
        # Σ cᵢxᵢ as a single wire, collapsed to a constant when only the ONE entry is left.
        data: dict[int, Fld] = {}
        for c, xGal in terms:
            for k, v in ({self.one: xGal} if isinstance(xGal, Fld) else xGal.data).items():
                data[k] = (data.get(k, 0x00) + c * v) % ρ
        rGal = Var({k: v for k, v in data.items() if v})
        return rGal.data.get(self.one, 0x00) if rGal.data.keys() <= {self.one} else rGal

    def ADD(self, xGal: Gal, yGal: Gal) -> Gal:
        return self.LINEAR([(0x01, xGal), (0x01, yGal)])

    def SUB(self, xGal: Gal, yGal: Gal) -> Gal:
        return self.LINEAR([(0x01, xGal), (ρ - 0x01, yGal)])

    def SUM(self, iLst: Iterable[Gal], rGal: Gal = 0x00) -> Gal:
        return self.LINEAR((0x01, iGal) for iGal in [rGal, *iLst])

    def MUL(self, xGal: Gal, yGal: Gal, *, msg="multiplication error") -> Gal:
        # Scaling by a constant is linear, only the product of two wires allocates an entry and a gate.
        if isinstance(xGal, Fld):
            return self.LINEAR([(xGal, yGal)])
        if isinstance(yGal, Fld):
            return self.LINEAR([(yGal, xGal)])
        zGal = self.MKWIRE(lambda getw, args: getw(xGal) * getw(yGal) % ρ)
        self.MKGATE(xGal, yGal, zGal, msg=msg)
        return zGal

    # bit vectors

    def BINARY(self, xGal: Gal, xLen: int, *, msg="binarization error") -> Bin:
        # Little-endian bits b₀..bₙ₋₁ of x with Σ bᵢ2ⁱ = x, e.g. BINARY(6, 3) = [0, 1, 1]. There is no
        # witness when x ≥ 2ⁿ. The width stays below the bit length of ρ, so the bits are unique.
        if not 0 <= xLen < ρ.bit_length():
            raise ConfigError("invalid bit length {}".format(xLen))
        if isinstance(xGal, Fld):
            if xGal >> xLen:
                raise ConstraintError(msg)
            return [xGal >> iLen & 0x01 for iLen in range(xLen)]
        xBin = self.MKWIRES(lambda getw, args: [getw(xGal) >> iLen & 0x01 for iLen in range(xLen)], xLen)
        for xBit in xBin:
            self.ASSERT_IS_BOOL(xBit)
        self.ASSERT_EQZ(self.SUB(xGal, self.GALOIS(xBin)), msg=msg)
        return xBin

    def GALOIS(self, xBin: Bin) -> Gal:
        # Σ bᵢ2ⁱ
        return self.LINEAR((0x02**iLen, xBit) for iLen, xBit in enumerate(xBin))

    def LOWBITS(self, xGal: Gal, bLen: int, *, msg="low bits error") -> Bin:
        # The lowest bLen bits of the canonical representative of x in [0, ρ). A full field element
        # cannot be passed to BINARY, so x is split as x = l + 2ᵇh with l < 2ᵇ and h < 2ᵏ⁻ᵇ, where k is
        # the bit length of ρ. Since 2ᵏ > ρ, a second split exists for some x, which is ruled out by
        # asserting (h, l) < (ρ >> b, ρ mod 2ᵇ) lexicographically.
        if not 0 < bLen < ρ.bit_length() - 1:
            raise ConfigError("invalid bit length {}".format(bLen))
        if isinstance(xGal, Fld):
            return [xGal >> iLen & 0x01 for iLen in range(bLen)]
        hLen = ρ.bit_length() - bLen
        ρh, ρl = ρ >> bLen, ρ % 0x02**bLen
        lBin = self.MKWIRES(lambda getw, args: [getw(xGal) >> iLen & 0x01 for iLen in range(bLen)], bLen)
        for lBit in lBin:
            self.ASSERT_IS_BOOL(lBit)
        hGal = self.MKWIRE(lambda getw, args: getw(xGal) >> bLen)
        self.BINARY(hGal, hLen, msg=msg)
        lGal = self.GALOIS(lBin)
        self.ASSERT_EQZ(self.SUB(xGal, self.ADD(lGal, self.MUL(hGal, 0x02**bLen))), msg=msg)
        ltHi = self.LT(hGal, ρh, hLen)
        eqHi = self.ISZ(self.SUB(hGal, ρh))
        ltLo = self.LT(lGal, ρl, bLen)
        self.ASSERT_EQZ(self.SUB(0x01, self.ADD(ltHi, self.AND(eqHi, ltLo))), msg=msg)
        return lBin

    # logical operations on boolean values

    def NOT(self, xBit: Bit) -> Bit:
        return self.SUB(0x01, xBit)

    def AND(self, xBit: Bit, yBit: Bit) -> Bit:
        return self.MUL(xBit, yBit)

    def ALL(self, xLst: list[Bit]) -> Bit:
        # Conjunction of n booleans as a left fold of pairwise products, acc₀ = x₀x₁, accᵢ = accᵢ₋₁xᵢ₊₁,
        # instead of a single product of degree n.
        if len(xLst) == 0:
            raise ConfigError("conjunction of an empty list")
        rBit, *xLst = xLst
        for xBit in xLst:
            rBit = self.AND(rBit, xBit)
        return rBit

    # compare operations on galios field elements

    def LE(self, xGal: Gal, yGal: Gal, bLen: int, msg="LE compare failed") -> Bit:  # 0x00 <= yGal - xGal < 0x02 ** bLen
        return self.BINARY(self.ADD(0x02**bLen, self.SUB(yGal, xGal)), bLen + 1, msg=msg)[bLen]

    def LT(self, xGal: Gal, yGal: Gal, bLen: int, msg="LT compare failed") -> Bit:  # 0x00 < yGal - xGal <= 0x02 ** bLen
        return self.BINARY(self.ADD(0x02**bLen, self.SUB(self.SUB(yGal, xGal), 0x01)), bLen + 1, msg=msg)[bLen]

    def ISZ(self, xGal: Gal, *, msg="zeroness error") -> Bit:
        # Return 1 if x is zero and 0 otherwise. The prover supplies i = x⁻¹ (or 0 when x = 0), then
        # r = 1 - x * i and x * r = 0 force r = 0 for any non-zero x and r = 1 for x = 0.
        if isinstance(xGal, Fld):
            return 0x01 if xGal == 0x00 else 0x00
        iGal = self.MKWIRE(lambda getw, args: pow(getw(xGal), -1, ρ) if getw(xGal) else 0x00)
        rBit = self.SUB(0x01, self.MUL(xGal, iGal, msg=msg))
        self.MKGATE(xGal, rBit, 0x00, msg=msg)
        return rBit

    def EQ(self, xGal: Gal, yGal: Gal) -> Bit:
        return self.ISZ(self.SUB(xGal, yGal))

    def BINEQ(self, xBin: Bin, yBin: Bin) -> Bit:
        # 1 iff the two binary lists are identical.
        if len(xBin) != len(yBin):
            raise ConfigError("comparing binary lists of lengths {} and {}".format(len(xBin), len(yBin)))
        if len(xBin) == 0:
            raise ConfigError("comparing empty binary lists")
        return self.ALL([self.EQ(xBit, yBit) for xBit, yBit in zip(xBin, yBin)])

    # hash

    def SBOX(self, xGal: Gal) -> Gal:
        # x⁵ in three multiplications
        x2 = self.MUL(xGal, xGal)
        x4 = self.MUL(x2, x2)
        return self.MUL(x4, xGal)

    def POSEIDON(self, iLst: list[Gal]) -> Gal:
        # In-circuit Poseidon permutation over [i₁, ..., iₖ, 0] with the constants of poseidon.instance,
        # the digest is state[1] as in the native hash. Adding round constants and mixing with the MDS
        # matrix are linear and cost no gates.
        prm = poseidon.params(len(iLst))
        gate_count = len(self.gates)
        sLst: list[Gal] = [*iLst, 0x00]
        for r in range(prm.rf + prm.rp):
            sLst = [self.ADD(sGal, c) for sGal, c in zip(sLst, prm.rcs[r])]
            if prm.is_full(r):
                sLst = [self.SBOX(sGal) for sGal in sLst]
            else:
                sLst[0] = self.SBOX(sLst[0])
            sLst = [self.SUM(self.MUL(sGal, m) for sGal, m in zip(sLst, row)) for row in prm.mds]
        logger.debug("Poseidon arity %d emitted %d gates", len(iLst), len(self.gates) - gate_count)
        return sLst[1]

    # assertion operations on galios field elements

    def ASSERT_EQZ(self, xGal: Gal, *, msg="EQZ assertion failed") -> None:
        self.MKGATE(0x00, 0x00, xGal, msg=msg)

    def ASSERT_IS_BOOL(self, xGal: Gal, *, msg="IS_BOOL assertion failed") -> None:
        # Assert x is a boolean value.
        self.MKGATE(xGal, xGal, xGal, msg=msg)
