import logging
import multiprocessing
import secrets
from dataclasses import dataclass
from typing import TypeVar, Iterable, BinaryIO

from pymcl import Fr, G1, G2, pairing, g1, g2, r as ρ

from . import fft
from .errors import FieldError
from .types import Witness, Gate, Fld


logger = logging.getLogger(__name__)


Gn = TypeVar("Gn", G1, G2)
Fv = Fr | Fld


# scalar multiplication and dot product optimized for parallel execution


THREADS = None  # automatically set to the number of CPU cores


def worker(Group: type[Gn], p: str, z: str) -> str:
    return str(Group(p) * Fr(z))


def scalar_mult_parallel(P: Gn, Zs: Iterable[Fv]) -> list[Gn]:
    Group = type(P)
    with multiprocessing.Pool(THREADS) as pool:
        return [Group(q) for q in pool.starmap(worker, ((Group, str(P), str(Z)) for Z in Zs))]


def dot_prod_parallel(O: Gn, Ps: Iterable[Gn], Zs: Iterable[Fv]) -> Gn:
    Group = type(O)
    with multiprocessing.Pool(THREADS) as pool:
        return sum((Group(q) for q in pool.starmap(worker, ((Group, str(P), str(Z)) for P, Z in zip(Ps, Zs, strict=True)))), O)


def nonzero() -> Fld:
    return secrets.randbelow(ρ - 1) + 1


# binary encoding of group elements and scalars


L0 = ((ρ - 1).bit_length() + 7) // 8
L1 = len(g1.serialize())
L2 = len(g2.serialize())


def check_values(uU: list[Fld]) -> None:
    # public values travel as plain integers next to the proof, anything outside GF(ρ) is malformed
    for i, u in enumerate(uU):
        if not isinstance(u, int) or not 0 <= u < ρ:
            raise FieldError("public value {} is not a field element".format(i))


def write_points(file: BinaryIO, Ps: Iterable[G1 | G2]) -> None:
    for P in Ps:
        file.write(P.serialize())


def read_g1s(file: BinaryIO, n: int) -> list[G1]:
    return [G1.deserialize(file.read(L1)) for _ in range(n)]


def read_g2s(file: BinaryIO, n: int) -> list[G2]:
    return [G2.deserialize(file.read(L2)) for _ in range(n)]


# Groth16 keys and proofs, the statement of the predicate is the list of public entries (ONE, the
# public inputs and verified), whose values travel with the proof


@dataclass
class PKey:
    α1: G1
    β1: G1
    δ1: G1
    β2: G2
    δ2: G2
    v1V: list[G1]
    x1I: list[G1]
    x2I: list[G2]
    y1I: list[G1]

    def dumps(self, file: BinaryIO) -> None:
        write_points(file, [self.α1, self.β1, self.δ1, self.β2, self.δ2])
        write_points(file, self.v1V)
        write_points(file, self.x1I)
        write_points(file, self.x2I)
        write_points(file, self.y1I)

    @staticmethod
    def loads(file: BinaryIO, wire_count: int, gate_count: int, stmt_count: int) -> "PKey":
        V = wire_count - stmt_count
        I = 1 << (gate_count - 1).bit_length()
        α1, β1, δ1 = read_g1s(file, 3)
        β2, δ2 = read_g2s(file, 2)
        return PKey(α1=α1, β1=β1, δ1=δ1, β2=β2, δ2=δ2, v1V=read_g1s(file, V), x1I=read_g1s(file, I), x2I=read_g2s(file, I), y1I=read_g1s(file, I))


@dataclass
class VKey:
    α1: G1
    β2: G2
    γ2: G2
    δ2: G2
    u1U: list[G1]

    def dumps(self, file: BinaryIO) -> None:
        write_points(file, [self.α1, self.β2, self.γ2, self.δ2])
        write_points(file, self.u1U)

    @staticmethod
    def loads(file: BinaryIO, stmt_count: int) -> "VKey":
        [α1] = read_g1s(file, 1)
        β2, γ2, δ2 = read_g2s(file, 3)
        return VKey(α1=α1, β2=β2, γ2=γ2, δ2=δ2, u1U=read_g1s(file, stmt_count))


@dataclass
class Key:
    pk: PKey
    vk: VKey


@dataclass
class Proof:
    A1: G1
    B2: G2
    C1: G1
    uU: list[Fld]  # values of the public entries

    def dumps(self, file: BinaryIO) -> None:
        write_points(file, [self.A1, self.B2, self.C1])
        for u in self.uU:
            file.write(u.to_bytes(L0, "big"))

    @staticmethod
    def loads(file: BinaryIO, stmt_count: int) -> "Proof":
        [A1] = read_g1s(file, 1)
        [B2] = read_g2s(file, 1)
        [C1] = read_g1s(file, 1)
        uU = [int.from_bytes(file.read(L0), "big") for _ in range(stmt_count)]
        check_values(uU)
        return Proof(A1=A1, B2=B2, C1=C1, uU=uU)


@dataclass
class Result:
    passed: bool
    values: dict[str, Fld]


def fr(x: Fld) -> Fr:
    return Fr(str(x))


def columns(XI: list[Fld], gates: list[Gate], M: int) -> tuple[list[Fld], list[Fld], list[Fld]]:
    # Aₘ(τ), Bₘ(τ), Cₘ(τ) are needed for every column m of the three constraint matrices. Interpolating
    # each column costs O(I²) or O(IlogI) with iFFT, but the matrices are sparse, so the DFT identity
    #     Σᵢ₌₀ᴵ⁻¹ Xᵢyᵢ = Σᵢ₌₀ᴵ⁻¹ xᵢYᵢ
    # for DFT pairs (x, X) and (y, Y) turns them into
    #     Aₘ(τ) = Σᵢ₌₀ᴵ⁻¹ Xᵢaᵢₘ,  Bₘ(τ) = Σᵢ₌₀ᴵ⁻¹ Xᵢbᵢₘ,  Cₘ(τ) = Σᵢ₌₀ᴵ⁻¹ Xᵢcᵢₘ
    # where X is the inverse DFT of [τ⁰, τ¹, ..., τᴵ⁻¹], one iFFT for all columns.
    AτM, BτM, CτM = ([0x00] * M for _ in range(3))
    for X, (aM, bM, cM, msg) in zip(XI, gates):
        for τM, xM in ((AτM, aM), (BτM, bM), (CτM, cM)):
            # constants are multiples of entry 0, the ONE entry
            for m, a in ({0: xM} if isinstance(xM, Fld) else xM.data).items():
                τM[m] = (τM[m] + X * a) % ρ
    return AτM, BτM, CτM


def setup(wire_count: int, skeys: Iterable[int], gates: list[Gate]) -> Key:
    skeys = list(skeys)
    public = set(skeys)
    α, β, γ, δ, τ = (nonzero() for _ in range(5))
    N = len(gates)
    M = wire_count
    I = 1 << (N - 1).bit_length()  # the smallest power of 2 that is not less than N
    p = fft.root(I)  # the primitive I-th root of unity in GF(P)
    AτM, BτM, CτM = columns(fft.intt(list(fft.pows(τ, I)), p), gates, M)
    ΣτM = [β * Aτ + α * Bτ + Cτ for Aτ, Bτ, Cτ in zip(AτM, BτM, CτM)]
    Zτ = pow(τ, I, ρ) - 0x01  # Z(τ), where Z(X) = Πᵢ₌₀ᴵ⁻¹ (X - pⁱ)
    Γ = pow(γ, -1, ρ)
    Δ = pow(δ, -1, ρ)
    logger.info("groth16 setup: %d gates, %d wires, %d public entries, domain %d", N, M, len(skeys), I)
    pk = PKey(
        α1=g1 * fr(α),
        β1=g1 * fr(β),
        δ1=g1 * fr(δ),
        β2=g2 * fr(β),
        δ2=g2 * fr(δ),
        v1V=scalar_mult_parallel(g1, (ΣτM[m] * Δ % ρ for m in range(M) if m not in public)),
        x1I=scalar_mult_parallel(g1, fft.pows(τ, I)),
        x2I=scalar_mult_parallel(g2, fft.pows(τ, I)),
        y1I=scalar_mult_parallel(g1, (x * Δ * Zτ % ρ for x in fft.pows(τ, I))),
    )
    vk = VKey(
        α1=pk.α1,
        β2=pk.β2,
        γ2=g2 * fr(γ),
        δ2=pk.δ2,
        u1U=scalar_mult_parallel(g1, (ΣτM[m] * Γ % ρ for m in skeys)),
    )
    return Key(pk=pk, vk=vk)


def prove(wire_count: int, skeys: Iterable[int], gates: list[Gate], pk: PKey, witness: Witness) -> Proof:
    # raises ConstraintError if the witness does not satisfy the gates
    witness.check(gates)
    skeys = list(skeys)
    public = set(skeys)
    r = nonzero()
    s = nonzero()
    N = len(gates)
    M = wire_count
    I = 1 << (N - 1).bit_length()
    J = 1 << (N - 1).bit_length() + 1
    p = fft.root(I)
    q = fft.root(J)
    wM = witness.vec
    uU = [wM[m] for m in skeys]
    vV = [wM[m] for m in range(M) if m not in public]
    # A(pⁱ), B(pⁱ), C(pⁱ) are the gate sides evaluated on the witness, so A, B, C follow from an iFFT. Z
    # vanishes on the domain, hence H = (AB - C) / Z is evaluated on the coset qpⁱ instead, where
    # Z(qpⁱ) = -2, and then recovered with a coset iFFT.
    AwI, BwI, CwI = (fft.intt([witness.apply(gate[k]) for gate in gates] + [0x00] * (I - N), p) for k in range(3))
    awI, bwI, cwI = (fft.ntt(fft.coset(XwI, q), p) for XwI in (AwI, BwI, CwI))
    hI = [(ρ - 1) // 2 * (aw * bw - cw) % ρ for aw, bw, cw in zip(awI, bwI, cwI, strict=True)]
    HI = fft.coset(fft.intt(hI, p), pow(q, -1, ρ))
    logger.info("groth16 prove: %d gates, %d private entries", N, len(vV))
    A1 = dot_prod_parallel(pk.α1 + pk.δ1 * fr(r), pk.x1I, AwI)
    B1 = dot_prod_parallel(pk.β1 + pk.δ1 * fr(s), pk.x1I, BwI)
    B2 = dot_prod_parallel(pk.β2 + pk.δ2 * fr(s), pk.x2I, BwI)
    C1 = A1 * fr(s) + B1 * fr(r) - pk.δ1 * fr(r * s % ρ)
    C1 = dot_prod_parallel(C1, pk.y1I, HI)
    C1 = dot_prod_parallel(C1, pk.v1V, vV)
    return Proof(A1=A1, B2=B2, C1=C1, uU=uU)


def verify(names: Iterable[str], vk: VKey, proof: Proof) -> Result:
    check_values(proof.uU)
    D1 = dot_prod_parallel(G1(), vk.u1U, proof.uU)
    passed = pairing(proof.A1, proof.B2) == pairing(vk.α1, vk.β2) * pairing(D1, vk.γ2) * pairing(proof.C1, vk.δ2)
    logger.info("groth16 verify: %s", "passed" if passed else "failed")
    return Result(passed=passed, values=dict(zip(names, proof.uU, strict=True)))
