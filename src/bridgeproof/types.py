from dataclasses import dataclass, field
from typing import Callable, Iterable

from pymcl import r as ρ

from .errors import ConstraintError


Fld = int


@dataclass
class Var:
    # A wire: a linear combination of witness entries, stored as {index: coefficient} without zero
    # coefficients, so w₀ + 5w₂ + 7w₃ is {0: 1, 2: 5, 3: 7}. Wires that are known to be constant are
    # passed around as plain integers instead.

    data: dict[int, Fld] = field(default_factory=lambda: {})


Gal = Var | Fld


Gate = tuple[Gal, Gal, Gal, str]
Getw = Callable[[Gal], Fld]
Args = dict[str, Fld]
S_Fn = Callable[[Getw, Args], Fld]
M_Fn = Callable[[Getw, Args], Iterable[Fld]]
Func = tuple[None, S_Fn] | tuple[int, M_Fn]


class Witness:
    def __init__(self, funcs: list[Func], args: Args) -> None:
        self.vec: list[Fld] = []
        for n, func in funcs:
            res = func(self.apply, args)
            if n is None:
                self.vec.append(res)
            else:
                res = list(res)
                if len(res) != n:
                    raise ValueError("witness function returned {} entries, expected {}".format(len(res), n))
                self.vec.extend(res)

    def apply(self, xGal: Gal) -> Fld:
        return xGal if isinstance(xGal, Fld) else sum(self.vec[m] * a for m, a in xGal.data.items()) % ρ  # <w, t> = Σₘ₌₀ᴹ⁻¹ wₘtₘ

    def check(self, gates: list[Gate]) -> None:
        # Raise on the first gate x * y = z that the witness does not satisfy, which means no witness
        # exists for the given arguments.
        for i, (aM, bM, cM, msg) in enumerate(gates):
            if self.apply(aM) * self.apply(bM) % ρ != self.apply(cM):
                raise ConstraintError(msg, i)

    def unsatisfied(self, gates: list[Gate]) -> list[tuple[int, str]]:
        return [(i, msg) for i, (aM, bM, cM, msg) in enumerate(gates) if self.apply(aM) * self.apply(bM) % ρ != self.apply(cM)]
