import argparse
import logging
import sys

import dill

from .errors import BridgeProofError, ConfigError, PredicateError
from .event import EventVerifier
from .groth16 import PKey, VKey, Proof, setup, prove, verify
from .inputs import DepositEvent, encode_args
from .ledger import NullifierLedger, accept
from .types import Witness


def add_event_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-t", "--tx-hash", type=str, required=True, help="deposit transaction hash in hex, only the low 64 bits are used")
    parser.add_argument("-r", "--recipient", type=str, required=True, help="recipient address in hex, only the low 64 bits are used")
    parser.add_argument("-a", "--amount", type=str, required=True, help="deposit amount")


def add_claim_arguments(parser: argparse.ArgumentParser) -> None:
    add_event_arguments(parser)
    parser.add_argument("-s", "--secret", type=lambda v: int(v, 0), required=True, help="the prover's secret")
    parser.add_argument("--event-id", type=lambda v: int(v, 0), default=None, help="claimed event id (default: derived)")
    parser.add_argument("--nullifier", type=lambda v: int(v, 0), default=None, help="claimed nullifier (default: derived)")


def load_circuit(args: argparse.Namespace, need_funcs: bool = False) -> tuple[int, list[int], list, list | None]:
    # The constraints are either rebuilt or loaded from the files written by the compile command.
    if args.gates is None:
        print("Building the event verifier...")
        verifier = EventVerifier()
        return verifier.wire_count, list(verifier.stmts.keys()), verifier.gates, verifier.funcs
    with open(args.gates, "rb") as gates_file:
        print("Loading constraints from:", args.gates)
        wire_count, skeys, gates = dill.loads(gates_file.read())
    funcs = None
    if need_funcs:
        if args.funcs is None:
            raise ConfigError("--funcs must be provided together with --gates for proving.")
        with open(args.funcs, "rb") as funcs_file:
            print("Loading witness generation functions from:", args.funcs)
            funcs = dill.loads(funcs_file.read())
    return wire_count, list(skeys), gates, funcs


def load_names(args: argparse.Namespace) -> list[str]:
    if args.names is None:
        return EventVerifier().names
    with open(args.names, "rb") as names_file:
        print("Loading public entry names from:", args.names)
        return list(dill.loads(names_file.read()))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Bridge deposit predicate with a Groth16 prover/verifier")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True, help="sub-command")

    parser_compile = subparsers.add_parser("compile", help="build the predicate", description="Build the event verifier and write the constraints, witness generation functions, and public entry names to files.")
    parser_compile.add_argument("-g", "--gates", type=str, default=None, help="path to write the constraints to")
    parser_compile.add_argument("-f", "--funcs", type=str, default=None, help="path to write the witness generation functions to")
    parser_compile.add_argument("-n", "--names", type=str, default=None, help="path to write the public entry names to")

    parser_setup = subparsers.add_parser("setup", help="set up the parameters", description="Set up the parameters for proving and verifying and write them to files.")
    parser_setup.add_argument("-g", "--gates", type=str, default=None, help="path to read the constraints from (default: rebuild the predicate)")
    parser_setup.add_argument("-p", "--pk", type=str, default="a.pk", help="path to write the parameters for proving to (default: a.pk)")
    parser_setup.add_argument("-k", "--vk", type=str, default="a.vk", help="path to write the parameters for verifying to (default: a.vk)")

    parser_check = subparsers.add_parser("check", help="evaluate the predicate", description="Evaluate the predicate for a deposit claim without proving and report the failing sub-predicates.")
    add_claim_arguments(parser_check)

    parser_prove = subparsers.add_parser("prove", help="generate a proof", description="Generate a proof for a deposit claim and write it to a file.")
    parser_prove.add_argument("-g", "--gates", type=str, default=None, help="path to read the constraints from (default: rebuild the predicate)")
    parser_prove.add_argument("-f", "--funcs", type=str, default=None, help="path to read the witness generation functions from")
    parser_prove.add_argument("-p", "--pk", type=str, default="a.pk", help="path to read the parameters for proving from (default: a.pk)")
    parser_prove.add_argument("-P", "--proof", type=str, default="a.proof", help="path to write the proof to (default: a.proof)")
    add_claim_arguments(parser_prove)

    parser_verify = subparsers.add_parser("verify", help="verify a proof", description="Verify a proof, and with --ledger accept it for the given deposit.")
    parser_verify.add_argument("-n", "--names", type=str, default=None, help="path to read the public entry names from (default: rebuild the predicate)")
    parser_verify.add_argument("-k", "--vk", type=str, default="a.vk", help="path to read the parameters for verifying from (default: a.vk)")
    parser_verify.add_argument("-P", "--proof", type=str, default="a.proof", help="path to read the proof from (default: a.proof)")
    parser_verify.add_argument("-l", "--ledger", type=str, default=None, help="path of the nullifier ledger, requires the deposit arguments")
    parser_verify.add_argument("-t", "--tx-hash", type=str, default=None, help="deposit transaction hash in hex")
    parser_verify.add_argument("-r", "--recipient", type=str, default=None, help="recipient address in hex")
    parser_verify.add_argument("-a", "--amount", type=str, default=None, help="deposit amount")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        return run(args)
    except PredicateError as e:
        print("Predicate failed:", ", ".join(e.failed))
        return 1
    except BridgeProofError as e:
        print("Error:", e)
        return 1


def run(args: argparse.Namespace) -> int:
    if args.command == "compile":
        print("Building the event verifier...")
        verifier = EventVerifier()
        wire_count = verifier.wire_count
        skeys = list(verifier.stmts.keys())
        gates = verifier.gates

        print("Dimension of the witness vector:", wire_count)
        print("Number of constraints:", len(gates))
        print("Number of public entries:", len(skeys))

        if args.gates is not None:
            with open(args.gates, "wb") as gates_file:
                print("Saving constraints to:", args.gates)
                gates_file.write(dill.dumps((wire_count, skeys, gates)))

        if args.funcs is not None:
            with open(args.funcs, "wb") as funcs_file:
                print("Saving witness generation functions to:", args.funcs)
                funcs_file.write(dill.dumps(verifier.funcs))

        if args.names is not None:
            with open(args.names, "wb") as names_file:
                print("Saving public entry names to:", args.names)
                names_file.write(dill.dumps(verifier.names))
        # Whoever loads these files executes the functions inside them, so they should only be taken from
        # a trusted party.

    elif args.command == "setup":
        wire_count, skeys, gates, _ = load_circuit(args)

        print("Setting up parameters for proving and verifying...")
        key = setup(wire_count, skeys, gates)

        with open(args.pk, "wb") as pk_file:
            print("Saving parameters for proving to:", args.pk)
            key.pk.dumps(pk_file)

        with open(args.vk, "wb") as vk_file:
            print("Saving parameters for verifying to:", args.vk)
            key.vk.dumps(vk_file)

    elif args.command == "check":
        event = DepositEvent.from_hex(args.tx_hash, args.recipient, args.amount)
        verifier = EventVerifier()
        witness = verifier.satisfy(encode_args(event, args.secret, args.event_id, args.nullifier))
        failed = verifier.diagnose(witness)
        for name in verifier.checks:
            print("{:<10} {}".format(name, "failed" if name in failed else "ok"))
        verified = witness.apply(verifier.verified)
        print("verified =", verified)
        return 0 if verified == 0x01 else 1

    elif args.command == "prove":
        event = DepositEvent.from_hex(args.tx_hash, args.recipient, args.amount)
        claim = encode_args(event, args.secret, args.event_id, args.nullifier)
        if args.gates is None:
            print("Building the event verifier...")
            verifier = EventVerifier()
            print("Checking the claim...")
            verifier.ensure(claim)
            wire_count, skeys, gates, funcs = verifier.wire_count, list(verifier.stmts.keys()), verifier.gates, verifier.funcs
        else:
            wire_count, skeys, gates, funcs = load_circuit(args, need_funcs=True)

        print("Generating witness...")
        witness = Witness(funcs, claim)

        if args.gates is not None:
            # the loaded predicate reveals verified last, a claim is only proven when it is 1
            print("Checking the claim...")
            witness.check(gates)
            if witness.vec[skeys[-1]] != 0x01:
                raise PredicateError(["verified"])

        with open(args.pk, "rb") as pk_file:
            print("Loading parameters for proving from:", args.pk)
            pk = PKey.loads(pk_file, wire_count, len(gates), len(skeys))

        print("Generating proof...")
        proof = prove(wire_count, skeys, gates, pk, witness)

        with open(args.proof, "wb") as proof_file:
            print("Saving proof to:", args.proof)
            proof.dumps(proof_file)

    elif args.command == "verify":
        names = load_names(args)

        with open(args.vk, "rb") as vk_file:
            print("Loading parameters for verifying from:", args.vk)
            vk = VKey.loads(vk_file, len(names))

        with open(args.proof, "rb") as proof_file:
            print("Loading proof from:", args.proof)
            proof = Proof.loads(proof_file, len(names))

        if args.ledger is not None:
            if None in (args.tx_hash, args.recipient, args.amount):
                raise ConfigError("--tx-hash, --recipient and --amount must be provided together with --ledger.")
            event = DepositEvent.from_hex(args.tx_hash, args.recipient, args.amount)
            ledger = NullifierLedger.load(args.ledger)
            print("Accepting proof...")
            record = accept(names, vk, proof, event, ledger)
            print("Proof accepted!")
            print("Event id: {:#018x}".format(record.event_id))
            print("Nullifier: {:#018x}".format(record.nullifier))
            return 0

        print("Verifying proof...")
        result = verify(names, vk, proof)

        if result.passed and result.values.get("verified") == 0x01:
            print("Verification passed!")
        elif result.passed:
            print("Verification passed, but the proof reveals verified = {}!".format(result.values.get("verified")))
            return 1
        else:
            print("Verification failed!")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
