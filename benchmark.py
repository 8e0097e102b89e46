#!/usr/bin/env python3


import time

from bridgeproof import groth16
from bridgeproof.event import EventVerifier
from bridgeproof.inputs import DepositEvent, encode_args
from bridgeproof.ledger import NullifierLedger, accept


class Timer:
    # This is used to measure the time of a block of code.
    def __init__(self, text):
        self.text = text

    def __enter__(self):
        print(self.text, end=" ", flush=True)
        self.beg = time.time()

    def __exit__(self, *info):
        self.end = time.time()
        print("{:.3f} sec".format(self.end - self.beg))


def main():
    with Timer("Building the event verifier..."):
        verifier = EventVerifier()
    print("Dimension of the witness vector:", verifier.wire_count)
    print("Number of constraints:", len(verifier.gates))
    print("Number of public entries:", len(verifier.stmts))
    skeys = list(verifier.stmts.keys())
    with Timer("Setting up QAP..."):
        key = groth16.setup(verifier.wire_count, skeys, verifier.gates)
    event = DepositEvent(tx_hash=0x9F2C4E7A11D03B58, recipient=0x5A3B1C0D, amount=250_000_000)
    with Timer("Generating witness..."):
        witness = verifier.ensure(encode_args(event, 0x1D2E3F))
    with Timer("Generating proof..."):
        proof = groth16.prove(verifier.wire_count, skeys, verifier.gates, key.pk, witness)
    with Timer("Verifying..."):
        record = accept(verifier.names, key.vk, proof, event, NullifierLedger())
    print("Verification passed!")
    print("Event id: {:#018x}".format(record.event_id))
    print("Nullifier: {:#018x}".format(record.nullifier))


if __name__ == "__main__":
    main()
