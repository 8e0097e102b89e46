import pytest

from bridgeproof.event import EventVerifier
from bridgeproof.inputs import DepositEvent


@pytest.fixture(scope="session")
def verifier():
    # building the predicate generates the Poseidon parameters, share one instance
    return EventVerifier()


@pytest.fixture
def deposit():
    # tx_hash encoding 1, recipient encoding 2
    return DepositEvent(tx_hash=1, recipient=2, amount=100)
