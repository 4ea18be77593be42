import hashlib
import math
from pathlib import Path

import contracting
import pytest
from contracting.client import ContractingClient
from contracting.compilation import whitelists

import client_helper

PROJECT_ROOT = Path(__file__).resolve().parents[1]
MOCKS_ROOT = Path(__file__).resolve().parent / "contracts"
SUBMISSION_PATH = (
    Path(contracting.__file__).resolve().parent / "contracts" / "submission.s.py"
)

ENGINE = "con_paillier"
LEDGER = "con_discrete_token"
BRIDGE = "con_discrete_bridge"
TOKEN = "con_mock_token"
VERIFIER = "con_mock_verifier"

# Mersenne primes M127 and M89
P = 2**127 - 1
Q = 2**89 - 1

STARTING_PUBLIC_BALANCE = 100


@pytest.fixture(scope="session", autouse=True)
def enable_sha3_and_whitelist():
    whitelists.ALLOWED_BUILTINS.update({"hashlib", "decimal"})

    if not hasattr(hashlib, "sha3"):
        def _sha3(data):
            if isinstance(data, str):
                data = data.encode("utf-8")
            return hashlib.sha3_256(data).hexdigest()

        setattr(hashlib, "sha3", _sha3)


@pytest.fixture(scope="session")
def keys():
    n = P * Q
    lam = (P - 1) * (Q - 1) // math.gcd(P - 1, Q - 1)
    # g = n + 1 gives L(g^lambda mod n^2) = lambda mod n
    mu = pow(lam, -1, n)
    return client_helper.public_key(n), client_helper.private_key(lam, mu)


@pytest.fixture(scope="session")
def prime_factor():
    return P


@pytest.fixture(scope="session")
def pk(keys):
    return keys[0]


@pytest.fixture(scope="session")
def sk(keys):
    return keys[1]


def submit(client, path, name, **constructor_args):
    client.submit(path.read_text(), name=name, owner=None, constructor_args=constructor_args)
    return client.get_contract(name)


@pytest.fixture
def client():
    client = ContractingClient(signer="operator", metering=False)
    client.flush()
    client.set_submission_contract(str(SUBMISSION_PATH))
    return client


@pytest.fixture
def engine(client):
    return submit(client, PROJECT_ROOT / "con_paillier.py", ENGINE)


@pytest.fixture
def ledger(client, engine, pk):
    return submit(
        client,
        PROJECT_ROOT / "con_discrete_token.py",
        LEDGER,
        name="Discrete Token",
        symbol="DCT",
        n=pk["n"],
        g=pk["g"],
        engine_contract=ENGINE,
        zero_ciphertext=client_helper.encrypt_zero(pk),
    )


@pytest.fixture
def token(client):
    token = submit(client, MOCKS_ROOT / "con_mock_token.py", TOKEN)
    token.mint(to="alice", amount=STARTING_PUBLIC_BALANCE)
    return token


@pytest.fixture
def verifier(client):
    return submit(client, MOCKS_ROOT / "con_mock_verifier.py", VERIFIER)


@pytest.fixture
def bridge(client, ledger, token, verifier, pk):
    bridge = submit(
        client,
        PROJECT_ROOT / "con_discrete_bridge.py",
        BRIDGE,
        token_contract=TOKEN,
        ledger_contract=LEDGER,
        engine_contract=ENGINE,
        verifier_contract=VERIFIER,
        n=pk["n"],
        g=pk["g"],
    )
    ledger.change_metadata(key="minter", value=BRIDGE)
    token.approve(amount=STARTING_PUBLIC_BALANCE, to=BRIDGE, signer="alice")
    return bridge


@pytest.fixture
def reveal(ledger, pk, sk):
    def _reveal(address):
        ciphertext = ledger.balance_of(address=address)
        return client_helper.to_signed(client_helper.decrypt(ciphertext, pk, sk), pk)

    return _reveal
