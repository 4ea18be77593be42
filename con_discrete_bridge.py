"""
DISCRETE TOKEN BRIDGE

Wraps a public fungible token into the confidential ledger.
  - deposit:            pull public tokens, reserve += amount, mint E(amount)
  - transfer_encrypted: forward a ciphertext delta holder -> peer
  - withdraw:           verify proof over (account, amount, balance),
                        burn E(amount), reserve -= amount, release tokens

Invariant: reserve == deposited - withdrawn >= 0, and the ledger's encrypted
supply decrypts to reserve.
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

# BN254 scalar field; verifier public inputs live here
SNARK_SCALAR_FIELD = 21888242871839275222246405745257275088548364400416034343698204186575808495617

def domain_hash(parts: list):
    s = "|".join(str(x) for x in parts)
    return hashlib.sha3("XDBRG:v1|" + s)

def field_element(parts: list):
    return int(domain_hash(parts), 16) % SNARK_SCALAR_FIELD

def derive_randomizer(purpose: str, account: str, tx_id: int):
    n = metadata['n']
    return int(domain_hash(["rand", purpose, account, tx_id]), 16) % n

def public_key():
    return {'n': metadata['n'], 'g': metadata['g']}

def engine():
    return importlib.import_module(metadata['engine'])

def ledger():
    return importlib.import_module(metadata['ledger'])

def token():
    return importlib.import_module(metadata['token'])

def verifier():
    return importlib.import_module(metadata['verifier'])

def next_tx():
    tid = next_tx_id.get()
    next_tx_id.set(tid + 1)
    return tid

def encode(amount: int, purpose: str, account: str, tx_id: int):
    # E(amount) with a fresh, reproducible randomizer
    pk = public_key()
    r = derive_randomizer(purpose, account, tx_id)
    blank = engine().encrypt_zero(r=r, pk=pk)
    return engine().add_const(c=blank, k=amount, pk=pk)

def check_amount(amount: int):
    # amount is a verifier public input, so it must also fit the scalar field
    bound = min(metadata['n'], SNARK_SCALAR_FIELD)
    assert 0 < amount < bound, 'InvalidAmount: must be in (0, min(n, field))'

# -----------------------------------------------------------------------------
# Verifier adapter
# -----------------------------------------------------------------------------

def withdrawal_public_inputs(account: str, amount: int, balance_ciphertext: int):
    return [
        field_element(["account", account]),
        amount,
        field_element(["balance", hex(balance_ciphertext)])
    ]

def check_proof_shape(proof_a: list, proof_b: list, proof_c: list):
    assert len(proof_a) == 2, 'MalformedProof: proof_a needs 2 coordinates'
    assert len(proof_b) == 2, 'MalformedProof: proof_b needs 2 rows'
    for row in proof_b:
        assert isinstance(row, list) and len(row) == 2, 'MalformedProof: proof_b rows need 2 coordinates'
    assert len(proof_c) == 2, 'MalformedProof: proof_c needs 2 coordinates'

def proof_digest(proof_a: list, proof_b: list, proof_c: list, public_inputs: list):
    points = [proof_a[0], proof_a[1],
              proof_b[0][0], proof_b[0][1], proof_b[1][0], proof_b[1][1],
              proof_c[0], proof_c[1]]
    return domain_hash(["proof"] + points + public_inputs)

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# contract metadata / config
metadata = Hash()

# custody reserve of the public token
reserve = Variable()

# proof digest -> True once consumed
spent_proofs = Hash(default_value=False)

# counter for events
next_tx_id = Variable()

# Events
DepositEvent = LogEvent('Deposit', {
    'account': {'type': str, 'idx': True},
    'amount': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

TransferEncryptedEvent = LogEvent('TransferEncrypted', {
    'from': {'type': str, 'idx': True},
    'to': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

WithdrawEvent = LogEvent('Withdraw', {
    'account': {'type': str, 'idx': True},
    'amount': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(token_contract: str, ledger_contract: str, engine_contract: str, verifier_contract: str, n: int, g: int):
    metadata['operator'] = ctx.caller
    metadata['token'] = token_contract
    metadata['ledger'] = ledger_contract
    metadata['engine'] = engine_contract
    metadata['verifier'] = verifier_contract
    metadata['n'] = n
    metadata['g'] = g

    reserve.set(0)
    next_tx_id.set(1)

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'operator': metadata['operator'],
        'token': metadata['token'],
        'ledger': metadata['ledger'],
        'engine': metadata['engine'],
        'verifier': metadata['verifier'],
        'n': metadata['n'],
        'g': metadata['g'],
        'reserve': reserve.get()
    }

@export
def get_reserve():
    return reserve.get()

@export
def is_proof_spent(digest: str):
    return spent_proofs[digest]

# -----------------------------------------------------------------------------
# Core: deposit / transfer / withdraw
# -----------------------------------------------------------------------------

@export
def deposit(amount: int):
    check_amount(amount)
    account = ctx.caller

    # external pull first; a failure here leaves nothing mutated
    token().transfer_from(amount=amount, to=ctx.this, main_account=account)

    tx_id = next_tx()
    reserve.set(reserve.get() + amount)
    ledger().mint(to=account, amount=encode(amount, "deposit", account, tx_id))

    DepositEvent({
        'account': account,
        'amount': amount,
        'tx_id': tx_id
    })

@export
def transfer_encrypted(to: str, amount: int):
    ledger().transfer_from(from_address=ctx.caller, to=to, amount=amount)

    TransferEncryptedEvent({
        'from': ctx.caller,
        'to': to,
        'amount': engine().to_hex(c=amount, pk=public_key()),
        'tx_id': next_tx()
    })

@export
def withdraw(amount: int, proof_a: list, proof_b: list, proof_c: list):
    check_amount(amount)
    account = ctx.caller
    assert reserve.get() >= amount, 'InsufficientReserve: custody cannot cover amount'

    check_proof_shape(proof_a, proof_b, proof_c)
    public_inputs = withdrawal_public_inputs(account, amount, ledger().balance_of(address=account))

    digest = proof_digest(proof_a, proof_b, proof_c, public_inputs)
    # replays already fail on the balance input; this only fires if a balance ciphertext repeats
    assert not spent_proofs[digest], 'ProofAlreadyUsed: proof was consumed'

    accepted = verifier().verify_proof(
        proof_a=proof_a,
        proof_b=proof_b,
        proof_c=proof_c,
        public_inputs=public_inputs
    )
    assert accepted, 'ProofRejected: verifier rejected withdrawal proof'

    tx_id = next_tx()
    spent_proofs[digest] = True
    ledger().burn(from_address=account, amount=encode(amount, "withdraw", account, tx_id))
    reserve.set(reserve.get() - amount)
    token().transfer(amount=amount, to=account)

    WithdrawEvent({
        'account': account,
        'amount': amount,
        'tx_id': tx_id
    })
