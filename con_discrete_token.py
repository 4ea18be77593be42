"""
DISCRETE (CONFIDENTIAL-BALANCE) TOKEN

Balances are stored only as Paillier ciphertexts E(balance).
Mutations are homomorphic:
  - mint:     C_to   <- C_to * C_amount
  - transfer: C_from <- C_from * C_amount^(n-1),  C_to <- C_to * C_amount
  - burn:     C_from <- C_from * C_amount^(n-1)

The contract never holds the decryption key. Reading a plaintext balance is
a two-phase handshake: the holder calls request_balance, an off-chain
disclosure authority answers through response_balance. Responses are
recorded as given and are not checked.

Transfers are NOT checked for sufficient funds: the ciphertext delta is
trusted to encode a value the sender may move.
"""

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# address -> {'ciphertext': int, 'updates': int}
balances = Hash()

# address -> {'encryption_key': str, 'request_id': int, 'pending': bool}
balance_requests = Hash()

# address -> {'encrypted_balance': str, 'request_id': int}
balance_responses = Hash()

# contract metadata / config
metadata = Hash()

# counter for events
next_tx_id = Variable()

IMMUTABLE_KEYS = ['n', 'g', 'engine', 'zero_ciphertext', 'supply_ciphertext']

# Events
MintEvent = LogEvent('Mint', {
    'to': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

TransferEvent = LogEvent('Transfer', {
    'from': {'type': str, 'idx': True},
    'to': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

BurnEvent = LogEvent('Burn', {
    'from': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

BalanceChangedEvent = LogEvent('BalanceChanged', {
    'account': {'type': str, 'idx': True},
    'balance': {'type': str},
    'updates': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

RequestBalanceEvent = LogEvent('RequestBalance', {
    'account': {'type': str, 'idx': True},
    'encryption_key': {'type': str},
    'request_id': {'type': int, 'idx': True}
})

ResponseBalanceEvent = LogEvent('ResponseBalance', {
    'account': {'type': str, 'idx': True},
    'encrypted_balance': {'type': str},
    'request_id': {'type': int, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(name: str, symbol: str, n: int, g: int, engine_contract: str, zero_ciphertext: int):
    metadata['name'] = name
    metadata['symbol'] = symbol
    metadata['operator'] = ctx.caller
    metadata['minter'] = None
    metadata['disclosure_authority'] = None

    metadata['n'] = n
    metadata['g'] = g
    metadata['engine'] = engine_contract

    # Lazily-defined balance of every untouched account
    metadata['zero_ciphertext'] = zero_ciphertext

    # Decrypts to total confidential supply
    metadata['supply_ciphertext'] = zero_ciphertext

    next_tx_id.set(1)

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def public_key():
    return {'n': metadata['n'], 'g': metadata['g']}

def engine():
    return importlib.import_module(metadata['engine'])

def next_tx():
    tid = next_tx_id.get()
    next_tx_id.set(tid + 1)
    return tid

def current_ciphertext(address: str):
    data = balances[address]
    if data is None:
        return metadata['zero_ciphertext']
    return data['ciphertext']

def write_balance(address: str, ciphertext: int, tx_id: int):
    data = balances[address]
    updates = (0 if data is None else data['updates']) + 1
    balances[address] = {
        'ciphertext': ciphertext,
        'updates': updates
    }
    BalanceChangedEvent({
        'account': address,
        'balance': engine().to_hex(c=ciphertext, pk=public_key()),
        'updates': updates,
        'tx_id': tx_id
    })

def assert_minter():
    assert ctx.caller == metadata['minter'], 'Only minter can call this'

def move(sender: str, to: str, amount: int):
    assert to != sender, 'Cannot transfer to self'

    pk = public_key()
    new_sender = engine().sub(c1=current_ciphertext(sender), c2=amount, pk=pk)
    new_receiver = engine().add(c1=current_ciphertext(to), c2=amount, pk=pk)

    tx_id = next_tx()
    write_balance(sender, new_sender, tx_id)
    write_balance(to, new_receiver, tx_id)

    TransferEvent({
        'from': sender,
        'to': to,
        'amount': engine().to_hex(c=amount, pk=pk),
        'tx_id': tx_id
    })

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'name': metadata['name'],
        'symbol': metadata['symbol'],
        'operator': metadata['operator'],
        'minter': metadata['minter'],
        'disclosure_authority': metadata['disclosure_authority'],
        'n': metadata['n'],
        'g': metadata['g'],
        'engine': metadata['engine'],
        'supply_ciphertext': metadata['supply_ciphertext']
    }

@export
def change_metadata(key: str, value: Any):
    assert ctx.caller == metadata['operator'], 'Only operator can set metadata'
    assert key not in IMMUTABLE_KEYS, 'Key is immutable'
    metadata[key] = value

@export
def balance_of(address: str):
    return current_ciphertext(address)

@export
def get_balance(address: str):
    data = balances[address]
    if data is None:
        return {
            'exists': False,
            'ciphertext': metadata['zero_ciphertext'],
            'updates': 0
        }
    return {
        'exists': True,
        'ciphertext': data['ciphertext'],
        'updates': data['updates']
    }

@export
def get_balance_request(address: str):
    return balance_requests[address]

@export
def get_balance_response(address: str):
    return balance_responses[address]

# -----------------------------------------------------------------------------
# Core: homomorphic balance updates
# -----------------------------------------------------------------------------

@export
def mint(to: str, amount: int):
    assert ctx.caller == metadata['minter'] or ctx.caller == metadata['operator'], 'Only minter can mint'

    pk = public_key()
    new_receiver = engine().add(c1=current_ciphertext(to), c2=amount, pk=pk)
    metadata['supply_ciphertext'] = engine().add(c1=metadata['supply_ciphertext'], c2=amount, pk=pk)

    tx_id = next_tx()
    write_balance(to, new_receiver, tx_id)

    MintEvent({
        'to': to,
        'amount': engine().to_hex(c=amount, pk=pk),
        'tx_id': tx_id
    })

@export
def transfer(to: str, amount: int):
    move(ctx.caller, to, amount)

@export
def transfer_from(from_address: str, to: str, amount: int):
    assert_minter()
    move(from_address, to, amount)

@export
def burn(from_address: str, amount: int):
    assert_minter()

    pk = public_key()
    new_from = engine().sub(c1=current_ciphertext(from_address), c2=amount, pk=pk)
    metadata['supply_ciphertext'] = engine().sub(c1=metadata['supply_ciphertext'], c2=amount, pk=pk)

    tx_id = next_tx()
    write_balance(from_address, new_from, tx_id)

    BurnEvent({
        'from': from_address,
        'amount': engine().to_hex(c=amount, pk=pk),
        'tx_id': tx_id
    })

# -----------------------------------------------------------------------------
# Balance disclosure handshake
# -----------------------------------------------------------------------------

@export
def request_balance(encryption_key: str):
    assert len(encryption_key) > 0, 'Missing encryption key'

    request_id = next_tx()
    balance_requests[ctx.caller] = {
        'encryption_key': encryption_key,
        'request_id': request_id,
        'pending': True
    }

    RequestBalanceEvent({
        'account': ctx.caller,
        'encryption_key': encryption_key,
        'request_id': request_id
    })

@export
def response_balance(account: str, encrypted_balance: str):
    authority = metadata['disclosure_authority']
    if authority is not None:
        assert ctx.caller == authority, 'Only disclosure authority can respond'

    request = balance_requests[account]
    request_id = 0
    if request is not None:
        request_id = request['request_id']
        balance_requests[account] = {
            'encryption_key': request['encryption_key'],
            'request_id': request_id,
            'pending': False
        }

    balance_responses[account] = {
        'encrypted_balance': encrypted_balance,
        'request_id': request_id
    }

    ResponseBalanceEvent({
        'account': account,
        'encrypted_balance': encrypted_balance,
        'request_id': request_id
    })
