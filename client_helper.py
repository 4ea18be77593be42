import hashlib
import json
import math
import secrets

# ---- Chain-constant parameters & helpers (mirror contracts) ----

SNARK_SCALAR_FIELD = 21888242871839275222246405745257275088548364400416034343698204186575808495617

DOMAIN = "XDBRG:v1|"

def sha3_hex(s: str) -> str:
    # Matches contract hashlib.sha3 for non-hex input
    return hashlib.sha3_256(s.encode("utf-8")).hexdigest()

def domain_hash(parts) -> str:
    return sha3_hex(DOMAIN + "|".join(str(x) for x in parts))

def field_element(parts) -> int:
    return int(domain_hash(parts), 16) % SNARK_SCALAR_FIELD

# ---- Keys ----------------------------------------------------------------------

def public_key(n: int, g: int = None) -> dict:
    if n <= 1:
        raise ValueError("n must be > 1")
    if g is None:
        g = n + 1
    if not 0 < g < n * n:
        raise ValueError("g must be in (0, n^2)")
    return {'n': n, 'g': g}

def private_key(lam: int, mu: int) -> dict:
    return {'lambda': lam, 'mu': mu}

def load_keys(path):
    """
    Reads a key file shaped like
        {"publicKey": {"n": "...", "g": "..."},
         "privateKey": {"lambda": "...", "mu": "..."}}
    with decimal strings. Returns (pk, sk); sk is None if absent.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    pub = raw.get("publicKey")
    if pub is None:
        raise ValueError("Key file has no publicKey")
    pk = public_key(int(pub["n"]), int(pub["g"]))

    priv = raw.get("privateKey")
    sk = None
    if priv is not None:
        sk = private_key(int(priv["lambda"]), int(priv["mu"]))
    return pk, sk

def n_square(pk: dict) -> int:
    return pk['n'] * pk['n']

# ---- Engine mirror ---------------------------------------------------------------

def random_randomizer(pk: dict) -> int:
    n = pk['n']
    while True:
        r = secrets.randbelow(n)
        if r > 0 and math.gcd(r, n) == 1:
            return r

def check_randomizer(r: int, pk: dict):
    if not (0 < r < pk['n'] and math.gcd(r, pk['n']) == 1):
        raise ValueError("Randomizer must be coprime to n")

def encrypt(m: int, pk: dict, r: int = None) -> int:
    n, n2 = pk['n'], n_square(pk)
    if not 0 <= m < n:
        raise ValueError("Plaintext must be in [0, n)")
    if r is None:
        r = random_randomizer(pk)
    check_randomizer(r, pk)
    return (pow(pk['g'], m, n2) * pow(r, n, n2)) % n2

def encrypt_zero(pk: dict, r: int = None) -> int:
    if r is None:
        r = random_randomizer(pk)
    check_randomizer(r, pk)
    return pow(r, pk['n'], n_square(pk))

def add(c1: int, c2: int, pk: dict) -> int:
    return (c1 * c2) % n_square(pk)

def add_const(c: int, k: int, pk: dict) -> int:
    n2 = n_square(pk)
    return (c * pow(pk['g'], k % pk['n'], n2)) % n2

def sub(c1: int, c2: int, pk: dict) -> int:
    n2 = n_square(pk)
    return (c1 * pow(c2, pk['n'] - 1, n2)) % n2

def sub_const(c: int, k: int, pk: dict) -> int:
    n = pk['n']
    return add_const(c, (n - k % n) % n, pk)

def mul_const(c: int, k: int, pk: dict) -> int:
    return pow(c, k % pk['n'], n_square(pk))

def l_function(u: int, n: int) -> int:
    return (u - 1) // n

def decrypt(c: int, pk: dict, sk: dict) -> int:
    n = pk['n']
    u = pow(c, sk['lambda'], n_square(pk))
    return (l_function(u, n) * sk['mu']) % n

def to_signed(m: int, pk: dict) -> int:
    n = pk['n']
    return m - n if m > n // 2 else m

# ---- Decryption claims (sigma) -----------------------------------------------------

def precompute_sigma(c: int, pk: dict, sk: dict) -> int:
    """
    Expensive half of decryption, done off-chain:
        sigma = L(c^lambda mod n^2)
    Pass it to con_paillier.decrypt, which only checks it.
    """
    return l_function(pow(c, sk['lambda'], n_square(pk)), pk['n'])

def verify_sigma(c: int, sigma: int, pk: dict, sk: dict) -> bool:
    n2 = n_square(pk)
    return pow(c, sk['lambda'], n2) == (sigma * pk['n'] + 1) % n2

# ---- Wire encoding ---------------------------------------------------------------

def to_hex(c: int, pk: dict) -> str:
    width = len(hex(n_square(pk))) - 2
    return "0x" + format(c, "x").rjust(width, "0")

def from_hex(s: str) -> int:
    return int(s, 16)

# ---- Bridge mirrors ----------------------------------------------------------------

def withdrawal_public_inputs(account: str, amount: int, balance_ciphertext: int) -> list:
    if not 0 < amount < SNARK_SCALAR_FIELD:
        raise ValueError("amount must lie in the verifier scalar field")
    return [
        field_element(["account", account]),
        amount,
        field_element(["balance", hex(balance_ciphertext)]),
    ]

def proof_digest(proof_a, proof_b, proof_c, public_inputs) -> str:
    points = [proof_a[0], proof_a[1],
              proof_b[0][0], proof_b[0][1], proof_b[1][0], proof_b[1][1],
              proof_c[0], proof_c[1]]
    return domain_hash(["proof"] + points + list(public_inputs))

# ---- High-level builders -----------------------------------------------------

def build_encrypted_transfer(amount: int, pk: dict, randomizer: int = None):
    """
    Returns args for con_discrete_bridge.transfer_encrypted() and
    con_discrete_token.transfer():
        (to, amount)
    You still supply `to` address when calling the chain method.
    """
    return {
        'amount': encrypt(amount, pk, randomizer)
    }

def build_withdraw(account: str, amount: int, balance_ciphertext: int, proof: dict):
    """
    Returns args for con_discrete_bridge.withdraw():
        (amount, proof_a, proof_b, proof_c)
    plus the public inputs and digest the bridge will derive, so the prover
    can bind the proof to them. `balance_ciphertext` must be the current
    on-chain balance of `account`.
    """
    public_inputs = withdrawal_public_inputs(account, amount, balance_ciphertext)
    return {
        'amount': amount,
        'proof_a': list(proof['a']),
        'proof_b': [list(row) for row in proof['b']],
        'proof_c': list(proof['c']),
        'public_inputs': public_inputs,
        'digest': proof_digest(proof['a'], proof['b'], proof['c'], public_inputs)
    }

# ---- Convenience: wallet-side state tracker (optional) ----------------------

class EncryptedAccount:
    """
    Optional local helper to follow an account's ciphertext between reads.
    Apply the same deltas the ledger applies and the tracked value stays
    equal to the on-chain balance.
    """
    def __init__(self, pk: dict, ciphertext: int = 1):
        self.pk = pk
        self.ciphertext = ciphertext or 1

    def apply_incoming(self, amount_ciphertext: int):
        self.ciphertext = add(self.ciphertext, amount_ciphertext, self.pk)
        return self.ciphertext

    def apply_outgoing(self, amount_ciphertext: int):
        self.ciphertext = sub(self.ciphertext, amount_ciphertext, self.pk)
        return self.ciphertext

    def reveal(self, sk: dict) -> int:
        return to_signed(decrypt(self.ciphertext, self.pk, sk), self.pk)
