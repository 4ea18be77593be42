"""
PAILLIER HOMOMORPHIC ENGINE

Stateless ciphertext algebra over Z*_{n^2}. Every export takes the public
key as {'n': int, 'g': int} and works modulo n^2:
  - add(c1, c2)       -> E(m1 + m2)
  - add_const(c, k)   -> E(m + k)
  - sub(c1, c2)       -> E(m1 - m2)
  - sub_const(c, k)   -> E(m - k)
  - mul_const(c, k)   -> E(m * k)

Decryption takes an off-chain precomputed sigma = L(c^lambda mod n^2) and
checks c^lambda mod n^2 == sigma * n + 1. The check still runs the
c^lambda exponentiation; the saving is the L division only.
"""

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def mod_exp(base: int, exponent: int, modulus: int):
    if exponent == 0:
        return 1 % modulus
    result = 1
    base = base % modulus
    while exponent > 0:
        if exponent % 2 == 1:
            result = (result * base) % modulus
        exponent = exponent >> 1
        base = (base * base) % modulus
    return result

def gcd(a: int, b: int):
    while b != 0:
        a, b = b, a % b
    return a

def unpack_key(pk: dict):
    n = int(pk['n'])
    g = int(pk['g'])
    assert n > 1, 'InvalidPublicKey: n must be > 1'
    n2 = n * n
    assert 0 < g < n2, 'InvalidPublicKey: g out of range'
    return n, g, n2

def check_randomizer(r: int, n: int):
    assert 0 < r < n and gcd(r, n) == 1, 'InvalidRandomizer: r must be coprime to n'

def check_ciphertext(c: int, n: int, n2: int):
    assert 0 < c < n2 and gcd(c, n) == 1, 'InvalidCiphertext: value outside Z*_{n^2}'

def sigma_is_valid(c: int, sigma: int, lam: int, n: int, n2: int):
    # cheap side of the claim: one multiplication instead of the L division
    return mod_exp(c, lam, n2) == (sigma * n + 1) % n2

# -----------------------------------------------------------------------------
# Encryption
# -----------------------------------------------------------------------------

@export
def encrypt(m: int, r: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    assert 0 <= m < n, 'InvalidPlaintext: m must be in [0, n)'
    check_randomizer(r, n)
    return (mod_exp(g, m, n2) * mod_exp(r, n, n2)) % n2

@export
def encrypt_zero(r: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    check_randomizer(r, n)
    return mod_exp(r, n, n2)

# -----------------------------------------------------------------------------
# Homomorphic operations
# -----------------------------------------------------------------------------

@export
def add(c1: int, c2: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    check_ciphertext(c1, n, n2)
    check_ciphertext(c2, n, n2)
    return (c1 * c2) % n2

@export
def add_const(c: int, k: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    check_ciphertext(c, n, n2)
    return (c * mod_exp(g, k % n, n2)) % n2

@export
def sub(c1: int, c2: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    check_ciphertext(c1, n, n2)
    check_ciphertext(c2, n, n2)
    # c2^(n-1) decrypts to -m2 mod n
    return (c1 * mod_exp(c2, n - 1, n2)) % n2

@export
def sub_const(c: int, k: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    check_ciphertext(c, n, n2)
    return (c * mod_exp(g, (n - k % n) % n, n2)) % n2

@export
def mul_const(c: int, k: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    check_ciphertext(c, n, n2)
    return mod_exp(c, k % n, n2)

# -----------------------------------------------------------------------------
# Decryption (claim + cheap verification)
# -----------------------------------------------------------------------------

@export
def decrypt(c: int, pk: dict, sk: dict, sigma: int):
    n, g, n2 = unpack_key(pk)
    check_ciphertext(c, n, n2)
    lam = int(sk['lambda'])
    mu = int(sk['mu'])
    assert 0 <= sigma < n, 'InvalidSigma: sigma out of range'
    assert sigma_is_valid(c, sigma, lam, n, n2), 'InvalidSigma: claim does not match ciphertext'
    return (sigma * mu) % n

# -----------------------------------------------------------------------------
# Wire encoding
# -----------------------------------------------------------------------------

@export
def to_hex(c: int, pk: dict):
    n, g, n2 = unpack_key(pk)
    width = len(hex(n2)) - 2
    digits = hex(c)[2:]
    return '0x' + '0' * (width - len(digits)) + digits
