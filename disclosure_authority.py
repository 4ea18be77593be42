"""
Off-chain disclosure authority for con_discrete_token.

Holds the Paillier private key. Answers balance requests recorded on the
ledger by decrypting the requester's balance and sealing it under the
requester's X25519 viewing key, then posting it through response_balance.

Sealed blob layout (base64): ephemeral_pub(32) || nonce(12) || aesgcm_ct
The account address is bound as associated data.
"""
import base64
import logging
import os

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

import client_helper

logger = logging.getLogger(__name__)

HKDF_INFO = b"XDBRG:v1|balance-disclosure"
KEY_LEN = 32
NONCE_LEN = 12

# ---- Viewing keys ------------------------------------------------------------

def generate_viewing_key():
    """Returns (private_key, public_key_hex) for a balance requester."""
    private = X25519PrivateKey.generate()
    public = private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return private, public.hex()

def derive_key(shared: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LEN,
        salt=None,
        info=HKDF_INFO,
    ).derive(shared)

def seal_balance(public_hex: str, account: str, balance: int) -> str:
    try:
        recipient = X25519PublicKey.from_public_bytes(bytes.fromhex(public_hex))
    except ValueError as e:
        raise ValueError(f"invalid viewing key for {account}") from e

    ephemeral = X25519PrivateKey.generate()
    key = derive_key(ephemeral.exchange(recipient))
    nonce = os.urandom(NONCE_LEN)
    ct = AESGCM(key).encrypt(nonce, str(balance).encode("ascii"), account.encode("utf-8"))

    eph_pub = ephemeral.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return base64.b64encode(eph_pub + nonce + ct).decode("ascii")

def open_balance(private_key: X25519PrivateKey, account: str, blob: str) -> int:
    raw = base64.b64decode(blob.encode("ascii"))
    if len(raw) <= KEY_LEN + NONCE_LEN:
        raise ValueError("sealed balance too short")

    eph_pub = X25519PublicKey.from_public_bytes(raw[:KEY_LEN])
    nonce = raw[KEY_LEN:KEY_LEN + NONCE_LEN]
    ct = raw[KEY_LEN + NONCE_LEN:]

    key = derive_key(private_key.exchange(eph_pub))
    return int(AESGCM(key).decrypt(nonce, ct, account.encode("utf-8")).decode("ascii"))

# ---- Authority service -------------------------------------------------------

class DisclosureAuthority:
    """
    Answers RequestBalance for a deployed ledger.

    `ledger` is a contract handle exposing get_balance, get_balance_request
    and response_balance (e.g. ContractingClient.get_contract(...)).
    `signer` is the address the authority responds as.
    """

    def __init__(self, ledger, pk: dict, sk: dict, signer: str):
        self.ledger = ledger
        self.pk = pk
        self.sk = sk
        self.signer = signer

    def plaintext_balance(self, account: str) -> int:
        ciphertext = self.ledger.get_balance(address=account)['ciphertext']
        return client_helper.to_signed(client_helper.decrypt(ciphertext, self.pk, self.sk), self.pk)

    def respond(self, account: str) -> str:
        request = self.ledger.get_balance_request(address=account)
        if request is None or not request['pending']:
            raise LookupError(f"no pending balance request for {account}")

        blob = seal_balance(request['encryption_key'], account, self.plaintext_balance(account))
        self.ledger.response_balance(account=account, encrypted_balance=blob, signer=self.signer)
        logger.info("answered balance request %s for %s", request['request_id'], account)
        return blob

    def respond_all(self, accounts) -> list:
        answered = []
        for account in accounts:
            request = self.ledger.get_balance_request(address=account)
            if request is None or not request['pending']:
                continue
            self.respond(account)
            answered.append(account)
        return answered

    def audit_reserve(self, bridge) -> dict:
        """Decrypts the ledger's encrypted supply and compares it to the bridge reserve."""
        supply_ct = self.ledger.get_metadata()['supply_ciphertext']
        supply = client_helper.to_signed(client_helper.decrypt(supply_ct, self.pk, self.sk), self.pk)
        reserve = bridge.get_reserve()
        ok = supply == reserve
        if ok:
            logger.info("reserve audit passed")
        else:
            logger.warning("reserve audit failed: encrypted supply does not match custody reserve")
        return {'ok': ok, 'supply': supply, 'reserve': reserve}
