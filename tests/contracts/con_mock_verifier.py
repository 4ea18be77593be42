"""
PROOF VERIFIER (test double)

Stands in for a Groth16 verifier. A proof verifies iff the operator has
attested the exact (proof points, public inputs) statement.
"""

accepted = Hash(default_value=False)
metadata = Hash()

def statement_digest(proof_a: list, proof_b: list, proof_c: list, public_inputs: list):
    parts = [proof_a[0], proof_a[1],
             proof_b[0][0], proof_b[0][1], proof_b[1][0], proof_b[1][1],
             proof_c[0], proof_c[1]] + public_inputs
    return hashlib.sha3("XDBRG:v1|" + "|".join(str(x) for x in ["proof"] + parts))

@construct
def seed():
    metadata['operator'] = ctx.caller

@export
def attest(proof_a: list, proof_b: list, proof_c: list, public_inputs: list):
    assert ctx.caller == metadata['operator'], 'Only operator can attest'
    accepted[statement_digest(proof_a, proof_b, proof_c, public_inputs)] = True

@export
def verify_proof(proof_a: list, proof_b: list, proof_c: list, public_inputs: list):
    return accepted[statement_digest(proof_a, proof_b, proof_c, public_inputs)]
