"""
Constants for elliptic curve cryptography.
"""

# Order of the NIST P-256 curve (N value)
P256_N = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

# Order of the SECP256K1 elliptic curve (N value)
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Both curves use 32-byte scalars and coordinates
SCALAR_SIZE = 32
