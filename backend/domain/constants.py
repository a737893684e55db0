"""
Domain constants used across services/routers.
"""

# 1 ALGO = 1_000_000 microAlgos, fixed by the protocol
MICROALGOS_PER_ALGO = 1_000_000

ALGORAND_ADDRESS_LENGTH = 58
ALGORAND_PUBLIC_KEY_BYTES = 32

# algod "type" value for payment transactions
PAYMENT_TXN_TYPE = "pay"

# Transaction IDs: base32 (no padding) of a 32-byte hash
ALGORAND_TXID_LENGTH = 52
