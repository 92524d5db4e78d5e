"""Wallet - secp256k1 key generation, storage, and loading."""
