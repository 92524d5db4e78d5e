"""
Chain - On-chain interaction layer for the DEVPN contracts.

Provides a rate-limited JSON-RPC client, a transaction submitter, a closed
ABI encoder, and Hardhat artifact loading for Polygon Amoy.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
