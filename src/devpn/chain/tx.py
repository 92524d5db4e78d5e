"""
Transaction Submitter - Build, sign, and send legacy transactions.

Uses eth-account for signing and the rate-limited RpcClient for
everything else. A submission moves Built -> Signed -> Sent and ends as
Confirmed, Reverted, or Unknown (no receipt within the polling budget).
Nothing is ever resubmitted automatically; retrying means a new draft with
a fresh nonce.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_hash.auto import keccak

from .abi import encode_call
from .rpc import RpcClient, RpcClientError, hex_to_int, read_contract

logger = logging.getLogger(__name__)

GWEI = 1_000_000_000
WEI_PER_MATIC = 10**18
DEFAULT_GAS_PRICE = 30 * GWEI
DEFAULT_GAS_LIMIT = 200_000
DEPLOY_GAS_LIMIT = 3_000_000
MIN_BALANCE_WARNING_MULTIPLIER = 1.2

RECEIPT_MAX_ATTEMPTS = 40
RECEIPT_POLL_INTERVAL = 3.0


class TransactionError(RuntimeError):
    """Base class for transaction submission failures."""


class TransactionRejected(TransactionError):
    """The network returned an empty hash for eth_sendRawTransaction."""


class InsufficientBalance(TransactionError):
    """The sender cannot cover the amount it is about to spend."""

    def __init__(self, message: str, available: int, required: int) -> None:
        super().__init__(message)
        self.available = available
        self.required = required


class SigningError(TransactionError):
    """The signing key is missing or invalid."""


class AlreadySubmitted(TransactionError):
    """The same signed transaction was handed to send() twice."""


class TxState(str, Enum):
    BUILT = "built"
    SIGNED = "signed"
    SENT = "sent"
    CONFIRMED = "confirmed"
    REVERTED = "reverted"
    UNKNOWN = "unknown"


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    addr = address.lower().replace("0x", "")
    addr_hash = keccak(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


def _with_0x(value: str) -> str:
    return value if value.startswith("0x") else "0x" + value


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


@dataclass
class TransactionDraft:
    """Unsigned legacy transaction. ``to=None`` is a contract creation."""

    chain_id: int
    nonce: int
    gas_price: int
    gas_limit: int
    data: str
    to: Optional[str] = None
    value: int = 0

    @property
    def state(self) -> TxState:
        return TxState.BUILT

    def to_dict(self) -> dict[str, Any]:
        tx: dict[str, Any] = {
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "gasPrice": self.gas_price,
            "gas": self.gas_limit,
            "data": _with_0x(self.data),
            "value": self.value,
        }
        if self.to is not None:
            tx["to"] = to_checksum_address(self.to)
        return tx


@dataclass(frozen=True)
class SignedTransaction:
    raw_transaction: str
    tx_hash: str
    nonce: int

    @property
    def state(self) -> TxState:
        return TxState.SIGNED


@dataclass(frozen=True)
class Receipt:
    status: int
    gas_used: int
    block_number: int
    contract_address: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_rpc(cls, receipt: dict) -> "Receipt":
        return cls(
            status=hex_to_int(receipt.get("status")),
            gas_used=hex_to_int(receipt.get("gasUsed")),
            block_number=hex_to_int(receipt.get("blockNumber")),
            contract_address=receipt.get("contractAddress"),
            raw=receipt,
        )

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class SubmissionResult:
    tx_hash: str
    state: TxState
    receipt: Optional[Receipt] = None

    @property
    def succeeded(self) -> bool:
        return self.state is TxState.CONFIRMED

    @property
    def gas_used(self) -> Optional[int]:
        if self.state is TxState.CONFIRMED and self.receipt is not None:
            return self.receipt.gas_used
        return None

    @property
    def contract_address(self) -> Optional[str]:
        if self.state is TxState.CONFIRMED and self.receipt is not None:
            return self.receipt.contract_address
        return None


class TransactionSubmitter:
    """
    Turns a destination + call data into a confirmed on-chain effect.

    Args:
        rpc: Rate-limited JSON-RPC client
        private_key: 0x-prefixed hex private key of the sender
        chain_id: Chain ID baked into every signature (EIP-155)
        default_gas_price: Used when eth_gasPrice fails or returns 0
        default_gas_limit: Used when eth_estimateGas fails or returns 0
        receipt_attempts: Receipt polls before giving up
        poll_interval: Seconds between receipt polls
        sleep: Sleep function used between polls
    """

    def __init__(
        self,
        rpc: RpcClient,
        private_key: str,
        chain_id: int,
        default_gas_price: int = DEFAULT_GAS_PRICE,
        default_gas_limit: int = DEFAULT_GAS_LIMIT,
        receipt_attempts: int = RECEIPT_MAX_ATTEMPTS,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.rpc = rpc
        self.chain_id = chain_id
        self.default_gas_price = default_gas_price
        self.default_gas_limit = default_gas_limit
        self.receipt_attempts = receipt_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._account = _load_account(private_key)
        self._submitted: set[str] = set()

    @property
    def address(self) -> str:
        return self._account.address

    # ---- transaction parameters ----

    def get_nonce(self, address: Optional[str] = None) -> int:
        nonce = hex_to_int(self.rpc.get_transaction_count(address or self.address))
        logger.info("Nonce: %d", nonce)
        return nonce

    def get_gas_price(self) -> int:
        try:
            gas_price = hex_to_int(self.rpc.gas_price())
        except (RpcClientError, ValueError) as exc:
            logger.warning("eth_gasPrice failed: %s", exc)
            gas_price = 0

        if gas_price == 0:
            logger.warning(
                "Could not get gas price, using default: %d gwei",
                self.default_gas_price // GWEI,
            )
            gas_price = self.default_gas_price

        logger.info("Gas price: %d wei (%.2f gwei)", gas_price, gas_price / GWEI)
        return gas_price

    def estimate_gas(
        self,
        data: str,
        to: Optional[str] = None,
        multiplier: float = 1.0,
        default: Optional[int] = None,
    ) -> int:
        """
        Estimate the gas limit, falling back to a default on any failure.

        Args:
            data: 0x-prefixed call data or creation bytecode
            to: Destination (None for contract creation)
            multiplier: Headroom applied to a successful estimate
            default: Fallback limit (defaults to the submitter's default)
        """
        fallback = default or self.default_gas_limit
        transaction: dict[str, Any] = {"from": self.address, "data": _with_0x(data)}
        if to is not None:
            transaction["to"] = to

        try:
            estimate = hex_to_int(self.rpc.estimate_gas(transaction))
        except (RpcClientError, ValueError) as exc:
            logger.warning("Could not estimate gas: %s; using default %d", exc, fallback)
            return fallback

        if estimate == 0:
            logger.warning("Gas estimation returned 0; using default %d", fallback)
            return fallback

        gas_limit = int(estimate * multiplier)
        logger.info("Estimated gas limit: %d", gas_limit)
        return gas_limit

    def get_balance(self, address: Optional[str] = None) -> int:
        return self.rpc.get_balance(address or self.address)

    # ---- build / sign / send ----

    def build(
        self,
        to: Optional[str],
        data: str,
        nonce: int,
        gas_price: int,
        gas_limit: int,
        chain_id: Optional[int] = None,
    ) -> TransactionDraft:
        return TransactionDraft(
            chain_id=self.chain_id if chain_id is None else chain_id,
            nonce=nonce,
            gas_price=gas_price,
            gas_limit=gas_limit,
            data=_with_0x(data),
            to=to,
        )

    def sign(self, draft: TransactionDraft, private_key: Optional[str] = None) -> SignedTransaction:
        account = self._account if private_key is None else _load_account(private_key)
        signed = account.sign_transaction(draft.to_dict())
        return SignedTransaction(
            raw_transaction=_with_0x(bytes(signed.raw_transaction).hex()),
            tx_hash=_with_0x(bytes(signed.hash).hex()),
            nonce=draft.nonce,
        )

    def build_and_sign(
        self,
        to: Optional[str],
        data: str,
        nonce: int,
        gas_price: int,
        gas_limit: int,
        chain_id: Optional[int] = None,
        private_key: Optional[str] = None,
    ) -> SignedTransaction:
        draft = self.build(to, data, nonce, gas_price, gas_limit, chain_id)
        logger.debug(
            "Built tx: chain=%d nonce=%d gasPrice=%d gas=%d data=%d bytes",
            draft.chain_id,
            draft.nonce,
            draft.gas_price,
            draft.gas_limit,
            len(_strip_0x(draft.data)) // 2,
        )
        return self.sign(draft, private_key)

    def send(self, signed_tx: SignedTransaction) -> str:
        """
        Submit a signed transaction.

        Returns:
            0x-prefixed transaction hash

        Raises:
            TransactionRejected: If the network returned an empty hash
            AlreadySubmitted: If this transaction was already sent
        """
        if not isinstance(signed_tx, SignedTransaction):
            raise TypeError("send() only accepts a SignedTransaction")
        if signed_tx.raw_transaction in self._submitted:
            raise AlreadySubmitted(f"Transaction {signed_tx.tx_hash} was already submitted")
        self._submitted.add(signed_tx.raw_transaction)

        tx_hash = self.rpc.send_raw_transaction(signed_tx.raw_transaction)
        if tx_hash is None or not str(tx_hash).strip():
            raise TransactionRejected(
                "Transaction hash is empty. Transaction may have been rejected "
                "by the network (insufficient balance, gas price too low, or "
                "invalid nonce)."
            )

        tx_hash = _with_0x(str(tx_hash).strip())
        if len(tx_hash) != 66:
            logger.warning("Transaction hash length is %d, expected 66: %s", len(tx_hash), tx_hash)
        logger.info("Transaction sent: %s", tx_hash)
        return tx_hash

    def wait_for_receipt(
        self,
        tx_hash: str,
        max_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
    ) -> Optional[Receipt]:
        """
        Poll for a transaction receipt.

        Errors while polling are logged and polling continues.

        Returns:
            The receipt, or None if none appeared within ``max_attempts``
            polls. None means the outcome is unknown, not that it failed.
        """
        attempts = self.receipt_attempts if max_attempts is None else max_attempts
        interval = self.poll_interval if poll_interval is None else poll_interval

        for attempt in range(1, attempts + 1):
            try:
                raw = self.rpc.get_transaction_receipt(tx_hash)
                receipt = Receipt.from_rpc(raw) if raw else None
            except (RpcClientError, ValueError) as exc:
                logger.warning("Error checking receipt (attempt %d/%d): %s", attempt, attempts, exc)
            else:
                if receipt is not None:
                    logger.info("Transaction confirmed: %s", tx_hash)
                    return receipt

            if attempt < attempts:
                self._sleep(interval)

        logger.warning(
            "Timeout waiting for receipt of %s (%d polls); transaction may still be pending",
            tx_hash,
            attempts,
        )
        return None

    # ---- full pipeline ----

    def execute(self, draft: TransactionDraft, wait: bool = True) -> SubmissionResult:
        """Sign, send, and (optionally) wait for a draft."""
        signed = self.sign(draft)
        logger.debug("Nonce %d: %s -> %s", draft.nonce, draft.state.value, signed.state.value)
        tx_hash = self.send(signed)
        if not wait:
            return SubmissionResult(tx_hash=tx_hash, state=TxState.SENT)

        receipt = self.wait_for_receipt(tx_hash)
        if receipt is None:
            return SubmissionResult(tx_hash=tx_hash, state=TxState.UNKNOWN)
        if receipt.succeeded:
            logger.info("Gas used: %d", receipt.gas_used)
            return SubmissionResult(tx_hash=tx_hash, state=TxState.CONFIRMED, receipt=receipt)

        logger.warning("Transaction %s reverted (status %d)", tx_hash, receipt.status)
        return SubmissionResult(tx_hash=tx_hash, state=TxState.REVERTED, receipt=receipt)

    def submit(
        self,
        to: Optional[str],
        data: str,
        gas_limit: Optional[int] = None,
        gas_multiplier: float = 1.0,
        wait: bool = True,
    ) -> SubmissionResult:
        """
        Build, sign, send, and wait for a transaction.

        Args:
            to: Destination contract (None for contract creation)
            data: 0x-prefixed call data
            gas_limit: Fixed gas limit (default: estimate)
            gas_multiplier: Headroom applied to the estimate
            wait: Whether to wait for the receipt
        """
        nonce = self.get_nonce()
        gas_price = self.get_gas_price()
        if gas_limit is None:
            gas_limit = self.estimate_gas(data, to=to, multiplier=gas_multiplier)
        draft = self.build(to, data, nonce, gas_price, gas_limit)
        return self.execute(draft, wait=wait)

    def call_function(
        self,
        contract_address: str,
        signature: str,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        gas_multiplier: float = 1.0,
        wait: bool = True,
    ) -> SubmissionResult:
        """Encode a known contract function call and submit it."""
        data = encode_call(signature, args)
        logger.info("Calling %s on %s with %s", signature, contract_address, list(args))
        return self.submit(
            contract_address,
            data,
            gas_limit=gas_limit,
            gas_multiplier=gas_multiplier,
            wait=wait,
        )

    def read(self, contract_address: str, signature: str, args: Sequence[Any] = ()) -> Any:
        """Call a view function; returns raw hex (None for empty data)."""
        return read_contract(self.rpc, contract_address, signature, args)

    def check_balance_for_gas(self, gas_price: int, gas_limit: int) -> int:
        """
        Verify the sender can pay for ``gas_limit`` at ``gas_price``.

        Returns:
            Sender balance in wei

        Raises:
            InsufficientBalance: If the balance is below the worst-case cost
        """
        balance = self.get_balance()
        cost = gas_price * gas_limit
        if balance < cost:
            raise InsufficientBalance(
                f"Insufficient balance for gas: have {balance / WEI_PER_MATIC} MATIC, "
                f"need ~{cost / WEI_PER_MATIC:.4f} MATIC",
                available=balance,
                required=cost,
            )
        if balance < cost * MIN_BALANCE_WARNING_MULTIPLIER:
            logger.warning(
                "Balance may be too low (recommended: %s MATIC)",
                cost * MIN_BALANCE_WARNING_MULTIPLIER / WEI_PER_MATIC,
            )
        return balance

    def deploy(
        self,
        bytecode: str,
        constructor_data: str = "",
        gas_limit: Optional[int] = None,
        wait: bool = True,
    ) -> SubmissionResult:
        """
        Deploy a contract (creation transaction, no ``to``).

        Args:
            bytecode: Creation bytecode (0x prefix optional)
            constructor_data: ABI-encoded constructor args (hex)
            gas_limit: Fixed gas limit (default: estimate, else 3,000,000)
            wait: Whether to wait for the receipt
        """
        data = "0x" + _strip_0x(bytecode) + _strip_0x(constructor_data)
        if len(data) <= 2:
            raise ValueError("Empty bytecode")

        nonce = self.get_nonce()
        gas_price = self.get_gas_price()
        if gas_limit is None:
            gas_limit = self.estimate_gas(data, default=DEPLOY_GAS_LIMIT)
        self.check_balance_for_gas(gas_price, gas_limit)

        draft = self.build(None, data, nonce, gas_price, gas_limit)
        result = self.execute(draft, wait=wait)
        if result.state is TxState.REVERTED:
            self._log_transaction_details(result.tx_hash)
        elif result.succeeded and not result.contract_address:
            logger.warning("Contract address not found in receipt of %s", result.tx_hash)
        return result

    def _log_transaction_details(self, tx_hash: str) -> None:
        try:
            tx = self.rpc.get_transaction_by_hash(tx_hash)
        except RpcClientError as exc:
            logger.debug("Could not fetch transaction %s: %s", tx_hash, exc)
            return
        if tx and tx.get("gas"):
            logger.warning(
                "Reverted tx %s: gas limit %d, gas price %d",
                tx_hash,
                hex_to_int(tx.get("gas")),
                hex_to_int(tx.get("gasPrice")),
            )


def _load_account(private_key: str) -> LocalAccount:
    if not private_key:
        raise SigningError("No private key configured")
    key = private_key if private_key.startswith("0x") else "0x" + private_key
    try:
        return Account.from_key(key)
    except Exception as exc:
        raise SigningError(f"Invalid private key: {exc}") from exc
