__all__ = [
    # RPC client
    "RpcClient",
    "RpcEndpoint",
    "RateLimiter",
    "RpcClientError",
    "TransportError",
    "ParseError",
    "RpcError",
    "RateLimitExceeded",
    "hex_to_int",
    "read_contract",
    # Transactions
    "TransactionSubmitter",
    "TransactionDraft",
    "SignedTransaction",
    "Receipt",
    "SubmissionResult",
    "TxState",
    "TransactionError",
    "TransactionRejected",
    "InsufficientBalance",
    "SigningError",
    "AlreadySubmitted",
    # ABI
    "ParamType",
    "AbiError",
    "UnsupportedType",
    "UnknownSignature",
    "encode_address",
    "encode_uint256",
    "encode_params",
    "encode_call",
    "function_selector",
    # Artifacts
    "Artifact",
    "ArtifactError",
    "load_artifact",
    # Config
    "Settings",
    "ConfigError",
    "load_settings",
    "update_env_file",
]

from .chain.abi import (
    AbiError,
    ParamType,
    UnknownSignature,
    UnsupportedType,
    encode_address,
    encode_call,
    encode_params,
    encode_uint256,
    function_selector,
)
from .chain.artifacts import Artifact, ArtifactError, load_artifact
from .chain.rpc import (
    ParseError,
    RateLimiter,
    RateLimitExceeded,
    RpcClient,
    RpcClientError,
    RpcEndpoint,
    RpcError,
    TransportError,
    hex_to_int,
    read_contract,
)
from .chain.tx import (
    AlreadySubmitted,
    InsufficientBalance,
    Receipt,
    SignedTransaction,
    SigningError,
    SubmissionResult,
    TransactionDraft,
    TransactionError,
    TransactionRejected,
    TransactionSubmitter,
    TxState,
)
from .config import ConfigError, Settings, load_settings, update_env_file
