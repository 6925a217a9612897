"""Encrypted search key hierarchy built on GF(2) polynomial functions."""

from .config import (
    HashConfiguration,
    SearchConfiguration,
    default_configuration,
)
from .keypair import (
    PublicKeyCapability,
    PrivateKeyCapability,
    PrivateKey,
    PublicKey,
)
from .search_keys import (
    EncryptedSearchPrivateKey,
    QueryHasherPair,
)
from .sharing import (
    EncryptedSearchSharingKey,
    EncryptedSearchBridgeKey,
    search_matches,
    constant_time_equals,
)
from .wire import (
    BitMatrixModel,
    PlainFunctionModel,
    ParameterizedFunctionModel,
    PrivateKeyModel,
    SharingKeyModel,
    BridgeKeyModel,
    function_to_json,
    function_from_json,
)

__all__ = [
    "HashConfiguration",
    "SearchConfiguration",
    "default_configuration",
    "PublicKeyCapability",
    "PrivateKeyCapability",
    "PrivateKey",
    "PublicKey",
    "EncryptedSearchPrivateKey",
    "QueryHasherPair",
    "EncryptedSearchSharingKey",
    "EncryptedSearchBridgeKey",
    "search_matches",
    "constant_time_equals",
    "BitMatrixModel",
    "PlainFunctionModel",
    "ParameterizedFunctionModel",
    "PrivateKeyModel",
    "SharingKeyModel",
    "BridgeKeyModel",
    "function_to_json",
    "function_from_json",
]
