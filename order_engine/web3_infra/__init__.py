"""Order engine — web3_infra package.

- EIP712Signer: typed-data signing + custody envelope packing
"""

from .eip712_signer import EIP712Signer, load_account

__all__ = [
    "EIP712Signer",
    "load_account",
]
