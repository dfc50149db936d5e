"""EIP712Signer — typed-data signing of canonical orders for a custody account.

The custody account (``maker``) owns the order; a delegated EOA
(``signer``) signs it.  The exchange expects the signature as a packed
envelope: the 20-byte signer address followed by the raw 65-byte
``r‖s‖v`` ECDSA signature.

Signing uses ``eth_account``, whose nonces are RFC 6979 deterministic:
the same order signed twice with the same key yields identical digest
*and* signature bytes.
"""

from __future__ import annotations

from typing import Any, Union

import structlog
from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_account.signers.local import LocalAccount
from pydantic import SecretStr
from web3 import Web3

from order_engine.core.errors import SigningFailureError
from order_engine.models.order import CanonicalOrder, SignedOrder

logger = structlog.get_logger("web3_infra.eip712_signer")

Credential = Union[str, SecretStr, LocalAccount]

SIGNATURE_LENGTH = 65
ADDRESS_LENGTH = 20

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ORDER_TYPE = [
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "signer", "type": "address"},
    {"name": "taker", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
    {"name": "makerAmount", "type": "uint256"},
    {"name": "takerAmount", "type": "uint256"},
    {"name": "expiration", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "feeRateBps", "type": "uint256"},
    {"name": "side", "type": "uint8"},
    {"name": "signatureType", "type": "uint8"},
]


def _hash_signable(msg: SignableMessage) -> bytes:
    return bytes(Web3.keccak(b"\x19" + msg.version + msg.header + msg.body))


def load_account(credential: Credential) -> LocalAccount:
    """Resolve a private key (plain or ``SecretStr``) to a local account."""
    if isinstance(credential, LocalAccount):
        return credential
    key = credential.get_secret_value() if isinstance(credential, SecretStr) else credential
    if not key:
        raise SigningFailureError("signing credential is empty")
    try:
        return Account.from_key(key)
    except Exception as exc:
        # The message must not echo the key.
        raise SigningFailureError("signing credential is not a valid private key") from exc


class EIP712Signer:
    """Synchronous EIP-712 signer for :class:`CanonicalOrder`.

    The domain's ``chainId`` and ``verifyingContract`` come from the
    order itself; *domain_name* / *domain_version* identify the
    exchange contract's version.
    """

    def __init__(
        self,
        domain_name: str = "OPINION CTF Exchange",
        domain_version: str = "1",
    ) -> None:
        self._domain_name = domain_name
        self._domain_version = domain_version

    # ── Typed data ───────────────────────────────────────────────

    def typed_data(self, order: CanonicalOrder) -> dict[str, Any]:
        """Full EIP-712 message for *order*."""
        return {
            "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, "Order": ORDER_TYPE},
            "primaryType": "Order",
            "domain": {
                "name": self._domain_name,
                "version": self._domain_version,
                "chainId": order.chain_id,
                "verifyingContract": order.exchange_address,
            },
            "message": order.to_typed_message(),
        }

    def _signable(self, order: CanonicalOrder) -> SignableMessage:
        try:
            return encode_typed_data(full_message=self.typed_data(order))
        except Exception as exc:
            raise SigningFailureError(f"cannot encode order {order.salt}: {exc}") from exc

    def digest(self, order: CanonicalOrder) -> str:
        """``0x``-hex keccak digest that is actually signed."""
        return Web3.to_hex(_hash_signable(self._signable(order)))

    # ── Signing ──────────────────────────────────────────────────

    def sign(self, order: CanonicalOrder, credential: Credential) -> SignedOrder:
        """Sign *order* and pack the custody envelope.

        Raises
        ------
        SigningFailureError
            Invalid credential, credential not matching ``order.signer``,
            or the order cannot be encoded.
        """
        account = load_account(credential)
        if account.address.lower() != order.signer.lower():
            raise SigningFailureError(
                f"credential address {account.address} is not the order signer {order.signer}"
            )

        msg = self._signable(order)
        try:
            signed = account.sign_message(msg)
        except Exception as exc:
            raise SigningFailureError(f"signing order {order.salt} failed") from exc

        raw = bytes(signed.signature)
        if len(raw) != SIGNATURE_LENGTH:
            raise SigningFailureError(f"unexpected signature length {len(raw)}")

        envelope = Web3.to_bytes(hexstr=order.signer) + raw
        result = SignedOrder(
            order=order,
            digest=Web3.to_hex(_hash_signable(msg)),
            raw_signature=Web3.to_hex(raw),
            signature=Web3.to_hex(envelope),
        )
        logger.debug(
            "eip712_signer.signed",
            salt=order.salt,
            signer=order.signer,
            digest=result.digest,
        )
        return result

    def recover_signer(self, signed: SignedOrder) -> str:
        """Recover the checksummed signer address from an envelope."""
        envelope = Web3.to_bytes(hexstr=signed.signature)
        if len(envelope) != ADDRESS_LENGTH + SIGNATURE_LENGTH:
            raise SigningFailureError(f"unexpected envelope length {len(envelope)}")
        claimed = Web3.to_checksum_address(Web3.to_hex(envelope[:ADDRESS_LENGTH]))
        recovered = Account.recover_message(
            self._signable(signed.order),
            signature=envelope[ADDRESS_LENGTH:],
        )
        if recovered != claimed:
            raise SigningFailureError(
                f"envelope address {claimed} does not match recovered signer {recovered}"
            )
        return recovered
