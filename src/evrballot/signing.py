"""
evrballot/signing.py

Evrmore message signing and signer recovery using python-evrmorelib.

Votes are signed off-chain as Evrmore signed messages. The message hash is
taken over the "Evrmore Signed Message" prefixed payload, so a ballot
signature can never be replayed as a transaction signature and vice versa.

Usage:
    from evrballot.signing import EvrmoreWallet, vote_message, recover_signer

    wallet = EvrmoreWallet.from_entropy(entropy_bytes)
    signature = wallet.sign_vote("proposal-id", option=1, weight=5)

    signer = recover_signer(
        vote_message(wallet.address, "proposal-id", 1, 5),
        signature,
    )
    assert signer == wallet.address
"""

import base64
import binascii
import hashlib
from typing import Union, Optional

from evrmore import SelectParams
from evrmore.wallet import CEvrmoreSecret, P2PKHEvrmoreAddress
from evrmore.signmessage import signMessage, verifyMessage, EvrmoreMessage
from evrmore.core.key import CPubKey

from .errors import MalformedSignature

# Compact recoverable signature: 1 header byte + 32 byte R + 32 byte S
COMPACT_SIGNATURE_LENGTH = 65
# Header byte is 27 + recovery id (0-3), +4 when the key is compressed
COMPACT_HEADER_MIN = 27
COMPACT_HEADER_MAX = 34


class EvrmoreWallet:
    """
    Lightweight Evrmore wallet for signing ballots.

    Voters (and tests) use this to produce signatures the engine accepts.
    The engine itself never holds private keys.
    """

    def __init__(self, private_key_obj: CEvrmoreSecret):
        SelectParams('mainnet')
        self._private_key = private_key_obj
        self._address_obj = P2PKHEvrmoreAddress.from_pubkey(self._private_key.pub)

    @classmethod
    def from_entropy(cls, entropy: bytes, compressed: bool = True) -> "EvrmoreWallet":
        """
        Create wallet from 32 bytes of entropy.

        Args:
            entropy: 32 bytes of random entropy
            compressed: Whether to use compressed public key (default True)

        Returns:
            EvrmoreWallet instance
        """
        SelectParams('mainnet')
        if len(entropy) != 32:
            raise ValueError("Entropy must be exactly 32 bytes")
        private_key = CEvrmoreSecret.from_secret_bytes(entropy, compressed=compressed)
        return cls(private_key)

    @property
    def address(self) -> str:
        """Get the Evrmore address (the voter identity)."""
        return str(self._address_obj)

    @property
    def public_key(self) -> str:
        """Get the public key as hex string."""
        return self._private_key.pub.hex()

    def sign(self, message: str) -> bytes:
        """
        Sign a message with the private key.

        Returns:
            Base64-encoded compact signature as bytes
        """
        return signMessage(self._private_key, EvrmoreMessage(message))

    def sign_vote(self, proposal_id: str, option: int, weight: int) -> bytes:
        """Sign the canonical ballot message for this wallet's address."""
        return self.sign(vote_message(self.address, proposal_id, option, weight))


def vote_message(signer: str, proposal_id: str, option: int, weight: int) -> str:
    """
    Build the canonical ballot message.

    The field order (signer, proposal, option, weight) is fixed; any change
    invalidates every signature produced against the previous layout.
    """
    return f"vote:{signer}:{proposal_id}:{option}:{weight}"


def sign_message(private_key: CEvrmoreSecret, message: str) -> bytes:
    """Sign a message with an Evrmore private key (base64 signature)."""
    return signMessage(private_key, EvrmoreMessage(message))


def verify_message(
    message: str,
    signature: Union[bytes, str],
    address: str,
) -> bool:
    """
    Check a signature against a known address.

    Returns:
        True if signature is valid
    """
    return verifyMessage(
        message=EvrmoreMessage(message),
        signature=_signature_to_text(signature),
        pubkey=None,
        address=address,
    )


def generate_address(pubkey: Union[bytes, str]) -> str:
    """Generate an Evrmore address from a public key."""
    SelectParams('mainnet')
    if isinstance(pubkey, str):
        pubkey = bytes.fromhex(pubkey)
    return str(P2PKHEvrmoreAddress.from_pubkey(pubkey))


def recover_signer(message: str, signature: Union[bytes, str]) -> str:
    """
    Recover the address that produced a signature over a message.

    This only answers "who signed this"; comparing the result against a
    claimed identity is the caller's job.

    Args:
        message: The original (unprefixed) message
        signature: Base64 compact signature, as text or bytes

    Returns:
        Evrmore address of the signer

    Raises:
        MalformedSignature: If the signature cannot be decoded or recovered
    """
    raw = _decode_compact(signature)
    digest = EvrmoreMessage(message).GetHash()

    try:
        pub = CPubKey.recover_compact(hash=digest, sig=raw)
    except ValueError as e:
        raise MalformedSignature(f"Public key recovery failed: {e}") from e

    if not pub:
        raise MalformedSignature("Public key recovery failed")

    return generate_address(bytes(pub))


def signature_fingerprint(signature: Union[bytes, str]) -> str:
    """Short stable identifier for a signature, for log lines."""
    return hashlib.sha256(_signature_to_text(signature).encode()).hexdigest()[:12]


def _signature_to_text(signature: Union[bytes, str]) -> str:
    if isinstance(signature, bytes):
        # Could be base64 text as bytes or the raw 65 bytes
        try:
            return signature.decode('utf-8')
        except UnicodeDecodeError:
            return base64.b64encode(signature).decode('utf-8')
    return signature


def _decode_compact(signature: Optional[Union[bytes, str]]) -> bytes:
    if not signature:
        raise MalformedSignature("Empty signature")

    try:
        raw = base64.b64decode(_signature_to_text(signature), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedSignature(f"Signature is not valid base64: {e}") from e

    if len(raw) != COMPACT_SIGNATURE_LENGTH:
        raise MalformedSignature(
            f"Signature must be {COMPACT_SIGNATURE_LENGTH} bytes, got {len(raw)}"
        )
    if not COMPACT_HEADER_MIN <= raw[0] <= COMPACT_HEADER_MAX:
        raise MalformedSignature(f"Invalid recovery header byte: {raw[0]}")

    return raw
