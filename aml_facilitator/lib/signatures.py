"""
Payment signature utilities.

Payers sign a plain-text payment message with EIP-191 personal_sign.
Verification recovers the signer with secp256k1 public key recovery
(coincurve) over the keccak digest of the prefixed message.

SECURITY: recovery never "passes" on malformed input - it raises
ValueError, which the verification pipeline reports as invalid.
"""
import logging

from coincurve import PublicKey
from web3 import Web3

logger = logging.getLogger(__name__)

PERSONAL_SIGN_PREFIX = "\x19Ethereum Signed Message:\n"


def build_payment_message(network: str, asset: str, payer: str, pay_to: str, amount: str) -> str:
    """
    Build the canonical payment message a payer signs.

    Layout (one field per line, trailing newline included):
        Chain ID: {network}
        Contract: {asset}
        User: {payer}
        Receiver: {pay_to}
        Amount: {amount}
    """
    return (
        f"Chain ID: {network}\n"
        f"Contract: {asset}\n"
        f"User: {payer}\n"
        f"Receiver: {pay_to}\n"
        f"Amount: {amount}\n"
    )


def hash_personal_message(message: str | bytes) -> bytes:
    """Keccak-256 digest of an EIP-191 (version 0x45) prefixed message."""
    if isinstance(message, str):
        message = message.encode("utf-8")
    prefix = f"{PERSONAL_SIGN_PREFIX}{len(message)}".encode("utf-8")
    return bytes(Web3.keccak(prefix + message))


def public_key_to_address(pubkey: PublicKey) -> str:
    """Checksummed address of a secp256k1 public key."""
    raw = pubkey.format(compressed=False)[1:]
    return Web3.to_checksum_address("0x" + bytes(Web3.keccak(raw))[-20:].hex())


def _parse_signature(signature_hex: str) -> bytes:
    sig_hex = signature_hex[2:] if signature_hex.startswith(("0x", "0X")) else signature_hex
    try:
        sig = bytes.fromhex(sig_hex)
    except ValueError:
        raise ValueError("Invalid signature encoding (expected hex)")

    if len(sig) != 65:
        raise ValueError(f"Invalid signature length: {len(sig)} (expected 65)")

    # Normalize v: 27/28 (legacy) or 0/1 (raw recovery id)
    v = sig[64]
    if v >= 27:
        v -= 27
    if v not in (0, 1):
        raise ValueError(f"Invalid signature recovery id: {sig[64]}")

    return sig[:64] + bytes([v])


def recover_message_signer(message: str | bytes, signature_hex: str) -> str:
    """
    Recover the address that personal_signed `message`.

    Args:
        message: The plain message that was signed (before prefixing)
        signature_hex: 65-byte r||s||v signature, hex-encoded, optional 0x

    Returns:
        Checksummed signer address

    Raises:
        ValueError: signature is malformed or recovery fails
    """
    recoverable = _parse_signature(signature_hex)
    digest = hash_personal_message(message)
    try:
        pubkey = PublicKey.from_signature_and_message(recoverable, digest, hasher=None)
    except Exception as e:
        raise ValueError(f"Signature recovery failed: {e}") from e
    return public_key_to_address(pubkey)


def addresses_match(a: str, b: str) -> bool:
    """Case-insensitive address comparison (checksum casing is cosmetic)."""
    return a.lower() == b.lower()
