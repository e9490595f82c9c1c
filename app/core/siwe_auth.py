"""
Sign-In with Ethereum (EIP-4361) Utilities

This module handles Ethereum-specific operations for wallet authentication.

Authentication Flow:
1. Backend generates a random nonce and stores it on the user -> generate_nonce()
2. Frontend builds an EIP-4361 message embedding that nonce and signs it (personal_sign)
3. Frontend sends: message, signature, nonce
4. Backend parses the message -> parse_siwe_message()
5. Backend verifies: verify_siwe_signature()
   - Recovers the signer from the EIP-191 signature and compares it to the message address
   - Checks the message nonce equals the expected nonce
   - Checks domain (when configured) and expiration/not-before times

The signature verification uses:
- siwe library for message parsing and verification
- web3 for address validation and checksum normalization
"""

import secrets
import string

from eth_keys.exceptions import BadSignature
from eth_utils.exceptions import ValidationError as EthValidationError
from siwe import SiweMessage, VerificationError
from web3 import Web3


class SiweError(ValueError):
    """Raised when a SIWE message cannot be parsed or verified."""


NONCE_LENGTH = 17
NONCE_ALPHABET = string.ascii_letters + string.digits


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    """
    Generate a cryptographically secure random nonce for wallet authentication.

    EIP-4361 only allows alphanumeric nonces of at least 8 characters, so this draws
    from [A-Za-z0-9] rather than hex.

    Args:
        length: Number of characters (default: 17)

    Returns:
        Alphanumeric random string
    """
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def is_valid_address(address: str | None) -> bool:
    """Check an Ethereum address: 20 bytes hex, all lower/upper case or valid EIP-55 checksum."""
    if not address or not isinstance(address, str):
        return False
    address = address.strip()
    if not Web3.is_address(address):
        return False
    hex_part = address[2:] if address[:2].lower() == "0x" else address
    if hex_part == hex_part.lower() or hex_part == hex_part.upper():
        return True
    # mixed case must carry a correct checksum
    return Web3.is_checksum_address(address)


def to_checksum_address(address: str) -> str:
    """Normalize an address to its EIP-55 checksum form."""
    return Web3.to_checksum_address(address.strip())


def parse_siwe_message(message: str) -> SiweMessage:
    """
    Parse an EIP-4361 plaintext message.

    Raises:
        SiweError: If the message is empty or does not follow the EIP-4361 grammar
    """
    if not message or not isinstance(message, str):
        raise SiweError("message is required")
    try:
        return SiweMessage.from_message(message=message)
    except ValueError as e:
        raise SiweError(f"invalid SIWE message: {e}") from e


def verify_siwe_signature(
    siwe_message: SiweMessage,
    signature: str,
    nonce: str,
    domain: str | None = None,
) -> None:
    """
    Verify that signature was produced by the key controlling siwe_message.address.

    Args:
        siwe_message: Parsed message (see parse_siwe_message)
        signature: 0x-prefixed hex signature from personal_sign
        nonce: The nonce the message must embed
        domain: Expected domain, skipped when None

    Raises:
        SiweError: If the signature is malformed or invalid, or nonce/domain/time checks fail
    """
    if not signature:
        raise SiweError("signature is required")
    try:
        siwe_message.verify(signature, nonce=nonce, domain=domain)
    except VerificationError as e:
        raise SiweError(f"{type(e).__name__}") from e
    except (ValueError, TypeError, EthValidationError, BadSignature) as e:
        raise SiweError(f"malformed signature: {e}") from e
