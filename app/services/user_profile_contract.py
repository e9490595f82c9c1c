"""
AuthorizedUserProfile contract mirror.

Pushes freshly issued JWTs and username changes to the AuthorizedUserProfile contract and
applies UsernameUpdated events emitted by the contract back to the users table.

The mirror is optional (see Settings.contract_enabled) and never gates sign-in or profile
updates: callers schedule push_jwt()/push_username() as background tasks and failures are
only logged.
"""

import asyncio
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from sqlalchemy.orm import Session
from web3 import Web3

from app.core.config import settings
from app.db.session import SessionLocal
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


class ContractMirrorError(Exception):
    """Raised when the contract client cannot be configured."""


def load_contract_abi(path: str) -> list:
    """Load an ABI from a JSON file: either a bare ABI list or a build artifact with an 'abi' key."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            artifact = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ContractMirrorError(f"cannot read contract ABI from {path}: {e}") from e

    abi = artifact.get("abi") if isinstance(artifact, dict) else artifact
    if not isinstance(abi, list):
        raise ContractMirrorError(f"no ABI list found in {path}")
    return abi


class UserProfileContract:
    def __init__(self, w3: Web3, contract: Any, account: Any):
        self.w3 = w3
        self.contract = contract
        self.account = account

    @classmethod
    def from_settings(cls) -> "UserProfileContract":
        if not settings.contract_enabled:
            raise ContractMirrorError("contract mirror is not configured")

        w3 = Web3(Web3.HTTPProvider(settings.CONTRACT_RPC_URL))
        try:
            account = w3.eth.account.from_key(settings.CONTRACT_PRIVATE_KEY)
        except ValueError as e:
            raise ContractMirrorError(f"invalid CONTRACT_PRIVATE_KEY: {e}") from e

        contract = w3.eth.contract(
            address=Web3.to_checksum_address(settings.CONTRACT_ADDRESS),
            abi=load_contract_abi(settings.CONTRACT_ABI_PATH),
        )
        logger.info("contract mirror ready at %s, signer %s", settings.CONTRACT_ADDRESS, account.address)
        return cls(w3, contract, account)

    def _send(self, function: Any) -> str:
        """Build, sign and submit a transaction for a contract function call."""
        tx = function.build_transaction(
            {
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address),
            }
        )
        signed = self.account.sign_transaction(tx)
        raw = getattr(signed, "raw_transaction", None) or signed.rawTransaction
        tx_hash = self.w3.eth.send_raw_transaction(raw)
        return Web3.to_hex(tx_hash)

    def add_jwt(self, address: str, jwt: str) -> str:
        tx_hash = self._send(self.contract.functions.setJwt(Web3.to_checksum_address(address), jwt))
        logger.info("setJwt submitted for %s: %s", address, tx_hash)
        return tx_hash

    def update_username(self, address: str, jwt: str, username: str) -> str:
        tx_hash = self._send(
            self.contract.functions.setUsername(Web3.to_checksum_address(address), jwt, username)
        )
        logger.info("setUsername submitted for %s: %s", address, tx_hash)
        return tx_hash

    def poll_username_updates(self, db: Session, from_block: Optional[int] = None) -> int:
        """Apply UsernameUpdated events from from_block on; return the next block to poll."""
        latest = self.w3.eth.block_number
        if from_block is None:
            from_block = latest
        if from_block > latest:
            return from_block

        events = self.contract.events.UsernameUpdated.get_logs(from_block=from_block, to_block=latest)
        for event in events:
            args = event["args"]
            applied = apply_username_updated(db, args["userAddress"], args["newUsername"])
            if applied:
                logger.info(
                    "transaction %s (block %s): username updated for %s to %s",
                    Web3.to_hex(event["transactionHash"]),
                    event["blockNumber"],
                    args["userAddress"],
                    args["newUsername"],
                )
        return latest + 1


def apply_username_updated(db: Session, user_address: str, new_username: str) -> bool:
    """Apply one UsernameUpdated event. Returns False when it was skipped."""
    users = UserService(db)

    if users.find_by_username(new_username) is not None:
        logger.error('username "%s" is already taken', new_username)
        return False

    user = users.find_by_address(Web3.to_checksum_address(user_address))
    if user is None:
        logger.error("user not found: %s", user_address)
        return False

    users.update(user, username=new_username)
    return True


_mirror: Optional[UserProfileContract] = None
_mirror_lock = Lock()


def get_user_profile_contract() -> Optional[UserProfileContract]:
    """Process-wide contract client, or None when the mirror is disabled or misconfigured."""
    global _mirror
    if not settings.contract_enabled:
        return None
    if _mirror is None:
        with _mirror_lock:
            if _mirror is None:
                try:
                    _mirror = UserProfileContract.from_settings()
                except ContractMirrorError as e:
                    logger.error("contract mirror disabled: %s", e)
                    return None
    return _mirror


def push_jwt(address: str, jwt: str) -> None:
    """Background task: mirror a freshly issued access token on chain."""
    mirror = get_user_profile_contract()
    if mirror is None:
        logger.debug("contract mirror disabled, skipping setJwt for %s", address)
        return
    try:
        mirror.add_jwt(address, jwt)
    except Exception as e:
        logger.error("setJwt failed for %s: %s", address, e, exc_info=True)


def push_username(address: str, jwt: str, username: str) -> None:
    """Background task: mirror a username change on chain."""
    mirror = get_user_profile_contract()
    if mirror is None:
        logger.debug("contract mirror disabled, skipping setUsername for %s", address)
        return
    try:
        mirror.update_username(address, jwt, username)
    except Exception as e:
        logger.error("setUsername failed for %s: %s", address, e, exc_info=True)


def sync_username_updates(from_block: Optional[int] = None) -> Optional[int]:
    """Run one polling round with its own database session; returns the next block."""
    mirror = get_user_profile_contract()
    if mirror is None:
        return from_block
    db = SessionLocal()
    try:
        return mirror.poll_username_updates(db, from_block)
    except Exception as e:
        logger.error("UsernameUpdated polling failed from block %s: %s", from_block, e, exc_info=True)
        return from_block
    finally:
        db.close()


username_sync_task: Optional[asyncio.Task] = None


async def start_username_sync() -> None:
    """Start the UsernameUpdated polling loop when the mirror is enabled."""
    global username_sync_task
    if not settings.contract_enabled:
        return
    if username_sync_task is None or username_sync_task.done():
        username_sync_task = asyncio.create_task(_username_sync_loop())
        logger.info("UsernameUpdated sync started")


async def stop_username_sync() -> None:
    global username_sync_task
    if username_sync_task is None:
        return
    username_sync_task.cancel()
    try:
        await username_sync_task
    except asyncio.CancelledError:
        pass
    username_sync_task = None


async def _username_sync_loop() -> None:
    loop = asyncio.get_running_loop()
    next_block: Optional[int] = None
    while True:
        next_block = await loop.run_in_executor(None, sync_username_updates, next_block)
        await asyncio.sleep(settings.CONTRACT_POLL_INTERVAL_SECONDS)
