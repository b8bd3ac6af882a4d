"""
Solana migration transaction builder.

Derives the per-(account, assetId) migration record PDA, refuses to build
when the record already exists, and composes:

    1. initialize_migration(asset_id)   [record (w), user (w,s), system program]
    2. complete_migration()             [record (w), user (w,s)]
    3. memo "graveshift:<assetKey>"     []

into one unsigned legacy transaction paid for by the user. The record's
existence is the only idempotency signal; both program instructions land
atomically, so a record is either absent or complete after any attempt.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import struct
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction

from graveshift.errors import Conflict, SourceUnavailable

logger = logging.getLogger(__name__)

MIGRATION_SEED = b"migration"
MEMO_PROGRAM_ID = Pubkey.from_string("MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr")
MEMO_PREFIX = "graveshift:"


def anchor_discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode("utf-8")).digest()[:8]


INITIALIZE_MIGRATION_DISCRIMINATOR = anchor_discriminator("global", "initialize_migration")
COMPLETE_MIGRATION_DISCRIMINATOR = anchor_discriminator("global", "complete_migration")
MIGRATION_RECORD_DISCRIMINATOR = anchor_discriminator("account", "MigrationRecord")


class MigrationState(str, Enum):
    ABSENT = "absent"
    INITIALIZING = "initializing"
    COMPLETE = "complete"


# On-chain status byte -> state
_STATUS_STATES = {0: MigrationState.INITIALIZING, 1: MigrationState.COMPLETE}


@dataclass
class MigrationRecord:
    user: Pubkey
    asset_id: str
    state: MigrationState


def encode_anchor_string(value: str) -> bytes:
    """Borsh string: u32 little-endian byte length followed by UTF-8 bytes."""
    data = value.encode("utf-8")
    return struct.pack("<I", len(data)) + data


def decode_migration_record(data: bytes) -> MigrationRecord:
    """Decode the program's MigrationRecord account data.

    Raises:
        ValueError: if the data is not a MigrationRecord.
    """
    if len(data) < 8 + 32 + 4 + 1 or data[:8] != MIGRATION_RECORD_DISCRIMINATOR:
        raise ValueError("Account data is not a MigrationRecord")

    user = Pubkey.from_bytes(data[8:40])
    (length,) = struct.unpack_from("<I", data, 40)
    end = 44 + length
    if len(data) < end + 1:
        raise ValueError("Truncated MigrationRecord")

    asset_id = data[44:end].decode("utf-8")
    status = data[end]
    if status not in _STATUS_STATES:
        raise ValueError(f"Unknown migration status byte {status}")
    return MigrationRecord(user=user, asset_id=asset_id, state=_STATUS_STATES[status])


def derive_migration_record_address(program_id: Pubkey, account: Pubkey, asset_id: str) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address(
        [MIGRATION_SEED, bytes(account), asset_id.encode("utf-8")],
        program_id,
    )


def build_initialize_instruction(program_id: Pubkey, record: Pubkey, account: Pubkey, asset_id: str) -> Instruction:
    return Instruction(
        program_id,
        INITIALIZE_MIGRATION_DISCRIMINATOR + encode_anchor_string(asset_id),
        [
            AccountMeta(record, is_signer=False, is_writable=True),
            AccountMeta(account, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )


def build_complete_instruction(program_id: Pubkey, record: Pubkey, account: Pubkey) -> Instruction:
    return Instruction(
        program_id,
        COMPLETE_MIGRATION_DISCRIMINATOR,
        [
            AccountMeta(record, is_signer=False, is_writable=True),
            AccountMeta(account, is_signer=True, is_writable=True),
        ],
    )


def build_memo_instruction(asset_key: str) -> Instruction:
    return Instruction(MEMO_PROGRAM_ID, f"{MEMO_PREFIX}{asset_key}".encode("utf-8"), [])


@dataclass
class MigrationTransaction:
    """Unsigned transaction; the blockhash expires, so sign promptly."""
    transaction: Transaction
    record_address: Pubkey
    blockhash: Hash

    def to_base64(self) -> str:
        return base64.b64encode(bytes(self.transaction)).decode("ascii")


class MigrationTransactionBuilder:
    """Builds migration transactions against a solana-py AsyncClient."""

    def __init__(self, rpc_client, program_id: Pubkey):
        self._rpc = rpc_client
        self.program_id = program_id

    def record_address(self, account: Pubkey, asset_id: str) -> Pubkey:
        address, _bump = derive_migration_record_address(self.program_id, account, asset_id)
        return address

    async def _account_data(self, address: Pubkey) -> Optional[bytes]:
        try:
            resp = await self._rpc.get_account_info(address)
        except (SolanaRpcException, RPCException, asyncio.TimeoutError) as e:
            logger.warning(f"getAccountInfo failed for {address}: {e}")
            raise SourceUnavailable("Solana RPC getAccountInfo failed", source="solana") from e
        if resp.value is None:
            return None
        return bytes(resp.value.data)

    async def record_exists(self, address: Pubkey) -> bool:
        return await self._account_data(address) is not None

    async def fetch_migration_state(self, account: Pubkey, asset_id: str) -> MigrationState:
        data = await self._account_data(self.record_address(account, asset_id))
        if data is None:
            return MigrationState.ABSENT
        return decode_migration_record(data).state

    async def _latest_blockhash(self) -> Hash:
        try:
            resp = await self._rpc.get_latest_blockhash()
        except (SolanaRpcException, RPCException, asyncio.TimeoutError) as e:
            logger.warning(f"getLatestBlockhash failed: {e}")
            raise SourceUnavailable("Solana RPC getLatestBlockhash failed", source="solana") from e
        return resp.value.blockhash

    def compose_instructions(self, account: Pubkey, asset_id: str, asset_key: str) -> List[Instruction]:
        record = self.record_address(account, asset_id)
        return [
            build_initialize_instruction(self.program_id, record, account, asset_id),
            build_complete_instruction(self.program_id, record, account),
            build_memo_instruction(asset_key),
        ]

    async def build(self, account: Pubkey, asset_id: str, asset_key: str) -> MigrationTransaction:
        """Compose the migration transaction for a verified asset.

        Raises:
            Conflict: a migration record already exists for (account, asset_id).
            SourceUnavailable: the Solana RPC call failed.
        """
        record = self.record_address(account, asset_id)
        if await self.record_exists(record):
            logger.info(f"Migration record {record} already exists for asset {asset_id}")
            raise Conflict("This asset has already been resurrected for this Solana wallet")

        instructions = self.compose_instructions(account, asset_id, asset_key)
        blockhash = await self._latest_blockhash()
        message = Message.new_with_blockhash(instructions, account, blockhash)

        logger.info(f"Built migration transaction for asset {asset_id} -> record {record}")
        return MigrationTransaction(
            transaction=Transaction.new_unsigned(message),
            record_address=record,
            blockhash=blockhash,
        )
