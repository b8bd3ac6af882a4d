"""
Tests for the Solana migration transaction builder.

Covers Anchor discriminators, PDA derivation, record decoding and the
conflict check that must run before any blockhash is fetched.
"""

import base64
import struct
from unittest.mock import MagicMock

import pytest
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from graveshift.errors import Conflict, SourceUnavailable
from graveshift.migration import (
    COMPLETE_MIGRATION_DISCRIMINATOR,
    INITIALIZE_MIGRATION_DISCRIMINATOR,
    MEMO_PROGRAM_ID,
    MIGRATION_RECORD_DISCRIMINATOR,
    MigrationState,
    MigrationTransactionBuilder,
    build_initialize_instruction,
    decode_migration_record,
    derive_migration_record_address,
    encode_anchor_string,
)
from graveshift.config import DEFAULT_PROGRAM_ID

PROGRAM_ID = Pubkey.from_string(DEFAULT_PROGRAM_ID)
ASSET_ID = "0123456789abcdef0123456789abcdef"
ASSET_KEY = "eip155:1:erc20:0xabc:*:0xdef"


def record_bytes(user: Pubkey, asset_id: str, status: int) -> bytes:
    return MIGRATION_RECORD_DISCRIMINATOR + bytes(user) + encode_anchor_string(asset_id) + bytes([status])


@pytest.fixture
def account(solana_account):
    return Pubkey.from_string(solana_account)


class TestDiscriminators:
    def test_instruction_discriminators(self):
        assert list(INITIALIZE_MIGRATION_DISCRIMINATOR) == [45, 80, 44, 197, 254, 105, 131, 109]
        assert list(COMPLETE_MIGRATION_DISCRIMINATOR) == [160, 78, 74, 46, 91, 133, 203, 44]

    def test_account_discriminator(self):
        assert MIGRATION_RECORD_DISCRIMINATOR.hex() == "102474f3c03d2801"


class TestPdaDerivation:
    def test_matches_find_program_address(self, account):
        expected = Pubkey.find_program_address(
            [b"migration", bytes(account), ASSET_ID.encode("utf-8")], PROGRAM_ID
        )
        assert derive_migration_record_address(PROGRAM_ID, account, ASSET_ID) == expected

    def test_distinct_assets_distinct_records(self, account):
        a, _ = derive_migration_record_address(PROGRAM_ID, account, ASSET_ID)
        b, _ = derive_migration_record_address(PROGRAM_ID, account, "f" * 32)
        assert a != b

    def test_record_is_off_curve(self, account):
        address, _ = derive_migration_record_address(PROGRAM_ID, account, ASSET_ID)
        assert not address.is_on_curve()


class TestEncoding:
    def test_anchor_string(self):
        assert encode_anchor_string("abc") == struct.pack("<I", 3) + b"abc"

    def test_initialize_instruction_layout(self, account):
        record, _ = derive_migration_record_address(PROGRAM_ID, account, ASSET_ID)
        ix = build_initialize_instruction(PROGRAM_ID, record, account, ASSET_ID)

        assert bytes(ix.data) == INITIALIZE_MIGRATION_DISCRIMINATOR + struct.pack("<I", 32) + ASSET_ID.encode()
        assert [(m.pubkey, m.is_signer, m.is_writable) for m in ix.accounts][:2] == [
            (record, False, True),
            (account, True, True),
        ]
        assert not ix.accounts[2].is_writable

    def test_decode_completed_record(self, account):
        record = decode_migration_record(record_bytes(account, ASSET_ID, 1))
        assert record.user == account
        assert record.asset_id == ASSET_ID
        assert record.state is MigrationState.COMPLETE

    def test_decode_initiated_record(self, account):
        assert decode_migration_record(record_bytes(account, ASSET_ID, 0)).state is MigrationState.INITIALIZING

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda data: b"\x00" * 8 + data[8:],
            lambda data: data[:-1],
            lambda data: data[:-1] + b"\x07",
        ],
    )
    def test_decode_rejects_bad_data(self, account, mutate):
        with pytest.raises(ValueError):
            decode_migration_record(mutate(record_bytes(account, ASSET_ID, 1)))


class TestMigrationTransactionBuilder:
    @pytest.mark.asyncio
    async def test_builds_three_instruction_transaction(self, rpc_client, account):
        builder = MigrationTransactionBuilder(rpc_client, PROGRAM_ID)

        built = await builder.build(account, ASSET_ID, ASSET_KEY)

        message = built.transaction.message
        assert message.account_keys[0] == account
        program_ids = [message.account_keys[ix.program_id_index] for ix in message.instructions]
        assert program_ids == [PROGRAM_ID, PROGRAM_ID, MEMO_PROGRAM_ID]
        assert bytes(message.instructions[1].data) == COMPLETE_MIGRATION_DISCRIMINATOR
        assert bytes(message.instructions[2].data) == f"graveshift:{ASSET_KEY}".encode()
        assert built.record_address == builder.record_address(account, ASSET_ID)
        rpc_client.get_account_info.assert_awaited_once_with(built.record_address)

    @pytest.mark.asyncio
    async def test_base64_round_trip(self, rpc_client, account):
        built = await MigrationTransactionBuilder(rpc_client, PROGRAM_ID).build(account, ASSET_ID, ASSET_KEY)

        decoded = Transaction.from_bytes(base64.b64decode(built.to_base64()))

        assert decoded.message == built.transaction.message

    @pytest.mark.asyncio
    async def test_existing_record_conflicts(self, existing_record_rpc, account):
        builder = MigrationTransactionBuilder(existing_record_rpc, PROGRAM_ID)

        with pytest.raises(Conflict, match="already been resurrected"):
            await builder.build(account, ASSET_ID, ASSET_KEY)

        existing_record_rpc.get_latest_blockhash.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rpc_failure_is_source_unavailable(self, rpc_client, account):
        rpc_client.get_account_info.side_effect = SolanaRpcException(
            ConnectionResetError("connection reset"), AsyncClient.get_account_info, rpc_client, None
        )

        with pytest.raises(SourceUnavailable, match="getAccountInfo"):
            await MigrationTransactionBuilder(rpc_client, PROGRAM_ID).build(account, ASSET_ID, ASSET_KEY)

        rpc_client.get_latest_blockhash.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blockhash_failure_is_source_unavailable(self, rpc_client, account):
        rpc_client.get_latest_blockhash.side_effect = SolanaRpcException(
            ConnectionResetError("connection reset"), AsyncClient.get_latest_blockhash, rpc_client, None
        )

        with pytest.raises(SourceUnavailable, match="getLatestBlockhash"):
            await MigrationTransactionBuilder(rpc_client, PROGRAM_ID).build(account, ASSET_ID, ASSET_KEY)

        rpc_client.get_account_info.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fetch_state_absent(self, rpc_client, account):
        state = await MigrationTransactionBuilder(rpc_client, PROGRAM_ID).fetch_migration_state(account, ASSET_ID)
        assert state is MigrationState.ABSENT

    @pytest.mark.asyncio
    async def test_fetch_state_complete(self, rpc_client, account):
        rpc_client.get_account_info.return_value.value = MagicMock(data=record_bytes(account, ASSET_ID, 1))

        state = await MigrationTransactionBuilder(rpc_client, PROGRAM_ID).fetch_migration_state(account, ASSET_ID)

        assert state is MigrationState.COMPLETE
