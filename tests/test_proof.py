"""Tests for proof message construction and signer recovery."""

import pytest

from graveshift.assets import normalize_asset_input
from graveshift.proof import (
    build_resurrection_proof_message,
    check_proof_signature,
    is_signature_format,
    recover_proof_signer,
)


@pytest.fixture
def asset(owner_account, contract_address):
    return normalize_asset_input(
        chain="polygon",
        eth_address=owner_account.address.lower(),
        asset_type="erc1155",
        contract_address=contract_address,
        token_id="0042",
    )


class TestProofMessage:
    def test_exact_layout(self, asset, solana_account):
        message = build_resurrection_proof_message(asset, solana_account)

        assert message.split("\n") == [
            "GraveShift Resurrection Proof",
            f"EVM Owner: {asset.eth_address}",
            f"Solana Recipient: {solana_account}",
            "Network: Polygon PoS",
            "Asset Type: erc1155",
            f"Contract: {asset.contract_address}",
            "Token Id: 42",
            "Action: I authorize this asset resurrection on Solana.",
        ]

    def test_fungible_uses_wildcard(self, owner_account, contract_address, solana_account):
        fungible = normalize_asset_input(
            eth_address=owner_account.address,
            asset_type="erc20",
            contract_address=contract_address,
        )
        message = build_resurrection_proof_message(fungible, solana_account)
        assert "Token Id: *" in message
        assert "Network: Ethereum Mainnet" in message


class TestSignatures:
    def test_owner_signature_accepted(self, asset, solana_account, sign_proof, owner_account):
        signature = sign_proof(asset, solana_account)

        check = check_proof_signature(asset, solana_account, signature)

        assert check.valid
        assert check.recovered_address == owner_account.address

    def test_other_signer_rejected(self, asset, solana_account, sign_proof, other_account):
        signature = sign_proof(asset, solana_account, other_account.key)

        check = check_proof_signature(asset, solana_account, signature)

        assert not check.valid
        assert check.recovered_address == other_account.address

    def test_signature_bound_to_recipient(self, asset, solana_account, sign_proof):
        signature = sign_proof(asset, solana_account)
        other_recipient = "11111111111111111111111111111111"

        assert not check_proof_signature(asset, other_recipient, signature).valid

    def test_signature_bound_to_token(self, asset, solana_account, sign_proof, owner_account, contract_address):
        signature = sign_proof(asset, solana_account)
        sibling = normalize_asset_input(
            chain="polygon",
            eth_address=owner_account.address,
            asset_type="erc1155",
            contract_address=contract_address,
            token_id="43",
        )

        assert not check_proof_signature(sibling, solana_account, signature).valid

    def test_unrecoverable_signature(self):
        assert recover_proof_signer("hello", "0x" + "00" * 65) is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0x" + "ab" * 65, True),
            ("0x" + "AB" * 65, True),
            ("0x" + "ab" * 64, False),
            ("ab" * 66, False),
            (None, False),
        ],
    )
    def test_signature_format(self, value, expected):
        assert is_signature_format(value) is expected
