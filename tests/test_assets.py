"""Tests for asset normalisation and identity derivation."""

import hashlib

import pytest

from graveshift.assets import (
    build_asset_key,
    normalize_asset_chain,
    normalize_asset_input,
    normalize_asset_type,
    normalize_evm_address,
    normalize_token_id,
)
from graveshift.errors import ValidationError

VITALIK_LOWER = "0xd8da6bf26964af9d7eed9e03e53415d37aa96045"
VITALIK_CHECKSUM = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"


class TestChainAndType:
    def test_blank_chain_defaults_to_ethereum(self):
        assert normalize_asset_chain(None) == "ethereum"
        assert normalize_asset_chain("  ") == "ethereum"

    def test_chain_is_case_insensitive(self):
        assert normalize_asset_chain(" Polygon ") == "polygon"

    def test_unknown_chain_rejected(self):
        with pytest.raises(ValidationError, match="chain must be either 'ethereum' or 'polygon'") as exc:
            normalize_asset_chain("arbitrum")
        assert exc.value.field == "chain"

    def test_asset_type_is_case_insensitive(self):
        assert normalize_asset_type("ERC1155") == "erc1155"

    def test_unknown_asset_type_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_asset_type("erc404")
        assert exc.value.field == "assetType"


class TestAddresses:
    def test_lowercase_address_is_checksummed(self):
        assert normalize_evm_address(VITALIK_LOWER, "ethAddress") == VITALIK_CHECKSUM

    def test_surrounding_whitespace_ignored(self):
        assert normalize_evm_address(f"  {VITALIK_LOWER} ", "ethAddress") == VITALIK_CHECKSUM

    @pytest.mark.parametrize("value", ["", "0x123", "d8da6bf26964af9d7eed9e03e53415d37aa96045", None])
    def test_malformed_address_names_field(self, value):
        with pytest.raises(ValidationError, match="Invalid contractAddress address"):
            normalize_evm_address(value, "contractAddress")


class TestTokenId:
    def test_leading_zeros_stripped(self):
        assert normalize_token_id("007") == "7"

    def test_blank_is_absent(self):
        assert normalize_token_id("   ") is None
        assert normalize_token_id(None) is None

    @pytest.mark.parametrize("value", ["-1", "1.5", "0x10", "abc"])
    def test_non_decimal_rejected(self, value):
        with pytest.raises(ValidationError, match="tokenId must be a non-negative integer"):
            normalize_token_id(value)

    def test_large_ids_keep_precision(self):
        big = "115792089237316195423570985008687907853269984665640564039457584007913129639935"
        assert normalize_token_id(big) == big


class TestNormalizeAssetInput:
    def test_nft_requires_token_id(self, contract_address):
        with pytest.raises(ValidationError, match="tokenId is required for ERC-721 and ERC-1155 assets"):
            normalize_asset_input(
                eth_address=VITALIK_LOWER,
                asset_type="erc721",
                contract_address=contract_address,
            )

    def test_erc20_token_id_optional(self, contract_address):
        asset = normalize_asset_input(
            eth_address=VITALIK_LOWER,
            asset_type="erc20",
            contract_address=contract_address,
        )
        assert asset.token_id is None
        assert asset.chain == "ethereum"

    def test_asset_key_format(self, contract_address):
        asset = normalize_asset_input(
            chain="polygon",
            eth_address=VITALIK_CHECKSUM,
            asset_type="erc1155",
            contract_address=contract_address,
            token_id="42",
        )
        assert asset.asset_key == f"eip155:137:erc1155:{contract_address.lower()}:42:{VITALIK_LOWER}"
        assert build_asset_key(asset) == asset.asset_key

    def test_erc20_asset_key_uses_wildcard(self, contract_address):
        asset = normalize_asset_input(
            eth_address=VITALIK_LOWER,
            asset_type="erc20",
            contract_address=contract_address,
        )
        assert asset.asset_key == f"eip155:1:erc20:{contract_address.lower()}:*:{VITALIK_LOWER}"

    def test_asset_id_is_truncated_sha256(self, contract_address):
        asset = normalize_asset_input(
            eth_address=VITALIK_LOWER,
            asset_type="erc721",
            contract_address=contract_address,
            token_id="1",
        )
        expected = hashlib.sha256(asset.asset_key.encode("utf-8")).hexdigest()[:32]
        assert asset.asset_id == expected
        assert len(asset.asset_id) == 32

    def test_equivalent_inputs_share_identity(self, contract_address):
        a = normalize_asset_input(
            chain="ETHEREUM",
            eth_address=VITALIK_LOWER,
            asset_type="ERC721",
            contract_address=contract_address.upper().replace("0X", "0x"),
            token_id="0010",
        )
        b = normalize_asset_input(
            chain=None,
            eth_address=f" {VITALIK_CHECKSUM} ",
            asset_type="erc721",
            contract_address=contract_address,
            token_id="10",
        )
        assert a == b
        assert a.asset_id == b.asset_id

    def test_chains_produce_distinct_ids(self, contract_address):
        kwargs = dict(eth_address=VITALIK_LOWER, asset_type="erc20", contract_address=contract_address)
        eth = normalize_asset_input(chain="ethereum", **kwargs)
        poly = normalize_asset_input(chain="polygon", **kwargs)
        assert eth.asset_id != poly.asset_id
