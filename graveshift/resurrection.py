"""
Resurrection pipeline.

Strictly sequential: parse -> ownership -> signature -> record check -> build.
The record-existence check only runs after the signature has been accepted,
and no transaction is produced for an already-migrated asset. Each failed
step ends the request with a ResurrectionOutcome carrying the typed error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from solders.pubkey import Pubkey

from graveshift.actions import FieldValue, extract_optional_field, extract_required_field
from graveshift.assets import NormalizedAssetInput, normalize_asset_input
from graveshift.errors import (
    Conflict,
    GraveshiftError,
    SignatureMismatch,
    SourceUnavailable,
    ValidationError,
    VerificationFailed,
)
from graveshift.logging_config import CorrelationContext, get_correlation_id
from graveshift.migration import MigrationTransactionBuilder
from graveshift.ownership import OwnershipVerifier
from graveshift.proof import check_proof_signature, is_signature_format

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResurrectionRequest:
    account: Pubkey
    asset: NormalizedAssetInput
    signature: str

    @classmethod
    def parse(cls, account: Optional[str], data: Mapping[str, FieldValue]) -> "ResurrectionRequest":
        """Validate an action POST body into typed values.

        Raises:
            ValidationError: naming the offending field.
        """
        try:
            pubkey = Pubkey.from_string((account or "").strip())
        except ValueError as e:
            raise ValidationError('Invalid "account" provided', field="account") from e

        eth_address = extract_required_field(data, "ethAddress")
        chain = extract_optional_field(data, "chain")
        asset_type = extract_required_field(data, "assetType")
        contract_address = extract_required_field(data, "contractAddress")
        token_id = extract_optional_field(data, "tokenId")
        signature = extract_required_field(data, "ethSignature")

        if not is_signature_format(signature):
            raise ValidationError("Invalid EVM signature format", field="ethSignature")

        asset = normalize_asset_input(
            chain=chain,
            eth_address=eth_address,
            asset_type=asset_type,
            contract_address=contract_address,
            token_id=token_id,
        )
        return cls(account=pubkey, asset=asset, signature=signature)


@dataclass
class ResurrectionOutcome:
    ok: bool
    transaction: Optional[str] = None
    message: Optional[str] = None
    error: Optional[GraveshiftError] = None
    asset_id: Optional[str] = None
    asset_key: Optional[str] = None

    @classmethod
    def failure(cls, error: GraveshiftError, **kwargs) -> "ResurrectionOutcome":
        return cls(ok=False, error=error, **kwargs)

    def to_action_response(self) -> Dict[str, Any]:
        return {"type": "transaction", "transaction": self.transaction, "message": self.message}


class ResurrectionService:
    def __init__(self, verifier: OwnershipVerifier, builder: MigrationTransactionBuilder):
        self._verifier = verifier
        self._builder = builder

    async def prepare(self, account: Optional[str], data: Mapping[str, FieldValue]) -> ResurrectionOutcome:
        try:
            request = ResurrectionRequest.parse(account, data)
        except ValidationError as e:
            logger.info(f"Rejected resurrection request: {e.message}")
            return ResurrectionOutcome.failure(e)

        with CorrelationContext(get_correlation_id(), asset_id=request.asset.asset_id):
            return await self._run(request)

    async def _run(self, request: ResurrectionRequest) -> ResurrectionOutcome:
        asset = request.asset
        identity = {"asset_id": asset.asset_id, "asset_key": asset.asset_key}

        ownership = await self._verifier.verify(asset)
        if not ownership.verified:
            return ResurrectionOutcome.failure(
                VerificationFailed(ownership.reason or "Ownership verification failed"), **identity
            )

        proof = check_proof_signature(asset, str(request.account), request.signature)
        if not proof.valid:
            logger.warning(
                f"Signature mismatch for {asset.asset_key}: recovered {proof.recovered_address}"
            )
            return ResurrectionOutcome.failure(
                SignatureMismatch("EVM signature does not match provided owner address"), **identity
            )

        try:
            built = await self._builder.build(request.account, ownership.asset_id, ownership.asset_key)
        except (Conflict, SourceUnavailable) as e:
            return ResurrectionOutcome.failure(e, **identity)

        return ResurrectionOutcome(
            ok=True,
            transaction=built.to_base64(),
            message=(
                f"Resurrection ready. Asset ID {ownership.asset_id} "
                f"({asset.chain_info.display_name}) will be written on Solana."
            ),
            **identity,
        )
