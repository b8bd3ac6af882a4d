"""
Resurrection proof messages and EIP-191 signer recovery.

The proof message is fully determined by the normalised asset and the
Solana recipient; it carries no nonce or expiry.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from graveshift.assets import ETH_SIGNATURE_PATTERN, WILDCARD_TOKEN, NormalizedAssetInput

logger = logging.getLogger(__name__)

PROOF_TITLE = "GraveShift Resurrection Proof"
PROOF_STATEMENT = "Action: I authorize this asset resurrection on Solana."

_SIGNATURE_RE = re.compile(ETH_SIGNATURE_PATTERN)


@dataclass
class ProofCheck:
    valid: bool
    recovered_address: Optional[str] = None


def build_resurrection_proof_message(asset: NormalizedAssetInput, solana_account: str) -> str:
    token_segment = asset.token_id if asset.token_id is not None else WILDCARD_TOKEN
    return "\n".join([
        PROOF_TITLE,
        f"EVM Owner: {asset.eth_address}",
        f"Solana Recipient: {solana_account}",
        f"Network: {asset.chain_info.display_name}",
        f"Asset Type: {asset.asset_type}",
        f"Contract: {asset.contract_address}",
        f"Token Id: {token_segment}",
        PROOF_STATEMENT,
    ])


def is_signature_format(signature: Optional[str]) -> bool:
    return isinstance(signature, str) and bool(_SIGNATURE_RE.match(signature))


def recover_proof_signer(message: str, signature: str) -> Optional[str]:
    """Address that personal_sign'ed message, or None if the signature is unusable."""
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        logger.info(f"Signature recovery failed: {e}")
        return None


def check_proof_signature(asset: NormalizedAssetInput, solana_account: str, signature: str) -> ProofCheck:
    message = build_resurrection_proof_message(asset, solana_account)
    recovered = recover_proof_signer(message, signature)
    valid = recovered is not None and recovered.lower() == asset.eth_address.lower()
    return ProofCheck(valid=valid, recovered_address=recovered)
