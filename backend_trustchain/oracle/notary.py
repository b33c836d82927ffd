"""
Notary: persist VERIFIED / SYBIL integrity decisions to the TrustChain notary program.

- Builds the Anchor update_integrity instruction (discriminator + u16 gini + u16 hhi + u8 status).
- Notary account PDA seeds: [b"notary", target_wallet].
- Signs with NOTARY_SECRET (JSON byte array or base58) and sends via solana-py AsyncClient.
- dry_run logs the instruction and returns a placeholder signature.

notarize_decision() is the only entry point the pipeline uses; it never raises.
"""

from __future__ import annotations

import hashlib
import json
import struct
from dataclasses import dataclass
from typing import Any, Protocol

from backend_trustchain.analytics.models import IntegrityDecision, IntegrityStatus, ScoreVector
from backend_trustchain.core.exceptions import NotaryError
from backend_trustchain.trustchain_logging import get_logger, short_wallet

logger = get_logger(__name__)

# Anchor: instruction discriminator = first 8 bytes of sha256("global:instruction_name")
UPDATE_INTEGRITY_DISCRIMINATOR = hashlib.sha256(b"global:update_integrity").digest()[:8]
NOTARY_PDA_SEED = b"notary"
SYS_PROGRAM_ID_STR = "11111111111111111111111111111111"
DRY_RUN_SIGNATURE_PLACEHOLDER = "dry_run"

NOTARIZED_STATUSES = (IntegrityStatus.VERIFIED, IntegrityStatus.SYBIL)


class Notary(Protocol):
    async def notarize(self, address: str, status: IntegrityStatus, gini: float, hhi: float) -> str:
        """Persist the decision; return the transaction signature."""
        ...


def load_keypair(secret: str) -> Any:
    """Load Keypair from NOTARY_SECRET: JSON array of 64 bytes or base58 string."""
    from solders.keypair import Keypair

    raw = (secret or "").strip()
    if not raw:
        raise NotaryError("NOTARY_SECRET is not configured")
    if raw.startswith("["):
        try:
            arr = json.loads(raw)
            if len(arr) >= 64:
                return Keypair.from_bytes(bytes(arr[:64]))
        except (json.JSONDecodeError, TypeError, ValueError):
            pass
    try:
        import base58

        return Keypair.from_bytes(base58.b58decode(raw))
    except Exception as e:
        logger.warning("notary_keypair_load_failed", error=str(e))
        raise NotaryError("Invalid NOTARY_SECRET") from e


def get_notary_pda(program_id: Any, wallet_pubkey: Any) -> Any:
    """Derive the per-wallet notary account. Seeds: [b'notary', wallet]."""
    from solders.pubkey import Pubkey

    pda, _ = Pubkey.find_program_address([NOTARY_PDA_SEED, bytes(wallet_pubkey)], program_id)
    return pda


def encode_update_integrity_data(scores: ScoreVector, status: IntegrityStatus) -> bytes:
    """Instruction data: 8-byte discriminator, gini u16 LE, hhi u16 LE, status u8."""
    return UPDATE_INTEGRITY_DISCRIMINATOR + struct.pack("<HHB", scores.gini_u16, scores.hhi_u16, status.on_chain_code)


def build_update_integrity_instruction(
    program_id: Any,
    notary_pubkey: Any,
    wallet_pubkey: Any,
    scores: ScoreVector,
    status: IntegrityStatus,
) -> tuple[Any, Any]:
    """Return (Instruction, notary_account_pubkey)."""
    from solders.instruction import AccountMeta, Instruction
    from solders.pubkey import Pubkey

    notary_account = get_notary_pda(program_id, wallet_pubkey)
    accounts = [
        AccountMeta(pubkey=notary_account, is_signer=False, is_writable=True),
        AccountMeta(pubkey=notary_pubkey, is_signer=True, is_writable=True),
        AccountMeta(pubkey=wallet_pubkey, is_signer=False, is_writable=False),
        AccountMeta(pubkey=Pubkey.from_string(SYS_PROGRAM_ID_STR), is_signer=False, is_writable=False),
    ]
    ix = Instruction(program_id=program_id, data=encode_update_integrity_data(scores, status), accounts=accounts)
    return ix, notary_account


@dataclass
class NotaryConfig:
    rpc_url: str
    program_id: str
    notary_secret: str = ""
    dry_run: bool = False


class SolanaNotary:
    """Notary backed by the on-chain TrustChain notary program."""

    def __init__(self, config: NotaryConfig) -> None:
        from solders.pubkey import Pubkey

        self._config = config
        self._program_id = Pubkey.from_string(config.program_id)
        self._keypair: Any = None
        if not config.dry_run:
            self._keypair = load_keypair(config.notary_secret)
        self._client: Any = None

    @property
    def notary_pubkey(self) -> str | None:
        return str(self._keypair.pubkey()) if self._keypair is not None else None

    def _client_ensure(self) -> Any:
        if self._client is None:
            from solana.rpc.async_api import AsyncClient
            from solana.rpc.commitment import Confirmed

            self._client = AsyncClient(self._config.rpc_url, commitment=Confirmed)
        return self._client

    async def notarize(self, address: str, status: IntegrityStatus, gini: float, hhi: float) -> str:
        from solders.message import Message
        from solders.pubkey import Pubkey
        from solders.transaction import Transaction

        scores = ScoreVector(gini=gini, hhi=hhi)
        wallet_pubkey = Pubkey.from_string(address)

        if self._config.dry_run:
            logger.info(
                "notary_dry_run",
                wallet_id=short_wallet(address),
                status=status.value,
                gini_u16=scores.gini_u16,
                hhi_u16=scores.hhi_u16,
                notary_account=str(get_notary_pda(self._program_id, wallet_pubkey)),
            )
            return DRY_RUN_SIGNATURE_PLACEHOLDER

        notary_pubkey = self._keypair.pubkey()
        ix, notary_account = build_update_integrity_instruction(
            self._program_id, notary_pubkey, wallet_pubkey, scores, status
        )
        client = self._client_ensure()
        resp = await client.get_latest_blockhash()
        blockhash = getattr(getattr(resp, "value", None), "blockhash", None)
        if blockhash is None:
            raise NotaryError("No recent blockhash")
        message = Message.new_with_blockhash([ix], notary_pubkey, blockhash)
        tx = Transaction([self._keypair], message, blockhash)
        result = await client.send_transaction(tx)
        sig_val = getattr(result, "value", None)
        if sig_val is None:
            raise NotaryError(f"send_transaction returned no signature: {result!r}"[:200])
        signature = str(sig_val)
        logger.info(
            "notary_tx_sent",
            signature=signature,
            wallet_id=short_wallet(address),
            status=status.value,
            notary_account=str(notary_account),
        )
        return signature

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


@dataclass(frozen=True)
class NotarizationOutcome:
    """What happened to the side effect; never surfaced as an exception."""

    attempted: bool
    signature: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.signature is not None


async def notarize_decision(notary: Notary | None, address: str, decision: IntegrityDecision) -> NotarizationOutcome:
    """
    Notarize VERIFIED and SYBIL decisions. Failures are logged and returned, not raised:
    the decision response must not depend on the ledger write.
    """
    if decision.status == IntegrityStatus.SYBIL:
        logger.error("security_event_sybil_detected", wallet_id=short_wallet(address), reason=decision.reason)
    if notary is None:
        logger.debug("notary_skipped", wallet_id=short_wallet(address), reason="not_configured")
        return NotarizationOutcome(attempted=False)
    if decision.status not in NOTARIZED_STATUSES:
        logger.debug("notary_skipped", wallet_id=short_wallet(address), reason="status", status=decision.status.value)
        return NotarizationOutcome(attempted=False)

    sv = decision.score_vector
    try:
        signature = await notary.notarize(address, decision.status, sv.gini, sv.hhi)
    except Exception as e:
        logger.warning("notary_failed", wallet_id=short_wallet(address), error=str(e) or type(e).__name__)
        return NotarizationOutcome(attempted=True, error=str(e) or type(e).__name__)
    return NotarizationOutcome(attempted=True, signature=signature)
