"""
Per-user keypairs and the encrypted-vault passthrough.

Each user owns one secp256k1 keypair whose compressed public key forms their
vault DID. Documents are stored and read through the vault gateway's HTTP API,
owned by that DID.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

import httpx
from eth_account import Account
from eth_keys import keys
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from models import Keypair, User
from services.errors import NotFound, UpstreamAnalysisFailure, UpstreamNotConfigured

logger = logging.getLogger(__name__)

DID_PREFIX = "did:nil:"


def generate_keypair() -> tuple[str, str]:
    """Returns (private_key_hex, compressed_public_key_hex)."""
    acct = Account.create()
    private_key = keys.PrivateKey(bytes(acct.key))
    return private_key.to_hex()[2:], private_key.public_key.to_compressed_bytes().hex()


def keypair_to_response(kp: Keypair) -> dict[str, Any]:
    return {"publicKey": kp.public_key, "did": kp.did, "userId": kp.user_id}


async def get_keypair(session: AsyncSession, user: User) -> Optional[Keypair]:
    result = await session.execute(select(Keypair).where(Keypair.user_id == user.id))
    return result.scalar_one_or_none()


async def get_or_create_keypair(session: AsyncSession, user: User) -> Keypair:
    kp = await get_keypair(session, user)
    if kp:
        return kp
    private_hex, public_hex = generate_keypair()
    kp = Keypair(
        id=f"key-{uuid.uuid4().hex[:12]}",
        user_id=user.id,
        public_key=public_hex,
        private_key=private_hex,
        did=f"{DID_PREFIX}{public_hex}",
    )
    session.add(kp)
    await session.flush()
    logger.info("Generated keypair for %s", user.id)
    return kp


def _collection_url(*parts: str) -> str:
    if not settings.vault_base_url:
        raise UpstreamNotConfigured("VAULT_BASE_URL is not configured")
    base = settings.vault_base_url.rstrip("/")
    return "/".join([f"{base}/collections/{settings.vault_collection_id}/documents", *parts])


def _headers() -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.vault_api_key:
        headers["Authorization"] = f"Bearer {settings.vault_api_key}"
    return headers


def _raise_for_vault(resp: httpx.Response, action: str) -> Any:
    if resp.status_code == 404:
        raise NotFound("Document not found in vault")
    if resp.status_code >= 400:
        logger.warning("Vault %s failed with %s", action, resp.status_code)
        raise UpstreamAnalysisFailure(f"Vault {action} failed: {resp.status_code}")
    try:
        return resp.json()
    except ValueError as e:
        raise UpstreamAnalysisFailure(f"Vault {action} returned invalid JSON") from e


async def store_document(
    keypair: Keypair,
    document_id: str,
    raw_output: Optional[str],
    base64_image: Optional[str],
) -> dict[str, Any]:
    url = _collection_url()
    payload = {
        "_id": document_id,
        "owner": keypair.did,
        "rawOutput": raw_output or "",
        "base64Image": base64_image or "",
    }
    async with httpx.AsyncClient(timeout=60.0) as client:
        try:
            resp = await client.post(url, json=payload, headers=_headers())
        except httpx.HTTPError as e:
            raise UpstreamAnalysisFailure(f"Vault unreachable: {e}") from e
    result = _raise_for_vault(resp, "store")
    return {"success": True, "result": result, "message": f"Stored document {document_id}"}


async def retrieve_document(keypair: Keypair, document_id: str) -> dict[str, Any]:
    url = _collection_url(document_id)
    async with httpx.AsyncClient(timeout=60.0) as client:
        try:
            resp = await client.get(url, params={"owner": keypair.did}, headers=_headers())
        except httpx.HTTPError as e:
            raise UpstreamAnalysisFailure(f"Vault unreachable: {e}") from e
    data = _raise_for_vault(resp, "retrieve")
    return {"success": True, "data": data, "message": f"Retrieved document {document_id}"}


async def vault_operation(
    session: AsyncSession,
    user: User,
    action: str,
    document_id: str,
    raw_output: Optional[str] = None,
    base64_image: Optional[str] = None,
) -> dict[str, Any]:
    keypair = await get_keypair(session, user)
    if not keypair:
        raise NotFound("Keypair not found; create one first")
    if action == "store":
        return await store_document(keypair, document_id, raw_output, base64_image)
    return await retrieve_document(keypair, document_id)
