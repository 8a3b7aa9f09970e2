"""
Tests for keypair generation and the vault passthrough.
Run from repository root: python -m pytest tests/test_vault.py -v
"""
import json
import unittest
from unittest.mock import patch

import httpx
import respx

from config import settings
from helpers import DatabaseTestCase
from services import vault
from services.errors import NotFound, UpstreamAnalysisFailure, UpstreamNotConfigured

DOCUMENTS_PATH = f"/collections/{settings.vault_collection_id}/documents"
DOCUMENTS_URL = f"https://vault.test{DOCUMENTS_PATH}"


class TestKeypairGeneration(unittest.TestCase):
    def test_compressed_public_key(self):
        private_hex, public_hex = vault.generate_keypair()
        self.assertEqual(len(private_hex), 64)
        self.assertEqual(len(public_hex), 66)
        self.assertIn(public_hex[:2], ("02", "03"))

    def test_keys_are_random(self):
        self.assertNotEqual(vault.generate_keypair(), vault.generate_keypair())


class TestVault(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user = await self.make_user("vault-user")

    async def test_keypair_is_created_once(self):
        first = await vault.get_or_create_keypair(self.session, self.user)
        second = await vault.get_or_create_keypair(self.session, self.user)
        self.assertEqual(first.id, second.id)
        self.assertEqual(first.did, f"did:nil:{first.public_key}")

    async def test_response_never_contains_private_key(self):
        kp = await vault.get_or_create_keypair(self.session, self.user)
        body = vault.keypair_to_response(kp)
        self.assertNotIn("privateKey", body)
        self.assertNotIn(kp.private_key, json.dumps(body))

    async def test_operations_require_keypair(self):
        with self.assertRaises(NotFound):
            await vault.vault_operation(self.session, self.user, "retrieve", "doc-1")

    async def test_store(self):
        kp = await vault.get_or_create_keypair(self.session, self.user)
        with respx.mock() as router:
            route = router.post(DOCUMENTS_URL).mock(return_value=httpx.Response(201, json={"stored": "doc-1"}))
            result = await vault.vault_operation(
                self.session, self.user, "store", "doc-1", raw_output='{"a": 1}', base64_image="aGVsbG8="
            )
        sent = json.loads(route.calls.last.request.content)
        self.assertEqual(sent, {"_id": "doc-1", "owner": kp.did, "rawOutput": '{"a": 1}', "base64Image": "aGVsbG8="})
        self.assertTrue(result["success"])
        self.assertEqual(result["result"], {"stored": "doc-1"})

    async def test_retrieve(self):
        kp = await vault.get_or_create_keypair(self.session, self.user)
        with respx.mock() as router:
            route = router.get(host="vault.test", path=f"{DOCUMENTS_PATH}/doc-1").mock(
                return_value=httpx.Response(200, json={"rawOutput": "{}", "base64Image": ""})
            )
            result = await vault.vault_operation(self.session, self.user, "retrieve", "doc-1")
        self.assertEqual(route.calls.last.request.url.params["owner"], kp.did)
        self.assertEqual(result["data"], {"rawOutput": "{}", "base64Image": ""})

    async def test_upstream_errors(self):
        await vault.get_or_create_keypair(self.session, self.user)
        with respx.mock() as router:
            router.get(host="vault.test", path=f"{DOCUMENTS_PATH}/missing").mock(return_value=httpx.Response(404))
            router.get(host="vault.test", path=f"{DOCUMENTS_PATH}/broken").mock(return_value=httpx.Response(500))
            with self.assertRaises(NotFound):
                await vault.vault_operation(self.session, self.user, "retrieve", "missing")
            with self.assertRaises(UpstreamAnalysisFailure):
                await vault.vault_operation(self.session, self.user, "retrieve", "broken")

    async def test_not_configured(self):
        await vault.get_or_create_keypair(self.session, self.user)
        with patch.object(settings, "vault_base_url", None):
            with self.assertRaises(UpstreamNotConfigured):
                await vault.vault_operation(self.session, self.user, "retrieve", "doc-1")


if __name__ == "__main__":
    unittest.main()
