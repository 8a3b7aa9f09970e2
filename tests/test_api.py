"""
Route tests through the FastAPI app. Each test gets a fresh in-memory database:
the app lifespan creates the tables and disposes the engine on exit.
Run from repository root: python -m pytest tests/test_api.py -v
"""
import unittest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from config import settings
from main import app
from schemas.analysis import DocumentAnalysis


def _headers(subject):
    return {"X-User-Id": subject}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self._client = TestClient(app)
        self.client = self._client.__enter__()

    def tearDown(self):
        self._client.__exit__(None, None, None)

    def provision(self, subject, display_name=None):
        resp = self.client.post(
            "/api/users",
            json={"subject": subject, "email": f"{subject}@example.com", "displayName": display_name or subject},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def add_document(self, subject, category, filename):
        resp = self.client.post(
            "/api/documents",
            headers=_headers(subject),
            json={"filename": filename, "category": category, "rawOutput": "{}"},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def published_loan_request(self, subject, amount=4100):
        created = self.client.post(
            "/api/loan-requests",
            headers=_headers(subject),
            json={"amount": amount, "duration": 6, "purpose": "Stock"},
        ).json()
        self.client.post(f"/api/loan-requests/{created['shortId']}/publish", headers=_headers(subject))
        return created


class TestUsersApi(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_authentication_required(self):
        resp = self.client.get("/api/users/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"detail": "Not authenticated"})
        self.assertEqual(self.client.get("/api/users/me", headers=_headers("nobody")).status_code, 404)

    def test_provision_is_idempotent(self):
        first = self.provision("alice", "Alice")
        second = self.provision("alice", "Someone Else")
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(second["displayName"], "Alice")
        self.assertEqual(first["credits"], 10)
        self.assertEqual(first["role"], "both")
        self.assertTrue(first["isBorrower"] and first["isLender"])
        self.assertTrue(first["allowAssessments"])

    def test_update_profile_and_credits(self):
        self.provision("alice")
        resp = self.client.patch(
            "/api/users/me",
            headers=_headers("alice"),
            json={"displayName": "Alice A.", "role": "lender", "allowAssessments": False},
        )
        body = resp.json()
        self.assertEqual(body["displayName"], "Alice A.")
        self.assertFalse(body["isBorrower"])
        self.assertFalse(body["allowAssessments"])

        resp = self.client.post("/api/users/me/credits", headers=_headers("alice"), json={"amount": 5})
        self.assertEqual(resp.json(), {"credits": 15})
        self.assertEqual(
            self.client.post("/api/users/me/credits", headers=_headers("alice"), json={"amount": 0}).status_code,
            422,
        )


class TestWalletsApi(ApiTestCase):
    def test_wallet_lifecycle(self):
        self.provision("alice")
        resp = self.client.post("/api/wallets", headers=_headers("alice"), json={"address": "0x01", "nickname": "Main"})
        self.assertEqual(resp.status_code, 201)
        wallet = resp.json()
        self.assertTrue(wallet["isPrimary"])

        dup = self.client.post("/api/wallets", headers=_headers("alice"), json={"address": "0x01", "nickname": "x"})
        self.assertEqual(dup.status_code, 409)
        self.assertEqual(dup.json(), {"detail": "Wallet already connected"})

        only = self.client.delete(f"/api/wallets/{wallet['id']}", headers=_headers("alice"))
        self.assertEqual(only.status_code, 400)
        self.assertEqual(only.json(), {"detail": "Cannot remove the only primary wallet"})

        self.assertEqual(self.client.get("/api/users/me", headers=_headers("alice")).json()["walletsCount"], 1)


class TestLoanRequestsApi(ApiTestCase):
    def test_marketplace_visibility(self):
        self.provision("borrower", "Bo")
        self.provision("lender", "Lena")
        created = self.client.post(
            "/api/loan-requests",
            headers=_headers("borrower"),
            json={"amount": 4100, "duration": 6, "purpose": "Stock"},
        )
        self.assertEqual(created.status_code, 201)
        lr = created.json()
        self.assertEqual(lr["status"], "draft")
        self.assertEqual(lr["amountEth"], 1.0)

        self.assertEqual(self.client.get("/api/loan-requests/marketplace", headers=_headers("lender")).json(), [])
        self.client.post(f"/api/loan-requests/{lr['shortId']}/publish", headers=_headers("borrower"))

        listing = self.client.get("/api/loan-requests/marketplace", headers=_headers("lender")).json()
        self.assertEqual([d["shortId"] for d in listing], [lr["shortId"]])
        self.assertEqual(listing[0]["borrower"]["displayName"], "Bo")
        self.assertEqual(self.client.get("/api/loan-requests/marketplace", headers=_headers("borrower")).json(), [])

        detail = self.client.get(f"/api/loan-requests/marketplace/{lr['shortId']}", headers=_headers("lender")).json()
        self.assertTrue(detail["canRequestAssessment"])

        own = self.client.get(f"/api/loan-requests/{lr['shortId']}", headers=_headers("lender"))
        self.assertEqual(own.status_code, 404)

    def test_update_and_validation(self):
        self.provision("borrower")
        lr = self.published_loan_request("borrower")
        resp = self.client.patch(
            f"/api/loan-requests/{lr['shortId']}",
            headers=_headers("borrower"),
            json={"status": "paused", "isPublished": False, "note": "Back next week"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "paused")
        self.assertEqual(resp.json()["note"], "Back next week")

        bad = self.client.patch(
            f"/api/loan-requests/{lr['shortId']}", headers=_headers("borrower"), json={"status": "archived"}
        )
        self.assertEqual(bad.status_code, 422)
        bad = self.client.post(
            "/api/loan-requests", headers=_headers("borrower"), json={"amount": -5, "duration": 6, "purpose": "x"}
        )
        self.assertEqual(bad.status_code, 422)

    def test_publish_onchain_without_rpc(self):
        self.provision("borrower")
        lr = self.published_loan_request("borrower")
        resp = self.client.post(
            f"/api/loan-requests/{lr['shortId']}/publish-onchain",
            headers=_headers("borrower"),
            json={"txHash": "0xabc"},
        )
        self.assertEqual(resp.status_code, 503)

    def test_chain_config(self):
        body = self.client.get("/api/loan-requests/chain-config").json()
        self.assertEqual(body["contractAddress"], settings.loan_contract_address)
        self.assertEqual(body["confirmations"], 2)


class TestAssessmentsApi(ApiTestCase):
    def test_request_approve_process(self):
        borrower = self.provision("borrower", "Bo")
        self.provision("lender", "Lena")
        self.add_document("borrower", "Bank Statement", "statement.jpg")
        self.add_document("borrower", "Income Proof", "payslip.jpg")

        resp = self.client.post("/api/assessments", headers=_headers("lender"), json={"borrowerId": borrower["userId"]})
        self.assertEqual(resp.status_code, 201, resp.text)
        assessment = resp.json()
        self.assertEqual(assessment["status"], "pending")
        self.assertEqual(self.client.get("/api/users/me/credits", headers=_headers("lender")).json(), {"credits": 9.5})

        incoming = self.client.get("/api/assessments/incoming", headers=_headers("borrower")).json()
        self.assertEqual(incoming[0]["lenderName"], "Lena")

        resp = self.client.post(f"/api/assessments/{assessment['id']}/approve", headers=_headers("borrower"))
        self.assertEqual(resp.json()["status"], "processing")

        resp = self.client.post(f"/api/assessments/{assessment['id']}/process", headers=_headers("lender"))
        body = resp.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["trustScore"], 76)
        self.assertEqual(body["riskFactors"], [])

        again = self.client.post(f"/api/assessments/{assessment['id']}/approve", headers=_headers("borrower"))
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json(), {"detail": "Assessment already processed"})

        outgoing = self.client.get("/api/assessments/outgoing", headers=_headers("lender")).json()
        self.assertEqual(outgoing[0]["borrowerName"], "Bo")
        self.assertEqual(outgoing[0]["trustScore"], 76)

    def test_error_statuses(self):
        borrower = self.provision("borrower")
        self.provision("lender")
        self.provision("outsider")

        with patch.object(settings, "assessment_fee", 50):
            resp = self.client.post(
                "/api/assessments", headers=_headers("lender"), json={"borrowerId": borrower["userId"]}
            )
        self.assertEqual(resp.status_code, 402)
        self.assertEqual(self.client.get("/api/users/me/credits", headers=_headers("lender")).json(), {"credits": 10})

        self.client.patch(
            "/api/users/me",
            headers=_headers("borrower"),
            json={"displayName": "Bo", "role": "borrower", "allowAssessments": False},
        )
        resp = self.client.post("/api/assessments", headers=_headers("lender"), json={"borrowerId": borrower["userId"]})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"detail": "Borrower does not allow assessments"})

        self.client.patch(
            "/api/users/me",
            headers=_headers("borrower"),
            json={"displayName": "Bo", "role": "borrower", "allowAssessments": True},
        )
        assessment = self.client.post(
            "/api/assessments", headers=_headers("lender"), json={"borrowerId": borrower["userId"]}
        ).json()
        resp = self.client.post(f"/api/assessments/{assessment['id']}/approve", headers=_headers("lender"))
        self.assertEqual(resp.status_code, 404)
        resp = self.client.get(f"/api/assessments/{assessment['id']}", headers=_headers("outsider"))
        self.assertEqual(resp.status_code, 404)
        resp = self.client.post(f"/api/assessments/{assessment['id']}/decline", headers=_headers("borrower"))
        self.assertEqual(resp.json()["status"], "declined")


class TestDocumentsApi(ApiTestCase):
    def test_upload_stores_analysis(self):
        self.provision("alice")
        analysis = DocumentAnalysis(
            category="Utilities",
            document_type="Electricity Bill",
            key_details=["Amount 1: 45"],
            summary="March bill",
            confidence=0.8,
            raw_output='{"category": "Utilities"}',
        )
        with patch("api.documents.analyze_document_image", AsyncMock(return_value=analysis)):
            resp = self.client.post(
                "/api/documents/upload",
                headers=_headers("alice"),
                json={"image": "aGVsbG8=", "filename": "bill.jpg", "vaultRef": "vault-1"},
            )
        self.assertEqual(resp.status_code, 201, resp.text)
        doc = resp.json()
        self.assertEqual(doc["category"], "Utilities")
        self.assertEqual(doc["keyDetails"], ["Amount 1: 45"])
        self.assertEqual(doc["rawOutput"], '{"category": "Utilities"}')
        self.assertNotIn("isDeleted", doc)

        deleted = self.client.delete(f"/api/documents/{doc['id']}", headers=_headers("alice"))
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get("/api/documents", headers=_headers("alice")).json(), [])

        history = self.client.get("/api/documents/history", headers=_headers("alice")).json()
        self.assertEqual({h["action"] for h in history}, {"Deleted bill.jpg", "Uploaded bill.jpg"})

    def test_upload_analysis_failure_returns_fallback(self):
        self.provision("alice")
        resp = self.client.post(
            "/api/documents/upload", headers=_headers("alice"), json={"image": "aGVsbG8=", "filename": "bill.jpg"}
        )
        self.assertEqual(resp.status_code, 502)
        body = resp.json()
        self.assertIn("error", body)
        self.assertEqual(body["fallback"]["category"], "Other")
        self.assertEqual(body["fallback"]["confidence"], 0.5)
        self.assertEqual(self.client.get("/api/documents", headers=_headers("alice")).json(), [])

    def test_loan_request_must_be_owned(self):
        self.provision("alice")
        self.provision("bob")
        lr = self.published_loan_request("bob")
        resp = self.client.post(
            "/api/documents",
            headers=_headers("alice"),
            json={"filename": "a.jpg", "category": "Other", "loanRequestId": lr["id"]},
        )
        self.assertEqual(resp.status_code, 404)


class TestAnalysisApi(ApiTestCase):
    def test_document_analysis_requires_image(self):
        self.assertEqual(self.client.post("/api/analysis/document", json={"filename": "a.jpg"}).status_code, 400)

    def test_document_analysis_upstream_failure(self):
        resp = self.client.post("/api/analysis/document", json={"image": "aGVsbG8=", "filename": "a.jpg"})
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["fallback"]["documentType"], "Financial Document")

    def test_trust_score_falls_back(self):
        resp = self.client.post(
            "/api/analysis/trust-score",
            json={
                "documentsData": [
                    {"filename": "a.jpg", "category": "Bank Statement", "documentType": "Statement", "keyDetails": [], "summary": "s", "rawOutput": "{}"},
                    {"filename": "b.jpg", "category": "Income Proof", "documentType": "Pay Stub", "keyDetails": [], "summary": "s", "rawOutput": "{}"},
                ],
                "loanAmount": 5000,
                "loanDuration": 12,
                "loanPurpose": "Personal loan",
            },
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["trustScore"], 76)

    def test_verify_score(self):
        result = {"verified": True, "score": "2.5", "isPassing": True, "rawData": {"score": "2.5"}}
        with patch("api.analysis.lookup_humanity_score", AsyncMock(return_value=result)):
            resp = self.client.post("/api/verify-score", json={"address": "0x01"})
        self.assertEqual(resp.json(), result)


class TestVaultApi(ApiTestCase):
    def test_keypair_and_vault_validation(self):
        self.provision("alice")
        self.assertEqual(self.client.get("/api/keypair", headers=_headers("alice")).status_code, 404)
        resp = self.client.post(
            "/api/vault", headers=_headers("alice"), json={"action": "retrieve", "documentId": "doc-1"}
        )
        self.assertEqual(resp.status_code, 404)

        created = self.client.post("/api/keypair", headers=_headers("alice")).json()
        self.assertTrue(created["did"].startswith("did:nil:"))
        self.assertNotIn("privateKey", created)
        self.assertEqual(self.client.get("/api/keypair", headers=_headers("alice")).json(), created)

        resp = self.client.post("/api/vault", headers=_headers("alice"), json={"action": "delete", "documentId": "d"})
        self.assertEqual(resp.status_code, 422)


if __name__ == "__main__":
    unittest.main()
