"""
Seed a demo borrower (wallet, published loan request, two analysed documents) and a demo lender.
Run: python -m scripts.seed_demo (from the repository root).
"""
import asyncio
import os
import sys

# Add parent so we can import from the repository root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import AsyncSessionLocal, close_db, init_db
from models import Document, LoanRequest, User
from services import documents, loan_requests, profiles, wallets

BORROWER = {
    "subject": "demo-borrower",
    "email": "borrower@example.com",
    "display_name": "Demo Borrower",
}
LENDER = {
    "subject": "demo-lender",
    "email": "lender@example.com",
    "display_name": "Demo Lender",
}

DOCUMENTS_DATA = [
    {
        "filename": "bank_statement_march.jpg",
        "category": "Bank Statement",
        "document_type": "Monthly Bank Statement",
        "key_details": ["Amount 1: 4200", "Date 1: 2024-03-31", "Bank 1: First Community Bank"],
        "summary": "March statement showing regular salary deposits",
        "confidence": 0.9,
    },
    {
        "filename": "payslip_march.jpg",
        "category": "Income Proof",
        "document_type": "Pay Stub",
        "key_details": ["Amount 1: 4200", "Date 1: 2024-03-28", "Merchant 1: Acme Logistics"],
        "summary": "Monthly pay stub from current employer",
        "confidence": 0.85,
    },
]


async def _seed_borrower(session: AsyncSession) -> User:
    borrower = await profiles.provision_user(session, **BORROWER)
    if not await wallets.list_wallets(session, borrower):
        await wallets.add_wallet(session, borrower, "0x1111111111111111111111111111111111111111", "Main")

    existing_loan = await session.scalar(select(LoanRequest.id).where(LoanRequest.user_id == borrower.id))
    if not existing_loan:
        lr = await loan_requests.create_loan_request(
            session, borrower, amount=2500, duration=6, purpose="Inventory for market stall"
        )
        await loan_requests.publish_loan_request(session, borrower, lr.short_id)
        print(f"  Loan request {lr.short_id} published")

    existing_docs = await session.scalar(select(Document.id).where(Document.user_id == borrower.id))
    if not existing_docs:
        for data in DOCUMENTS_DATA:
            await documents.create_document(session, borrower, raw_output="{}", **data)
        print(f"  {len(DOCUMENTS_DATA)} documents stored")
    return borrower


async def seed():
    await init_db()
    async with AsyncSessionLocal() as session:
        borrower = await _seed_borrower(session)
        lender = await profiles.provision_user(session, **LENDER)
        await session.commit()
        print(f"Borrower: {borrower.subject} ({borrower.id})")
        print(f"Lender:   {lender.subject} ({lender.id})")
    await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
