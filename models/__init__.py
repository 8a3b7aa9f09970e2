from models.assessment import AssessmentRequest
from models.document import Document, UploadHistory
from models.keypair import Keypair
from models.loan_request import LoanRequest
from models.user import Profile, User
from models.wallet import Wallet

__all__ = [
    "AssessmentRequest",
    "Document",
    "Keypair",
    "LoanRequest",
    "Profile",
    "UploadHistory",
    "User",
    "Wallet",
]
