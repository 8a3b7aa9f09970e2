from schemas.analysis import (
    DocumentAnalysis,
    DocumentSummary,
    TrustAssessment,
    TrustAssessmentRequest,
)
from schemas.assessment import AssessmentCreate
from schemas.document import AnalyzeDocumentRequest, DocumentCreate, DocumentUpload
from schemas.loan_request import (
    ChainTransaction,
    FundingTransaction,
    LoanRequestCreate,
    LoanRequestUpdate,
    LoanStatus,
)
from schemas.user import CreditsAdd, ProfileUpdate, Role, UserProvision
from schemas.vault import VaultOperation
from schemas.wallet import HumanityScoreResult, HumanityScoreUpdate, VerifyScoreRequest, WalletCreate

__all__ = [
    "AnalyzeDocumentRequest",
    "AssessmentCreate",
    "ChainTransaction",
    "CreditsAdd",
    "DocumentAnalysis",
    "DocumentCreate",
    "DocumentSummary",
    "DocumentUpload",
    "FundingTransaction",
    "HumanityScoreResult",
    "HumanityScoreUpdate",
    "LoanRequestCreate",
    "LoanRequestUpdate",
    "LoanStatus",
    "ProfileUpdate",
    "Role",
    "TrustAssessment",
    "TrustAssessmentRequest",
    "UserProvision",
    "VaultOperation",
    "VerifyScoreRequest",
    "WalletCreate",
]
