from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user
from config import settings
from database import get_db
from models import User
from schemas.assessment import AssessmentCreate
from services import assessments
from services.assessments import assessment_to_response

router = APIRouter(prefix="/api/assessments", tags=["assessments"])


@router.post("", status_code=201)
async def request_assessment(
    body: AssessmentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await assessments.create_assessment_request(db, user, body.borrower_id, body.loan_request_id)
    return assessment_to_response(row)


@router.get("/incoming")
async def list_incoming(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Requests made against the caller's documents."""
    return await assessments.list_borrower_assessments(db, user)


@router.get("/outgoing")
async def list_outgoing(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Requests the caller made as a lender."""
    return await assessments.list_lender_assessments(db, user)


@router.get("/{assessment_id}")
async def get_assessment(
    assessment_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await assessments.get_assessment(db, user, assessment_id)


@router.post("/{assessment_id}/approve")
async def approve_assessment(
    assessment_id: str,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await assessments.approve_assessment(db, user, assessment_id)
    if settings.assessment_auto_process:
        # The background session must see the processing status
        await db.commit()
        background_tasks.add_task(assessments.process_assessment_in_background, row.id, user.id)
    return assessment_to_response(row)


@router.post("/{assessment_id}/decline")
async def decline_assessment(
    assessment_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return assessment_to_response(await assessments.decline_assessment(db, user, assessment_id))


@router.post("/{assessment_id}/process")
async def process_assessment(
    assessment_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return assessment_to_response(await assessments.process_assessment(db, user, assessment_id))
