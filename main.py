import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import close_db, init_db
from logging_config import configure_logging
from api.analysis import router as analysis_router
from api.assessments import router as assessments_router
from api.documents import router as documents_router
from api.loan_requests import router as loan_requests_router
from api.users import router as users_router
from api.vault import router as vault_router
from api.wallets import router as wallets_router
from services.errors import TrustLendError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    yield
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Micro-lending API: borrower documents, loan requests and paid AI trust assessments",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TrustLendError)
async def trustlend_error_handler(request: Request, exc: TrustLendError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed upstream: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(users_router)
app.include_router(wallets_router)
app.include_router(loan_requests_router)
app.include_router(documents_router)
app.include_router(assessments_router)
app.include_router(analysis_router)
app.include_router(vault_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
