from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

from database import engine, Base
from errors import StageDeckError
from providers import build_providers
from routers.public import router as public_router
from routers.events import router as events_router
from routers.registrations import router as registrations_router
from routers.payments import router as payments_router
from routers.feedback import router as feedback_router
from routers.chat import router as chat_router

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(title=os.environ.get('APP_NAME', 'StageDeck API'), version="1.0.0")
api_router = APIRouter(prefix="/api")

app.state.providers = build_providers()


@app.exception_handler(StageDeckError)
async def stagedeck_error_handler(request: Request, exc: StageDeckError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


api_router.include_router(public_router)
api_router.include_router(events_router)
api_router.include_router(registrations_router)
api_router.include_router(payments_router)
api_router.include_router(feedback_router)
api_router.include_router(chat_router)

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)
