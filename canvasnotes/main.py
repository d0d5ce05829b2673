import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from canvasnotes.core.config import settings
from canvasnotes.core.database import create_db_and_tables
from canvasnotes.api.graphql import graphql_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_db_and_tables()
    if not settings.AUTH_CONFIGURED:
        logger.warning("SUPABASE_JWT_SECRET is not set; authenticated requests will fail")
    logger.info(f"{settings.APP_NAME} ready (undo policy: {settings.UNDO_POLICY})")

    yield
    # Shutdown


app = FastAPI(
    title=settings.APP_NAME,
    description="Canvas note-taking backend: canvases, blocks and connections over GraphQL",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GraphQL endpoint
app.include_router(graphql_router, prefix="/graphql")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "app": settings.APP_NAME}


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} is running", "graphql": "/graphql"}
