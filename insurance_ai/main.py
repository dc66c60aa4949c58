"""
FastAPI application entry point.
Insurance policy assistant: policy Q&A, recommendations and document uploads.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insurance_ai import __version__
from insurance_ai.config import get_settings
from insurance_ai.api.routes import router
from insurance_ai.core.mongodb_client import get_mongodb_client, close_mongodb_client


# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Insurance AI API...")
    settings = get_settings()
    logger.info(f"API Version: {__version__}")
    logger.info(f"Documents served to the model from {settings.public_base_url}")

    try:
        client = get_mongodb_client(settings)
        client.admin.command('ping')
        logger.info("MongoDB connection established")
    except Exception as e:
        logger.warning(f"MongoDB connection failed: {e}")
        logger.warning("API will start but database operations will fail")

    yield

    # Shutdown
    logger.info("Shutting down Insurance AI API...")
    close_mongodb_client()
    logger.info("Cleanup complete")


app = FastAPI(
    title="Insurance AI API",
    description="""
    AI insurance policy assistant

    - **Policy chat**: streamed answers grounded in the policy document, with escalation to the insurer by email
    - **Recommendations**: three personalized policy recommendations per customer
    - **Uploads**: structured extraction of uploaded policy PDFs

    Powered by **Fireworks AI** tool calling and **MongoDB** (records + GridFS documents).
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-PolicyId"],
)

app.include_router(router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Insurance AI API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "insurance_ai.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
