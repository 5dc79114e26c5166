"""
FastAPI backend for the Treatment Oracle.

Simulations run as background jobs that callers poll; consensus sessions
are driven step by step over REST.
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.routes import consensus, health, simulation
from api.state import shutdown_engine
from treatment_oracle.errors import OracleError
from treatment_oracle.utils.logging import setup_logging

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    setup_logging()
    logger.info("Treatment Oracle API starting...")
    yield
    shutdown_engine()
    logger.info("API shutting down...")


app = FastAPI(
    title="Treatment Oracle API",
    description="Monte Carlo treatment simulation with sensitivity analysis and consensus building",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:3001",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(OracleError)
async def oracle_error_handler(request: Request, exc: OracleError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(simulation.router, prefix="/api", tags=["Simulation"])
app.include_router(consensus.router, prefix="/api", tags=["Consensus"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
