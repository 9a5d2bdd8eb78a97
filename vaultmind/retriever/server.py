"""
VaultMind Server

FastAPI server exposing the query engine to the desktop UI.

Endpoints:
- GET /health: Health check
- POST /query: Answer a question from a vault
- GET /mode: Current provider mode
- POST /mode: Switch provider mode
- GET /status: Provider mode and local model load state
"""

import argparse
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..common.config import LOGS_DIR, ensure_directories, load_config
from ..common.errors import ConfigurationError, ProviderError
from .engine import ProviderMode, QueryEngine

logger = logging.getLogger("vaultmind.server")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Global state
engine: Optional[QueryEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the engine on startup"""
    global engine

    if engine is None:
        ensure_directories()
        config = load_config()
        engine = QueryEngine.from_config(config)
        logger.info("Query engine ready (mode: %s)", engine.get_mode().value)

    yield


app = FastAPI(
    title="VaultMind",
    description="Cited answers from your notes",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Request Models
# =============================================================================

class Turn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class QueryRequest(BaseModel):
    vault_path: str
    query: str = Field(min_length=1)
    max_context_documents: int = Field(default=5, ge=1, le=50)
    history: List[Turn] = Field(default_factory=list)


class ModeRequest(BaseModel):
    mode: ProviderMode


def _require_engine() -> QueryEngine:
    if not engine:
        raise HTTPException(status_code=503, detail="Query engine not initialized")
    return engine


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "vaultmind",
        "engine_ready": engine is not None,
    }


@app.post("/query")
async def query(request: QueryRequest):
    """Answer a question from the notes in a vault"""
    current = _require_engine()

    try:
        result = await current.query(
            request.vault_path,
            request.query,
            max_context_documents=request.max_context_documents,
            history=[(t.role, t.content) for t in request.history],
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return result.to_dict()


@app.get("/mode")
async def get_mode():
    current = _require_engine()
    return {"mode": current.get_mode().value}


@app.post("/mode")
async def set_mode(request: ModeRequest):
    current = _require_engine()
    return {"mode": current.set_mode(request.mode).value}


@app.get("/status")
async def status():
    """Provider mode and local model load progress"""
    current = _require_engine()
    state = current.load_state()
    return {
        "mode": current.get_mode().value,
        "model_state": state.status.value,
        "is_loading": current.is_loading(),
        "progress": current.load_progress(),
        "reason": state.reason,
    }


# =============================================================================
# CLI Entry Point
# =============================================================================

def add_file_logging(path: Path) -> logging.Handler:
    """Also write vaultmind.* records to a log file"""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger("vaultmind").addHandler(handler)
    return handler


def run_server():
    """Run the VaultMind server"""
    import uvicorn

    load_dotenv()
    config = load_config()

    parser = argparse.ArgumentParser(description="Run the VaultMind query server.")
    parser.add_argument("--host", default=config.server.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=config.server.port, help="Port to listen on")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument("--log-file", default=str(LOGS_DIR / "server.log"), help="Log file path")
    args = parser.parse_args()

    ensure_directories()
    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)
    add_file_logging(Path(args.log_file))

    logger.info("Starting server on %s:%d", args.host, args.port)
    uvicorn.run(
        "vaultmind.retriever.server:app",
        host=args.host,
        port=args.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
