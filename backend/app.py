from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from errors import CertProbeError
from pipeline import get_certificate_chain_with_fallback
from scanner import parse_target

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# -----------------------------
# App
# -----------------------------

app = FastAPI(
    title="Certificate Chain Inspector API",
    description="TLS certificate chain inspection with national cryptography (SM2/SM3) fallback.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Helpers
# -----------------------------

def _now_iso() -> str:
    """UTC timestamp in ISO-8601 format."""
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _parse_port(raw: Optional[str], default: int) -> Optional[int]:
    """Explicit query port if given, else the one parsed from the domain; None if out of range."""
    if raw is None or not raw.strip():
        port = default
    else:
        try:
            port = int(raw.strip())
        except ValueError:
            return None
    if not (1 <= port <= 65535):
        return None
    return port


# -----------------------------
# Routes
# -----------------------------

@app.get("/api/health")
def health():
    return {"status": "ok", "timestamp": _now_iso()}


@app.get("/api/certificate")
def certificate(
    domain: Optional[str] = Query(None, max_length=2048),
    port: Optional[str] = Query(None),
):
    if not domain or not domain.strip():
        return _error(400, "Please provide a domain parameter")

    host, parsed_port = parse_target(domain)
    if not host:
        return _error(400, "Invalid domain")

    resolved_port = _parse_port(port, parsed_port)
    if resolved_port is None:
        return _error(400, "Invalid port")

    try:
        result = get_certificate_chain_with_fallback(host, resolved_port)
    except CertProbeError as e:
        logger.error("certificate check failed for %s:%s: %s", host, resolved_port, e)
        return _error(500, str(e) or "Failed to retrieve certificate information")
    except Exception:  # noqa: BLE001
        logger.exception("certificate check failed for %s:%s", host, resolved_port)
        return _error(500, "Failed to retrieve certificate information")

    return {"success": True, "data": result.model_dump(by_alias=True)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
