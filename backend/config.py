# backend/config.py
from __future__ import annotations

import os
from typing import List

# External toolkit (OpenSSL or Tongsuo for NTLS support), looked up on PATH by default
OPENSSL_CMD = os.environ.get("OPENSSL_CMD", "openssl").strip() or "openssl"

# Timeouts (seconds)
TLS_TIMEOUT = float(os.environ.get("TLS_TIMEOUT", "10"))
TOOL_TIMEOUT = float(os.environ.get("TOOL_TIMEOUT", "15"))
CERT_PARSE_TIMEOUT = float(os.environ.get("CERT_PARSE_TIMEOUT", "5"))

# Concurrent per-certificate toolkit calls
PARSE_WORKERS = max(1, int(os.environ.get("PARSE_WORKERS", "8")))

# Hard cap for walked/extracted chains
MAX_CHAIN_LENGTH = 10

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3001"))


def _split_csv(v: str) -> List[str]:
    return [x.strip() for x in (v or "").split(",") if x.strip()]


CORS_ORIGINS = _split_csv(os.environ.get("CORS_ORIGINS", "*")) or ["*"]
