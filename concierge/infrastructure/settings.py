"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
CONCIERGE_ROOT = Path(__file__).parent.parent

# Environment
ENV = os.getenv("CONCIERGE_ENV", "development")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Default database location (overridden by CONCIERGE_DB_PATH)
DEFAULT_DB_PATH = CONCIERGE_ROOT / "data" / "concierge.db"

# Packaged catalog rules (category synonyms and siblings)
CATALOG_RULES_PATH = CONCIERGE_ROOT / "catalog" / "data" / "catalog_rules.yaml"
