"""
Centralized environment configuration

Values are read once at import time; main.py loads .env before importing
this module.
"""

import os
from typing import Optional

def _get_optional(value: Optional[str], default: str) -> str:
    return value if value else default

# Load configuration
DEFAULT_DIALECT = _get_optional(os.getenv('VISUAL_QUERY_DEFAULT_DIALECT'), 'postgresql').lower()
CORS_ORIGINS = [
    origin.strip()
    for origin in _get_optional(os.getenv('CORS_ORIGINS'), 'http://localhost:3000').split(',')
    if origin.strip()
]
LOG_LEVEL = _get_optional(os.getenv('LOG_LEVEL'), 'INFO').upper()

# Debug flags
DEBUG_SQL_IR = os.environ.get('DEBUG_SQL_IR', 'False').lower() == 'true'
