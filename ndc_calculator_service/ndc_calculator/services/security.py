import os
import secrets
from typing import Optional

from fastapi import Header, HTTPException

from ndc_calculator.core.env import load_env
from ndc_calculator.core.settings import INTERNAL_SERVICE_SECRET_ENV

load_env()


def require_internal_key(x_internal_key: Optional[str] = Header(default=None)) -> None:
    """Guard for maintenance endpoints (cache flush). Read per request so the secret can rotate."""
    secret = os.getenv(INTERNAL_SERVICE_SECRET_ENV)
    if not secret:
        raise HTTPException(status_code=500, detail="Internal service secret not configured.")

    if not x_internal_key or not secrets.compare_digest(x_internal_key, secret):
        raise HTTPException(status_code=401, detail="Unauthorized service call.")
