"""Rate limiting configuration using slowapi.

Module-level Limiter shared by the auth router (per-endpoint limits) and
wired into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
