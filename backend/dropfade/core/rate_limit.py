# dropfade/core/rate_limit.py

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

# Initialize limiter
limiter = Limiter(key_func=get_remote_address)

# Rate limit constants
UPLOAD_LIMIT = os.getenv("RATE_LIMIT_UPLOAD", "20/minute")
# Applies to every route that takes an access code, to slow down guessing
ACCESS_LIMIT = os.getenv("RATE_LIMIT_ACCESS", "30/minute")
