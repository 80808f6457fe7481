"""
Shared slowapi limiter for the order routes, keyed on the client address.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from recon.config import EXPORT_RATE_LIMIT, UPLOAD_RATE_LIMIT

limiter = Limiter(key_func=get_remote_address)

# Uploads run an LLM call per text order; exports may hit the spreadsheet API several times
upload_limit = limiter.limit(UPLOAD_RATE_LIMIT)
export_limit = limiter.limit(EXPORT_RATE_LIMIT)
