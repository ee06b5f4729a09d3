"""
Local/production launcher for the bid optimizer API.
PORT and WEB_CONCURRENCY come from the environment; reload only outside production.
"""

import os
import uvicorn

from bidder.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "bidder.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=not settings.is_production,
        workers=int(os.environ.get("WEB_CONCURRENCY", 2)) if settings.is_production else 1,
    )
