# =============================================================================
# run.py — Start the SilentEngine API server
# =============================================================================
# Usage: python run.py
# Binds to HOST:PORT from the environment (.env), default http://127.0.0.1:4000
# =============================================================================

import os
import sys

import uvicorn

from silentengine.core.config import get_settings

# Project root (where run.py lives)
ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT:
    os.chdir(ROOT)


def main() -> int:
    settings = get_settings()
    print(f"Starting SilentEngine ({settings.environment}) on http://{settings.host}:{settings.port} ...")
    uvicorn.run(
        "silentengine.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
