"""Gatekeep entrypoint.

Run with:
  python -m gatekeep
"""

import os
import uvicorn

def main() -> None:
    host = os.getenv("GATEKEEP_HOST", "0.0.0.0")
    port = int(os.getenv("GATEKEEP_PORT", "8000"))
    reload = os.getenv("GATEKEEP_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("gatekeep.app:create_app", factory=True, host=host, port=port, reload=reload)

if __name__ == "__main__":
    main()
