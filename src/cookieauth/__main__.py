"""cookie-auth entrypoint.

Run with:
  python -m cookieauth
"""

import os
import uvicorn

def main() -> None:
    host = os.getenv("AUTH_HOST", "0.0.0.0")
    port = int(os.getenv("AUTH_PORT", "8000"))
    reload = os.getenv("AUTH_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    log_level = os.getenv("AUTH_LOG_LEVEL", "info").lower()
    uvicorn.run("cookieauth.app:app", host=host, port=port, reload=reload, log_level=log_level)

if __name__ == "__main__":
    main()
