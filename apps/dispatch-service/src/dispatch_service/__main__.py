from __future__ import annotations

import os

import uvicorn

from devkit.observability import configure_logging


def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    host = os.getenv("DISPATCH_SERVICE_HOST", "0.0.0.0")
    port = int(os.getenv("DISPATCH_SERVICE_PORT", "8110"))
    uvicorn.run("dispatch_service.app:create_app", factory=True, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
