"""Run the gateway with uvicorn: ``python -m docsync_gateway``."""

import uvicorn

from .config import config


def main() -> None:
    uvicorn.run("docsync_gateway.app:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
