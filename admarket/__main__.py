"""Run the API server: ``python -m admarket``."""
import logging

import uvicorn

from admarket.config import settings


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    uvicorn.run("admarket.main:app", host=settings.admarket_host, port=settings.admarket_port)


if __name__ == "__main__":
    main()
