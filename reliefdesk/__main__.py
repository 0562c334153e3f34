"""Run the reliefdesk server: python3 -m reliefdesk"""

import uvicorn

from reliefdesk.config import settings


def main() -> None:
    uvicorn.run("reliefdesk.api.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
