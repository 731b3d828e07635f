import uvicorn

from lensrelay.core.app_factory import create_app
from lensrelay.core.config import settings

app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("lensrelay.main:app", host=settings.app.host, port=settings.app.port)
