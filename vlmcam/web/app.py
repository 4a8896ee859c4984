import uvicorn
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path

from vlmcam.services.api import create_app
from vlmcam.services.config import Settings

root = Path(__file__).resolve().parent


def build_app(**kwargs):
    # API routes and page share one app so the lifespan (camera cleanup) runs
    app = create_app(**kwargs)

    @app.get("/", response_class=HTMLResponse)
    def index():
        return (root / "templates" / "index.html").read_text(encoding="utf-8")

    app.mount("/static", StaticFiles(directory=str(root / "static")), name="static")
    return app


def main():
    settings = Settings.from_env()
    uvicorn.run(build_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
