"""
Project Cart Planner API - FastAPI Main Entry

✅ LOCAL:
    cd backend
    source .venv/bin/activate
    python -m uvicorn cartplanner.main:app --reload --host 0.0.0.0 --port 8000

✅ TEST:
    curl -i http://127.0.0.1:8000/health
    curl -i -X POST http://127.0.0.1:8000/v1/generate-checklist \
        -H 'Content-Type: application/json' -d '{"projectQuery": "backyard bar"}'
    curl -i -X POST http://127.0.0.1:8000/v1/search-products \
        -H 'Content-Type: application/json' \
        -d '{"items": [{"name": "Bar stools"}, {"name": "Mini fridge"}], "notes": "outdoor"}'

✅ PRODUCTION (Render):
    Build Command:
        pip install .

    Start Command:
        python -m uvicorn cartplanner.main:app --host 0.0.0.0 --port $PORT
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cartplanner.core.config import settings
from cartplanner.core.logging import configure_logging

# ✅ Routers
from cartplanner.api.routes_checklist import router as checklist_router
from cartplanner.api.routes_meta import router as meta_router
from cartplanner.api.routes_search import router as search_router


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Project Cart Planner API",
        version=settings.APP_VERSION,
        description="Project checklist generation + multi-retailer offer search and bundles",
    )

    # ✅ CORS
    # NOTE: the web frontend is served from a different origin than the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ✅ Root (GET /)
    @app.get("/")
    def root():
        return {
            "name": "Project Cart Planner API",
            "status": "ok",
            "docs": "/docs",
            "health": "/health",
            "version": "/version",
        }

    # ✅ Mount routers
    app.include_router(meta_router)
    app.include_router(checklist_router)
    app.include_router(search_router)

    return app


app = create_app()
