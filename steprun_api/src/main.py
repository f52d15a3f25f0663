from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import sys

import uvicorn

from steprun_api.src.config import get_settings
from steprun_api.src.routes import health_router, pipelines_router, webhooks_router
from steprun_controller.src.bootstrap import build_listener
from steprun_controller.src.config import get_settings as get_controller_settings

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Pipelines are loaded once; a bad definition stops start-up
    listener, store = build_listener(get_controller_settings())
    app.state.listener = listener
    app.state.run_store = store
    logger.info("Starting Steprun API")
    yield
    logger.info("Shutting down Steprun API")

app = FastAPI(
    title="Steprun",
    description="Event-triggered step pipeline runner",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(pipelines_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")

@app.get("/")
async def root():
    return {
        "name": "Steprun",
        "version": "0.1.0",
        "docs": "/docs"
    }

def run():
    """Console entry point."""
    logging.basicConfig(
        level=get_controller_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
