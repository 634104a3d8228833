import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .api import admin, clubs, events, manager, memberships, payments, users
from .config import settings
from .db import Base, engine, ping
from .errors import install_error_handlers

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Club Sphere (FastAPI + SQLAlchemy)")

# CORS for the frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin],
    allow_methods=["*"],
    allow_headers=["*"]
)

install_error_handlers(app)

for module in (users, clubs, memberships, events, payments, manager, admin):
    app.include_router(module.router)


@app.on_event("startup")
def startup() -> None:
    # Raises when the store is unreachable, which aborts startup.
    Base.metadata.create_all(engine)
    ping()
    logger.info("store ready at %s", engine.url.render_as_string(hide_password=True))


@app.get("/", response_class=PlainTextResponse)
def root():
    return "Club Sphere Server is Running"
