import logging

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .routes import router
from .database import engine
from .config import FRONTEND_ORIGINS, LOG_LEVEL
from . import models


def resolve_log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    # unknown names come back as "Level FOO"
    return level if isinstance(level, int) else logging.INFO


structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level(LOG_LEVEL)),
)

models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="Profile API")
# Credentialed requests need an explicit origin list, '*' is rejected by browsers.
allowed_origins = [o.strip() for o in FRONTEND_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)

@app.get('/')
def root():
    return {"message": "Profile API"}
