import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from padelpro.database import init_db
from padelpro.routes import players, runtime, tournaments

APP_NAME = "PadelPro Tournaments API"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(players.router, prefix="/api", tags=["players"])
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
# Start, scoring, round advance, standings
app.include_router(runtime.router, prefix="/api", tags=["runtime"])


@app.on_event("startup")
def on_startup():
    init_db()


@app.get("/api/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
