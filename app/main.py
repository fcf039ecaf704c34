# app/main.py
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.config import settings
from core.db import close_pool
from core.errors import register_error_handlers
from core.guards import check_route_policies, guard_chain
from core.logger import configure_logging
from api.v1.auth import router as auth_router
from api.v1.permissions import router as permissions_router
from api.v1.users import router as users_router
from api.v1.audit_log import router as audit_log_router

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_pool()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0",
    lifespan=lifespan,
    dependencies=[Depends(guard_chain)],
)

origins = settings.cors_origins_list() or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/health", name="health")
def health(): return {"ok": True}

app.include_router(auth_router)
app.include_router(permissions_router)
app.include_router(users_router)
app.include_router(audit_log_router)

check_route_policies(app, auth_router, permissions_router, users_router, audit_log_router)
