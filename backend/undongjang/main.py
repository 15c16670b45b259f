"""ASGI entrypoint for the undongjang backend."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from undongjang.api import events, groups, messenger, notifications, ops, search
from undongjang.api.errors import install_error_handlers
from undongjang.api.middleware_request_id import RequestIdMiddleware
from undongjang.infra import postgres, storage
from undongjang.obs import init as obs_init
from undongjang.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="undongjang", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.allowed_origins())
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Static serving for uploaded files in dev
if settings.is_dev():
	upload_root = storage.upload_root()
	upload_root.mkdir(parents=True, exist_ok=True)
	app.mount("/uploads", StaticFiles(directory=str(upload_root), check_dir=True), name="uploads")

obs_init(app)
app.add_middleware(RequestIdMiddleware)

app.include_router(events.router, tags=["events"])
app.include_router(groups.router, tags=["groups"])
app.include_router(messenger.router, tags=["messenger"])
app.include_router(notifications.router, tags=["notifications"])
app.include_router(search.router, tags=["search"])
app.include_router(ops.router, tags=["ops"])
