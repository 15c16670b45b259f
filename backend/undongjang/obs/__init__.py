"""Observability bootstrap: JSON logging, request metrics and build info."""

from __future__ import annotations

from fastapi import FastAPI

from undongjang.obs import logging as obs_logging
from undongjang.obs import metrics, middleware
from undongjang.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	"""Configure logging and install request instrumentation once per process."""
	global _initialised
	if _initialised or not settings.obs_enabled:
		return
	obs_logging.configure_logging()
	middleware.install(app)
	metrics.set_build_info(settings.service_name, settings.git_commit, settings.environment)
	obs_logging.get_logger(__name__).info(
		"obs.initialised",
		extra={"service": settings.service_name, "commit": settings.git_commit},
	)
	_initialised = True


__all__ = ["init"]
