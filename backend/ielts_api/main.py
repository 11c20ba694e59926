import logging
import math
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import QuotaExceeded, ServiceError
from .openai_client import OpenAIClient
from .rate_limit import SlidingWindowLimiter
from .routers import health, practice_tests
from .service import PracticeTestService
from .settings import Settings, settings as default_settings

logging.basicConfig(
	level=getattr(logging, default_settings.log_level.upper(), logging.INFO),
	format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
	return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def create_app(config: Optional[Settings] = None, *, client=None, service: Optional[PracticeTestService] = None) -> FastAPI:
	config = config or default_settings
	owns_client = client is None and service is None
	if service is None:
		if client is None:
			client = OpenAIClient(
				api_key=config.openai_api_key or "",
				base_url=config.openai_base_url,
				model=config.openai_model,
				transcribe_model=config.openai_transcribe_model,
				timeout=config.openai_timeout_seconds,
			)
		service = PracticeTestService(
			client,
			limiter=SlidingWindowLimiter(config.rate_limit_max, config.rate_limit_window_seconds),
			site_base=config.site_base,
			max_writing_tasks=config.max_writing_tasks,
			max_audio_bytes=config.max_audio_bytes,
		)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		if not config.openai_api_key:
			logger.warning("OPENAI_API_KEY is not set; writing tests will use the fallback prompt and grading will fail")
		logger.info("IELTS AI backend ready (model=%s)", config.openai_model)
		yield
		if owns_client:
			await service.client.aclose()

	app = FastAPI(title="IELTS AI Practice API", lifespan=lifespan)
	app.state.service = service

	app.add_middleware(
		CORSMiddleware,
		allow_origins=[o.strip() for o in config.allow_origin.split(",") if o.strip()] or ["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)

	app.include_router(health.router)
	app.include_router(practice_tests.router)

	@app.exception_handler(QuotaExceeded)
	async def quota_handler(request: Request, exc: QuotaExceeded):
		headers = {"Retry-After": str(math.ceil(exc.retry_after))} if exc.retry_after > 0 else None
		return _error(exc.status_code, exc.message, headers)

	@app.exception_handler(ServiceError)
	async def service_error_handler(request: Request, exc: ServiceError):
		if exc.status_code >= 500:
			logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
		else:
			logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
		return _error(exc.status_code, exc.message)

	@app.exception_handler(StarletteHTTPException)
	async def http_error_handler(request: Request, exc: StarletteHTTPException):
		return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_error_handler(request: Request, exc: RequestValidationError):
		errors = exc.errors()
		first = errors[0] if errors else {}
		location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
		message = first.get("msg", "invalid request")
		return _error(400, f"{location}: {message}" if location else message)

	@app.exception_handler(Exception)
	async def unhandled_error_handler(request: Request, exc: Exception):
		logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
		return _error(500, str(exc) or exc.__class__.__name__)

	return app


app = create_app()


if __name__ == "__main__":
	import uvicorn

	uvicorn.run(
		"ielts_api.main:app",
		host=default_settings.host,
		port=default_settings.port,
		log_level=default_settings.log_level.lower(),
	)
