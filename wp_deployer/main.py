import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from wp_deployer import __version__
from wp_deployer.config import settings
from wp_deployer.core.exceptions import DeployerError
from wp_deployer.modules.jobs import routes as jobs_routes
from wp_deployer.modules.credentials import routes as credentials_routes
from wp_deployer.modules.deployments import routes as deployments_routes
from wp_deployer.modules.templates import routes as templates_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DeployerError)
async def deployer_exception_handler(request: Request, exc: DeployerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error.get("loc", ())[1:])
        if name and name not in fields:
            fields.append(name)
    return JSONResponse(status_code=400, content={"error": "Missing or invalid fields", "details": fields})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"error": "Internal server error", "details": None})
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(jobs_routes.router)
app.include_router(credentials_routes.router)
app.include_router(deployments_routes.router)
app.include_router(templates_routes.router)


@app.on_event("startup")
async def startup_event():
    for directory in (settings.jobs_path, settings.credentials_path, settings.uploads_path,
                      settings.templates_path, settings.plugins_path):
        directory.mkdir(parents=True, exist_ok=True)
    logger.info(f"Application startup (data in {settings.data_dir.resolve()})")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to wp-deployer", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat(), "version": __version__}
