import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from .db import init_db
from .errors import AuditError
from .settings import settings
from .routers import health, principles, analyze, audits, reports


logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# request bodies carry base64 screenshots; keep client chatter out of the log
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = FastAPI(title="Learning Science Audit API")
app.include_router(health.router)
app.include_router(principles.router)
app.include_router(analyze.router)
app.include_router(audits.router)
app.include_router(reports.router)


@app.exception_handler(AuditError)
async def audit_error_handler(request: Request, exc: AuditError):
	if exc.status_code >= 500:
		logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/", include_in_schema=False)
async def redirect_root_to_docs():
	return RedirectResponse(url="/docs")


@app.get("/info")
def root():
	return {"status": "ok", "oracle_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	init_db()
