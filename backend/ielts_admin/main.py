import logging

from fastapi import FastAPI

from .db import Base, engine, get_db, ensure_schema
from .cleanup import purge_old_import_logs
from .settings import settings
from .routers import health, ai
from .routers import reading_import
from .routers import listening_import
from .routers import prompts

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="IELTS Admin Import API")
app.include_router(health.router)
app.include_router(ai.router)
app.include_router(reading_import.router)
app.include_router(listening_import.router)
app.include_router(prompts.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"completion_endpoint": bool(settings.completion_endpoint_url),
		"ocr_configured": bool(settings.ocr_endpoint_url),
	}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
	# Best-effort log retention at startup
	db = next(get_db())
	try:
		removed = purge_old_import_logs(db)
		if removed:
			logger.info("Purged %d old import log row(s)", removed)
	except Exception:
		logger.exception("Import log cleanup failed")
	finally:
		db.close()
