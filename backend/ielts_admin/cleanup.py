from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import ReadingImportLog
from .settings import settings


def purge_old_import_logs(db: Session, days: Optional[int] = None) -> int:
	# 0 keeps every log entry
	days = settings.import_log_retention_days if days is None else days
	if days <= 0:
		return 0
	threshold = datetime.utcnow() - timedelta(days=days)
	res = db.execute(delete(ReadingImportLog).where(ReadingImportLog.imported_at < threshold))
	db.commit()
	return res.rowcount or 0
