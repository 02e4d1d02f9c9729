from __future__ import annotations
from typing import List, Optional

from fastapi import Header, HTTPException, UploadFile

from ..ai_normalizer import AINormalizer, CompletionBackend, default_backend, get_normalizer
from ..errors import PaperValidationFailed, PersistenceError
from ..extraction import UploadedFile


def acting_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
	# Stamped into created_by/updated_by; sign-in is handled elsewhere
	return (x_user_id or "").strip() or None


def normalizer() -> AINormalizer:
	return get_normalizer()


def completion_backend() -> CompletionBackend:
	return default_backend()


def raise_upload_error(err: Exception) -> None:
	if isinstance(err, PaperValidationFailed):
		raise HTTPException(status_code=422, detail={"errors": err.messages}) from err
	if isinstance(err, PersistenceError):
		status = 409 if err.duplicate else 500
		raise HTTPException(
			status_code=status,
			detail={"message": err.message, "paper_id": err.paper_id, "compensated": err.compensated},
		) from err
	raise err


async def read_uploads(files: Optional[List[UploadFile]]) -> List[UploadedFile]:
	uploads: List[UploadedFile] = []
	for f in files or []:
		uploads.append(UploadedFile(filename=f.filename or "upload", data=await f.read(), content_type=f.content_type))
	return uploads
