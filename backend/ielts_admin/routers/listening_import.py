from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..ai_normalizer import AINormalizer
from ..db import get_db
from ..errors import CompletionError, PaperValidationFailed, PersistenceError
from ..extraction import extract_files
from ..listening import (
	ListeningTestIn,
	apply_audio_source,
	listening_rows_to_csv,
	listening_to_rows,
	load_listening,
	validate_listening,
)
from ..persistence import ListeningImporter
from ..prompts import LISTENING_PROMPT_OPTIONS, get_listening_prompt
from .deps import normalizer, raise_upload_error, read_uploads

router = APIRouter(prefix="/admin/listening", tags=["listening_import"])


class NormalizeRequest(BaseModel):
	text: str = ""
	prompt: Optional[str] = None
	prompt_key: str = "DEFAULT"


class ConvertRequest(BaseModel):
	test: Dict[str, Any]
	audio_src: str = ""


class UndoRequest(BaseModel):
	ids: List[int] = Field(default_factory=list)


def _test_or_422(body: Any) -> ListeningTestIn:
	test, issues = load_listening(body)
	if test is None:
		raise HTTPException(status_code=422, detail={"errors": [str(i) for i in issues]})
	return test


@router.post("/extract")
async def extract(files: Optional[List[UploadFile]] = File(default=None), text: str = Form(default="")):
	result = await extract_files(await read_uploads(files), existing_text=text)
	return result.as_dict()


@router.post("/ai-normalize")
async def ai_normalize(req: NormalizeRequest, ai: AINormalizer = Depends(normalizer)):
	if not req.text.strip():
		raise HTTPException(status_code=400, detail="Please enter or extract some text first.")
	try:
		result = await ai.normalize(req.text, req.prompt or get_listening_prompt(req.prompt_key))
	except CompletionError as e:
		raise HTTPException(status_code=502, detail=str(e))
	return result.as_dict()


@router.post("/convert")
def convert(req: ConvertRequest):
	test = _test_or_422(req.test)
	return apply_audio_source(test, req.audio_src).model_dump()


@router.post("/rows")
def rows(body: Dict[str, Any] = Body(...)):
	grid = listening_to_rows(_test_or_422(body))
	return {"rows": [row.model_dump() for row in grid], "csv": listening_rows_to_csv(grid)}


@router.post("/validate")
def validate(body: Dict[str, Any] = Body(...)):
	test, issues = load_listening(body)
	if test is not None:
		issues = validate_listening(test)
	return {"valid": not issues, "errors": [str(i) for i in issues]}


@router.post("/upload")
def upload(body: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
	test = _test_or_422(body)
	try:
		result = ListeningImporter(db).persist(test)
	except (PaperValidationFailed, PersistenceError) as err:
		raise_upload_error(err)
	return {**result.as_dict(), "test_id": result.paper_id}


@router.post("/undo")
def undo(req: UndoRequest, db: Session = Depends(get_db)):
	try:
		removed = ListeningImporter(db).undo(req.ids)
	except PersistenceError as e:
		raise HTTPException(status_code=500, detail=e.message)
	return {"removed": removed}


@router.get("/prompts")
def prompts():
	return LISTENING_PROMPT_OPTIONS
