from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..ai_normalizer import AINormalizer
from ..db import get_db
from ..errors import CompletionError, ImportPipelineError, PaperValidationFailed, PersistenceError
from ..extraction import extract_files
from ..grid import CSV_EXPORT_NAME, JSON_EXPORT_NAME, csv_to_rows, paper_to_rows, rows_to_csv
from ..parser import parse, parse_rows
from ..persistence import ReadingImporter
from ..prompts import READING_PROMPT
from ..question_types import QUESTION_TYPES
from ..schemas import GridRow, ReadingPaperIn
from ..validation import load_paper, validate
from .deps import acting_user, normalizer, raise_upload_error, read_uploads

router = APIRouter(prefix="/admin/reading", tags=["reading_import"])


class TextRequest(BaseModel):
	text: str = ""


class NormalizeRequest(BaseModel):
	text: str = ""
	prompt: Optional[str] = None


class RowsUpload(BaseModel):
	rows: Optional[List[GridRow]] = None
	csv: Optional[str] = None


class UndoRequest(BaseModel):
	ids: List[int] = Field(default_factory=list)


def _paper_or_422(body: Any) -> ReadingPaperIn:
	paper, issues = load_paper(body)
	if paper is None:
		raise HTTPException(status_code=422, detail={"errors": [str(i) for i in issues]})
	return paper


@router.post("/extract")
async def extract(files: Optional[List[UploadFile]] = File(default=None), text: str = Form(default="")):
	result = await extract_files(await read_uploads(files), existing_text=text)
	return result.as_dict()


@router.post("/parse")
def parse_text(req: TextRequest):
	if not req.text.strip():
		raise HTTPException(status_code=400, detail="No text to parse.")
	paper = parse(req.text)
	return paper.model_dump()


@router.post("/parse/rows")
def parse_text_rows(req: TextRequest):
	return {"rows": [row.model_dump() for row in parse_rows(req.text)]}


@router.post("/validate")
def validate_paper(body: Dict[str, Any] = Body(...)):
	paper, issues = load_paper(body)
	if paper is not None:
		issues = validate(paper)
	return {
		"valid": not issues,
		"errors": [str(i) for i in issues],
		"issues": [i.as_dict() for i in issues],
	}


@router.post("/ai-normalize")
async def ai_normalize(req: NormalizeRequest, ai: AINormalizer = Depends(normalizer)):
	if not req.text.strip():
		raise HTTPException(status_code=400, detail="Paste or upload text first.")
	try:
		result = await ai.normalize(req.text, req.prompt or READING_PROMPT)
	except CompletionError as e:
		raise HTTPException(status_code=502, detail=str(e))
	return result.as_dict()


@router.post("/upload")
def upload(body: Dict[str, Any] = Body(...), db: Session = Depends(get_db), user_id: Optional[str] = Depends(acting_user)):
	paper = _paper_or_422(body)
	try:
		result = ReadingImporter(db, user_id=user_id).persist(paper)
	except (PaperValidationFailed, PersistenceError) as err:
		raise_upload_error(err)
	return result.as_dict()


@router.post("/upload-csv")
def upload_csv(req: RowsUpload, db: Session = Depends(get_db), user_id: Optional[str] = Depends(acting_user)):
	rows = req.rows or []
	if req.csv:
		try:
			rows = csv_to_rows(req.csv)
		except ImportPipelineError as e:
			raise HTTPException(status_code=400, detail=str(e))
	if not rows:
		raise HTTPException(status_code=400, detail="No rows to upload.")
	try:
		result = ReadingImporter(db, user_id=user_id).persist_rows(rows)
	except (PaperValidationFailed, PersistenceError) as err:
		raise_upload_error(err)
	return result.as_dict()


@router.post("/undo")
def undo(req: UndoRequest, db: Session = Depends(get_db)):
	try:
		removed = ReadingImporter(db).undo(req.ids)
	except PersistenceError as e:
		raise HTTPException(status_code=500, detail=e.message)
	return {"removed": removed}


@router.post("/export/json")
def export_json(body: Dict[str, Any] = Body(...)):
	paper = _paper_or_422(body)
	return Response(
		content=paper.to_json(),
		media_type="application/json",
		headers={"Content-Disposition": f'attachment; filename="{JSON_EXPORT_NAME}"'},
	)


@router.post("/export/csv")
def export_csv(body: Dict[str, Any] = Body(...)):
	paper = _paper_or_422(body)
	return Response(
		content=rows_to_csv(paper_to_rows(paper)),
		media_type="text/csv",
		headers={"Content-Disposition": f'attachment; filename="{CSV_EXPORT_NAME}"'},
	)


@router.get("/question-types")
def question_types():
	return [info.as_dict() for info in QUESTION_TYPES.values()]
