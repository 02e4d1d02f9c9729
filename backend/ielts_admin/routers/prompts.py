from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import SavedPrompt
from .deps import acting_user

router = APIRouter(prefix="/admin/prompts", tags=["prompts"])


class PromptIn(BaseModel):
	label: str
	prompt: str
	module: str = "reading"


def _as_dict(row: SavedPrompt) -> dict:
	return {
		"id": row.id,
		"label": row.label,
		"prompt": row.prompt,
		"module": row.module,
		"created_by": row.created_by,
		"created_at": row.created_at.isoformat() if row.created_at else None,
	}


@router.get("")
def list_prompts(module: Optional[str] = None, db: Session = Depends(get_db)):
	q = db.query(SavedPrompt)
	if module:
		q = q.filter(SavedPrompt.module == module)
	return [_as_dict(row) for row in q.order_by(SavedPrompt.id).all()]


@router.post("")
def save_prompt(req: PromptIn, db: Session = Depends(get_db), user_id: Optional[str] = Depends(acting_user)):
	if not req.label.strip() or not req.prompt.strip():
		raise HTTPException(status_code=400, detail="label and prompt are required")
	row = SavedPrompt(label=req.label.strip(), prompt=req.prompt, module=req.module, created_by=user_id)
	db.add(row)
	db.commit()
	db.refresh(row)
	return _as_dict(row)
