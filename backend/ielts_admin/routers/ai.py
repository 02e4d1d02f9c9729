from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..ai_normalizer import CompletionBackend
from ..errors import CompletionError
from .deps import completion_backend

router = APIRouter(prefix="/ai", tags=["ai"])


class GenerateRequest(BaseModel):
	prompt: str
	text: str = ""


@router.post("/generate")
async def generate(req: GenerateRequest, backend: CompletionBackend = Depends(completion_backend)):
	if not req.prompt.strip():
		raise HTTPException(status_code=400, detail="prompt is required")
	try:
		output = await backend.complete(req.prompt, req.text)
	except CompletionError as e:
		raise HTTPException(status_code=502, detail=str(e))
	return {"output": output}
