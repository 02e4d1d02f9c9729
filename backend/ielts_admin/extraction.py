from __future__ import annotations
import asyncio
import io
import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import List, Optional, Sequence

import httpx
import pdfplumber

from .errors import ExtractionError
from .settings import settings

logger = logging.getLogger(__name__)


IMAGE_TYPES = {"image/png", "image/jpeg", "image/jpg"}
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg"}


@dataclass
class UploadedFile:
	filename: str
	data: bytes
	content_type: Optional[str] = None

	@property
	def kind(self) -> str:
		suffix = PurePath(self.filename or "").suffix.lower()
		ctype = (self.content_type or "").lower()
		if ctype == "application/json" or suffix == ".json":
			return "json"
		if ctype == "application/pdf" or suffix == ".pdf":
			return "pdf"
		if ctype in IMAGE_TYPES or suffix in IMAGE_SUFFIXES:
			return "image"
		return "text"


@dataclass
class ExtractionResult:
	text: str
	json_text: Optional[str] = None
	filenames: List[str] = field(default_factory=list)
	errors: List[ExtractionError] = field(default_factory=list)

	def as_dict(self) -> dict:
		return {
			"text": self.text,
			"json": self.json_text,
			"filenames": self.filenames,
			"errors": [{"filename": e.filename, "message": e.message} for e in self.errors],
		}


class OcrClient:
	def __init__(self, endpoint_url: Optional[str] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.endpoint_url = endpoint_url or settings.ocr_endpoint_url
		self._client = httpx.AsyncClient(timeout=settings.ocr_timeout_seconds, transport=transport)

	async def recognize(self, filename: str, data: bytes, content_type: Optional[str] = None) -> str:
		if not self.endpoint_url:
			raise ExtractionError(filename, "OCR_ENDPOINT_URL is not configured")
		files = {"file": (filename, data, content_type or "application/octet-stream")}
		try:
			r = await self._client.post(self.endpoint_url, files=files)
			r.raise_for_status()
			payload = r.json()
		except httpx.HTTPStatusError as err:
			raise ExtractionError(filename, f"OCR failed with status {err.response.status_code}") from err
		except (httpx.RequestError, ValueError) as err:
			raise ExtractionError(filename, f"OCR failed: {err}") from err
		text = payload.get("text") if isinstance(payload, dict) else None
		if not isinstance(text, str):
			raise ExtractionError(filename, "OCR response missing text")
		return text

	async def aclose(self) -> None:
		await self._client.aclose()


def extract_pdf(data: bytes, filename: str = "document.pdf") -> str:
	chunks: List[str] = []
	try:
		with pdfplumber.open(io.BytesIO(data)) as pdf:
			for i, page in enumerate(pdf.pages, start=1):
				page_text = page.extract_text() or ""
				chunks.append(f"\n\n[Page {i}]\n{page_text}")
	except Exception as err:
		raise ExtractionError(filename, f"PDF text extraction failed: {err}") from err
	return "".join(chunks)


async def extract_files(files: Sequence[UploadedFile], existing_text: str = "", ocr: Optional[OcrClient] = None) -> ExtractionResult:
	"""Extract each file in order into one text buffer.

	A failing file is reported in ``errors`` and skipped; text gathered from
	earlier files (and ``existing_text``) is kept.
	"""
	combined = existing_text or ""
	result = ExtractionResult(text="")
	own_ocr: Optional[OcrClient] = None
	try:
		for upload in files:
			try:
				kind = upload.kind
				if kind == "json":
					try:
						parsed = json.loads(upload.data.decode("utf-8"))
					except (UnicodeDecodeError, ValueError) as err:
						raise ExtractionError(upload.filename, "Invalid JSON file.") from err
					result.json_text = json.dumps(parsed, indent=2, ensure_ascii=False)
				elif kind == "pdf":
					# pdfplumber is synchronous; keep it off the event loop
					combined += await asyncio.to_thread(extract_pdf, upload.data, upload.filename)
				elif kind == "image":
					if ocr is None:
						ocr = own_ocr = OcrClient()
					ocr_text = await ocr.recognize(upload.filename, upload.data, upload.content_type)
					combined += "\n\n[Image OCR]\n" + ocr_text
				else:
					combined += "\n\n" + upload.data.decode("utf-8", errors="replace")
				result.filenames.append(upload.filename)
			except ExtractionError as err:
				logger.warning("Extraction failed for %s: %s", upload.filename, err.message)
				result.errors.append(err)
	finally:
		if own_ocr is not None:
			await own_ocr.aclose()
	result.text = combined.strip()
	return result
