"""
Text extraction adapter tests
"""
import asyncio
import json
import threading
from unittest.mock import MagicMock, patch

import httpx
import pytest

from ielts_admin.extraction import OcrClient, UploadedFile, extract_files
from ielts_admin.settings import settings


def _fake_pdf(*pages):
    pdf = MagicMock()
    pdf.pages = [MagicMock(**{"extract_text.return_value": text}) for text in pages]
    cm = MagicMock()
    cm.__enter__.return_value = pdf
    return cm


def _run_with_ocr(files, ocr, existing_text=""):
    async def run():
        try:
            return await extract_files(files, existing_text=existing_text, ocr=ocr)
        finally:
            await ocr.aclose()

    return asyncio.run(run())


@pytest.mark.parametrize("filename,content_type,kind", [
    ("paper.pdf", None, "pdf"),
    ("scan.JPG", None, "image"),
    ("upload", "image/png", "image"),
    ("paper.json", None, "json"),
    ("notes.txt", "text/plain", "text"),
])
def test_uploaded_file_kind(filename, content_type, kind):
    assert UploadedFile(filename, b"", content_type).kind == kind


def test_files_are_appended_in_order():
    files = [
        UploadedFile("notes.txt", b"Reading Test 1"),
        UploadedFile("paper.pdf", b"%PDF-1.4", "application/pdf"),
    ]
    with patch("ielts_admin.extraction.pdfplumber.open", return_value=_fake_pdf("Section 1", None)):
        result = asyncio.run(extract_files(files, existing_text="Typed intro"))

    assert result.text == "Typed intro\n\nReading Test 1\n\n[Page 1]\nSection 1\n\n[Page 2]"
    assert result.filenames == ["notes.txt", "paper.pdf"]
    assert result.errors == []


def test_failed_pdf_keeps_earlier_text():
    files = [
        UploadedFile("good.pdf", b"%PDF-1.4"),
        UploadedFile("bad.pdf", b"not a pdf"),
        UploadedFile("after.txt", b"Question 1. Still read"),
    ]
    opener = MagicMock(side_effect=[_fake_pdf("Section 1"), Exception("broken xref")])
    with patch("ielts_admin.extraction.pdfplumber.open", opener):
        result = asyncio.run(extract_files(files))

    assert "[Page 1]\nSection 1" in result.text
    assert result.text.endswith("Question 1. Still read")
    assert result.filenames == ["good.pdf", "after.txt"]
    assert len(result.errors) == 1
    assert result.errors[0].filename == "bad.pdf"
    assert "broken xref" in result.errors[0].message
    assert result.as_dict()["errors"][0]["filename"] == "bad.pdf"


def test_pdf_is_read_off_the_event_loop_thread():
    loop_thread = threading.get_ident()
    seen = []

    def opener(_):
        seen.append(threading.get_ident())
        return _fake_pdf("Section 1")

    with patch("ielts_admin.extraction.pdfplumber.open", side_effect=opener):
        result = asyncio.run(extract_files([UploadedFile("paper.pdf", b"%PDF-1.4")]))

    assert result.text == "[Page 1]\nSection 1"
    assert len(seen) == 1
    assert seen[0] != loop_thread


def test_image_goes_through_ocr():
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200, json={"text": "Question 1. From a photo"})

    ocr = OcrClient("https://ocr.test/recognize", transport=httpx.MockTransport(handler))
    result = _run_with_ocr([UploadedFile("page.png", b"\x89PNG", "image/png")], ocr)

    assert result.text == "[Image OCR]\nQuestion 1. From a photo"
    assert b'name="file"' in seen["body"]
    assert b'filename="page.png"' in seen["body"]


def test_ocr_http_error_is_reported():
    ocr = OcrClient("https://ocr.test/recognize", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    result = _run_with_ocr([UploadedFile("page.png", b"\x89PNG")], ocr, existing_text="kept")

    assert result.text == "kept"
    assert "status 500" in result.errors[0].message


def test_unconfigured_ocr_is_reported(monkeypatch):
    monkeypatch.setattr(settings, "ocr_endpoint_url", None)
    result = asyncio.run(extract_files([UploadedFile("page.jpg", b"\xff\xd8")]))

    assert result.text == ""
    assert "OCR_ENDPOINT_URL" in result.errors[0].message


def test_json_file_is_pretty_printed():
    result = asyncio.run(extract_files([UploadedFile("paper.json", b'{"title":"T","passages":[]}')]))
    assert result.json_text == json.dumps({"title": "T", "passages": []}, indent=2)
    assert result.text == ""


def test_invalid_json_file_is_reported():
    result = asyncio.run(extract_files([UploadedFile("paper.json", b"{oops")]))
    assert result.json_text is None
    assert result.errors[0].message == "Invalid JSON file."
