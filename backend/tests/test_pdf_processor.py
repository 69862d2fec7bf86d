"""Tests for PDF text extraction and previews."""

from conftest import make_pdf, page_count

from app.services import pdf_processor


async def test_extract_text_joins_pages():
    result = await pdf_processor.extract_text(make_pdf(3))
    assert result["status"] == "success"
    assert result["page_count"] == 3
    assert "Page 1:" in result["text"]
    assert "Page 3:" in result["text"]


async def test_extract_text_reports_failure_for_garbage():
    result = await pdf_processor.extract_text(b"definitely not a pdf")
    assert result["status"] == "failed"
    assert result["text"] == ""
    assert "error" in result


async def test_validate_pdf():
    assert await pdf_processor.validate_pdf(make_pdf(1)) is True
    assert await pdf_processor.validate_pdf(b"%PDF-garbage") is False


async def test_preview_keeps_first_two_pages():
    preview = await pdf_processor.preview(make_pdf(5), 2)
    assert page_count(preview) == 2
    text = (await pdf_processor.extract_text(preview))["text"]
    assert "Page 1:" in text
    assert "Page 2:" in text
    assert "Page 3:" not in text


async def test_preview_of_short_document_keeps_all_pages():
    preview = await pdf_processor.preview(make_pdf(1), 2)
    assert page_count(preview) == 1
