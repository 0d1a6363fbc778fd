"""Tests for document.generator: PDF/DOCX output from a preview."""

import io

import pytest
from docx import Document as DocxDocument

from document.generator import _sanitize_for_latin1, render_document
from forms.previews import Preview, PreviewSection


@pytest.fixture
def preview():
    return Preview(
        title="TEST AGREEMENT",
        sections=[
            PreviewSection("1. Terms", ["The parties agree “in good faith”."]),
            PreviewSection("", ["Receiving party: 深圳小部件有限公司"]),
        ],
    )


class TestRenderDocument:
    def test_pdf_magic_bytes(self, preview):
        data = render_document(preview, "pdf")
        assert data.startswith(b"%PDF")

    def test_docx_contains_headings_and_text(self, preview):
        data = render_document(preview, "docx")
        doc = DocxDocument(io.BytesIO(data))
        texts = [p.text for p in doc.paragraphs]
        assert "TEST AGREEMENT" in texts
        assert "1. Terms" in texts
        assert any("good faith" in t for t in texts)

    def test_txt(self, preview):
        text = render_document(preview, "txt").decode("utf-8")
        assert text.startswith("TEST AGREEMENT\n")

    def test_format_is_case_insensitive(self, preview):
        assert render_document(preview, ".PDF").startswith(b"%PDF")

    def test_unsupported_format(self, preview):
        with pytest.raises(ValueError, match="Unsupported file type"):
            render_document(preview, "xlsx")


class TestSanitize:
    def test_replaces_smart_quotes(self):
        assert _sanitize_for_latin1("“hi” – ok") == '"hi" - ok'

    def test_drops_cjk(self):
        assert _sanitize_for_latin1("深圳") == "??"
