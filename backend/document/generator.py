"""Render a form preview into a downloadable document file."""

import io

from docx import Document as DocxDocument
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from config import settings
from forms.previews import Preview

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain; charset=utf-8",
}


def render_document(preview: Preview, fmt: str = "pdf") -> bytes:
    """Render the preview's title and sections in the requested format.

    Raises:
        ValueError: If the format is not supported.
    """
    generators = {
        "pdf": generate_pdf,
        "docx": generate_docx,
        "txt": generate_txt,
    }
    gen = generators.get(fmt.lower().lstrip("."))
    if gen is None:
        supported = ", ".join(sorted(generators.keys()))
        raise ValueError(f"Unsupported file type: {fmt}. Supported: {supported}")
    return gen(preview)


def generate_txt(preview: Preview) -> bytes:
    """Plain text file."""
    return preview.to_text().encode("utf-8")


def generate_pdf(preview: Preview) -> bytes:
    """PDF with a centred title, bold section headings and justified body text."""
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    # Helvetica only covers Latin-1; a configured TTF font renders CJK party names
    if settings.pdf_font_path:
        pdf.add_font("DocFont", fname=settings.pdf_font_path)
        family, clean = "DocFont", (lambda s: s)
        bold = ""
    else:
        family, clean = "Helvetica", _sanitize_for_latin1
        bold = "B"

    pdf.set_font(family, style=bold, size=14)
    pdf.multi_cell(0, 8, clean(preview.title), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(4)

    for section in preview.sections:
        if section.heading:
            pdf.set_font(family, style=bold, size=11)
            pdf.multi_cell(0, 6, clean(section.heading), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font(family, size=11)
        for paragraph in section.paragraphs:
            pdf.multi_cell(0, 6, clean(paragraph), align="J", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(3)
    return bytes(pdf.output())


# Unicode → ASCII replacements for Latin-1 safe PDF output
_UNICODE_REPLACEMENTS = {
    "\u2013": "-",   # en-dash
    "\u2014": "--",  # em-dash
    "\u2018": "'",   # left single quote
    "\u2019": "'",   # right single quote
    "\u201c": '"',   # left double quote
    "\u201d": '"',   # right double quote
    "\u2026": "...", # ellipsis
    "\u2022": "*",   # bullet
    "\u00a0": " ",   # non-breaking space
    "\u200b": "",    # zero-width space
    "\ufeff": "",    # BOM
}


def _sanitize_for_latin1(text: str) -> str:
    """Replace unicode characters that Helvetica cannot render."""
    for char, replacement in _UNICODE_REPLACEMENTS.items():
        text = text.replace(char, replacement)
    return text.encode("latin-1", errors="replace").decode("latin-1")


def generate_docx(preview: Preview) -> bytes:
    """Word document: title heading, one level-2 heading per section."""
    doc = DocxDocument()
    doc.add_heading(preview.title, level=1)
    for section in preview.sections:
        if section.heading:
            doc.add_heading(section.heading, level=2)
        for paragraph in section.paragraphs:
            doc.add_paragraph(paragraph)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
