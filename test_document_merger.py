#!/usr/bin/env python3
"""
Document Merge Tests
Signature page loading and PDF concatenation
"""

import io

import pytest
from pypdf import PdfReader

from app.core.exceptions import MergeError
from app.services.document_merger import load_signature_page, merge_pdfs, page_count
from conftest import make_pdf


def test_default_signature_page_is_single_page(signature_page):
    assert signature_page.startswith(b"%PDF")
    assert page_count(signature_page) == 1


def test_signature_page_loaded_from_file(tmp_path):
    path = tmp_path / "signaturepage.pdf"
    path.write_bytes(make_pdf(1))

    assert load_signature_page(str(path)) == path.read_bytes()


def test_missing_signature_page_file_raises(tmp_path):
    with pytest.raises(MergeError):
        load_signature_page(str(tmp_path / "missing.pdf"))


@pytest.mark.parametrize("template_pages", [1, 2, 4])
def test_merged_page_count_is_template_plus_signature_pages(template_pages, signature_page):
    merged = merge_pdfs([make_pdf(template_pages), signature_page])
    assert page_count(merged) == template_pages + 1


def test_merge_keeps_document_order(signature_page):
    merged = merge_pdfs([make_pdf(2), signature_page])

    reader = PdfReader(io.BytesIO(merged))
    assert "Card page 1" in reader.pages[0].extract_text()
    assert "Card page 2" in reader.pages[1].extract_text()
    assert "Signature Page" in reader.pages[2].extract_text()


@pytest.mark.parametrize("document", [b"", b"this is not a pdf"])
def test_unreadable_document_raises(document, signature_page):
    with pytest.raises(MergeError):
        merge_pdfs([document, signature_page])
