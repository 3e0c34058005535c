"""
Document Merge Service for ID PASS Lite Card Issuance
Appends the static signature page to the card PDF using pypdf,
and renders the default signature page using ReportLab
"""

import io
import logging
from typing import Optional, Sequence, Tuple
from pathlib import Path

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer

from app.core.exceptions import MergeError

logger = logging.getLogger(__name__)


class SignaturePageTemplate:
    """Signature page appended to every issued card"""

    def __init__(self, title: str = "Identity Card - Signature Page", page_size=A4,
                 signature_box: Tuple[int, int, int, int] = (5, 2, 232, 72)):
        self.title = title
        self.page_size = page_size
        self.signature_box = signature_box
        self.styles = getSampleStyleSheet()
        self.setup_custom_styles()

    def setup_custom_styles(self):
        """Setup custom styles for the signature page"""
        self.styles.add(ParagraphStyle(
            name='PageTitle',
            parent=self.styles['Heading1'],
            fontSize=14,
            fontName='Helvetica-Bold',
            alignment=TA_CENTER,
            spaceAfter=12,
            textColor=colors.black
        ))

        self.styles.add(ParagraphStyle(
            name='Terms',
            parent=self.styles['Normal'],
            fontSize=9,
            fontName='Helvetica',
            alignment=TA_JUSTIFY,
            leading=12,
            spaceAfter=6,
            textColor=colors.black
        ))

    def _draw_signature_box(self, canvas, doc):
        """Outline the area the signing service stamps its signature into"""
        llx, lly, urx, ury = self.signature_box
        canvas.saveState()
        canvas.setStrokeColor(colors.grey)
        canvas.setDash(2, 2)
        canvas.rect(llx, lly, urx - llx, ury - lly)
        canvas.setFont('Helvetica-Oblique', 6)
        canvas.setFillColor(colors.grey)
        canvas.drawString(llx + 2, ury + 2, "Digital signature")
        canvas.restoreState()

    def generate(self) -> bytes:
        """Generate the signature page PDF"""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.page_size,
            rightMargin=20*mm,
            leftMargin=20*mm,
            topMargin=20*mm,
            bottomMargin=40*mm,
            title=self.title
        )

        story = [
            Paragraph(self.title, self.styles['PageTitle']),
            Spacer(1, 8),
            Paragraph(
                "This document contains an ID PASS Lite identity card. The QR code on the "
                "back of the card holds the card holder's details signed by the issuing "
                "authority; private details can only be read after entering the card PIN.",
                self.styles['Terms']
            ),
            Paragraph(
                "The document is digitally signed. Any modification after signing "
                "invalidates the signature.",
                self.styles['Terms']
            ),
        ]

        doc.build(story, onFirstPage=self._draw_signature_box, onLaterPages=self._draw_signature_box)
        pdf_bytes = buffer.getvalue()
        logger.info(f"Rendered default signature page ({len(pdf_bytes)} bytes)")
        return pdf_bytes


def load_signature_page(path: Optional[str] = None,
                        signature_box: Tuple[int, int, int, int] = (5, 2, 232, 72)) -> bytes:
    """
    Load the static signature page once at startup

    Reads the configured PDF, or renders the default page when no path is set.

    Raises:
        MergeError: the configured file cannot be read or is not a PDF
    """
    if not path:
        return SignaturePageTemplate(signature_box=signature_box).generate()

    try:
        pdf_bytes = Path(path).read_bytes()
    except OSError as e:
        raise MergeError(f"Cannot read signature page {path}: {e}") from e

    pages = page_count(pdf_bytes)
    logger.info(f"Loaded signature page {path} ({pages} page(s), {len(pdf_bytes)} bytes)")
    return pdf_bytes


def page_count(pdf_bytes: bytes) -> int:
    """Number of pages in a PDF"""
    try:
        return len(PdfReader(io.BytesIO(pdf_bytes)).pages)
    except (PyPdfError, ValueError, OSError) as e:
        raise MergeError(f"Unreadable PDF: {e}") from e


def merge_pdfs(documents: Sequence[bytes]) -> bytes:
    """
    Concatenate PDFs in order

    Raises:
        MergeError: any input is not a readable PDF
    """
    writer = PdfWriter()
    try:
        for index, document in enumerate(documents):
            if not document:
                raise MergeError(f"Document {index} is empty")
            writer.append(PdfReader(io.BytesIO(document)))

        output_buffer = io.BytesIO()
        writer.write(output_buffer)
    except MergeError:
        raise
    except (PyPdfError, ValueError, OSError, KeyError) as e:
        logger.error(f"PDF merge failed: {e}")
        raise MergeError(f"Failed to merge PDF documents: {e}") from e

    merged = output_buffer.getvalue()
    logger.info(f"Merged {len(documents)} documents into {len(writer.pages)} pages ({len(merged)} bytes)")
    return merged
