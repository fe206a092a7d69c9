"""Certificate PDF renderer (ReportLab).

The engine treats rendering as an external, fallible collaborator: it
asks for a file and gets back either a public URL or an error string.
A failed render never blocks issuance; the record is kept without a
URL and backfilled later (worker task or on-demand download).

Drawing is synchronous CPU work, so ``render`` pushes it onto the
default executor to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

import qrcode
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

_ACCENT = colors.HexColor("#1a56db")
_MUTED = colors.HexColor("#6b7280")
_INK = colors.HexColor("#111827")


@dataclass(frozen=True, slots=True)
class RenderResult:
    success: bool
    file_url: str | None = None
    error: str | None = None


class CertificateRenderer(Protocol):
    async def render(
        self,
        user_name: str,
        course_name: str,
        completion_date: datetime,
        certificate_number: str,
        instructor_name: str | None = None,
        organization_name: str | None = None,
    ) -> RenderResult: ...


def _qr_png(url: str) -> io.BytesIO:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=6,
        border=2,
    )
    qr.add_data(url)
    qr.make(fit=True)
    buf = io.BytesIO()
    qr.make_image(fill_color="black", back_color="white").save(buf, format="PNG")
    buf.seek(0)
    return buf


def _truncate(text: str, limit: int = 60) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def draw_certificate_pdf(
    *,
    user_name: str,
    course_name: str,
    completion_date: datetime,
    certificate_number: str,
    verification_url: str,
    instructor_name: str | None = None,
    organization_name: str | None = None,
) -> bytes:
    """Single-page landscape A4 certificate; returns the raw PDF bytes."""
    buf = io.BytesIO()
    page_w, page_h = landscape(A4)
    c = canvas.Canvas(buf, pagesize=landscape(A4))
    c.setTitle(f"Certificate {certificate_number}")

    margin = 1.5 * cm
    c.setStrokeColor(_ACCENT)
    c.setLineWidth(3)
    c.rect(margin, margin, page_w - 2 * margin, page_h - 2 * margin)

    center_x = page_w / 2

    if organization_name:
        c.setFillColor(_ACCENT)
        c.setFont("Helvetica-Bold", 24)
        c.drawCentredString(center_x, page_h - 3.5 * cm, organization_name.upper())

    c.setFillColor(_INK)
    c.setFont("Helvetica-Bold", 22)
    c.drawCentredString(center_x, page_h - 5.5 * cm, "Certificate of Completion")

    c.setFillColor(_MUTED)
    c.setFont("Helvetica", 12)
    c.drawCentredString(center_x, page_h - 6.5 * cm, "This certifies that")

    c.setFillColor(_ACCENT)
    c.setFont("Helvetica-Bold", 26)
    c.drawCentredString(center_x, page_h - 8 * cm, user_name)

    c.setFillColor(_MUTED)
    c.setFont("Helvetica", 12)
    c.drawCentredString(center_x, page_h - 9.2 * cm, "has successfully completed the course")

    c.setFillColor(_INK)
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(center_x, page_h - 10.2 * cm, _truncate(course_name))

    if instructor_name:
        c.setFillColor(_MUTED)
        c.setFont("Helvetica", 10)
        c.drawCentredString(center_x, page_h - 11 * cm, f"Instructor: {instructor_name}")

    c.setFillColor(colors.HexColor("#374151"))
    c.setFont("Helvetica", 11)
    c.drawCentredString(
        center_x, page_h - 12 * cm, f"Issued on {completion_date.strftime('%B %d, %Y')}"
    )

    qr_size = 2.8 * cm
    c.drawImage(
        ImageReader(_qr_png(verification_url)),
        page_w - 3.5 * cm - qr_size,
        2.5 * cm,
        width=qr_size,
        height=qr_size,
    )

    c.setFillColor(colors.HexColor("#9ca3af"))
    c.setFont("Helvetica", 8)
    c.drawCentredString(center_x, 2.8 * cm, f"Certificate No. {certificate_number}")
    c.setFont("Helvetica", 7)
    c.drawCentredString(center_x, 2.2 * cm, f"Verify at: {verification_url}")

    c.showPage()
    c.save()
    return buf.getvalue()


class ReportLabCertificateRenderer:
    """Writes ``<certificate_number>.pdf`` under ``directory``.

    The public URL is ``<base_url>/<certificate_number>.pdf``; serving the
    directory is left to the reverse proxy.
    """

    def __init__(self, directory: str | Path, base_url: str, verify_base_url: str) -> None:
        self._directory = Path(directory)
        self._base_url = base_url.rstrip("/")
        self._verify_base_url = verify_base_url.rstrip("/")

    def _write(self, filename: str, **fields) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        (self._directory / filename).write_bytes(draw_certificate_pdf(**fields))

    async def render(
        self,
        user_name: str,
        course_name: str,
        completion_date: datetime,
        certificate_number: str,
        instructor_name: str | None = None,
        organization_name: str | None = None,
    ) -> RenderResult:
        filename = f"{certificate_number}.pdf"
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self._write(
                    filename,
                    user_name=user_name,
                    course_name=course_name,
                    completion_date=completion_date,
                    certificate_number=certificate_number,
                    verification_url=(
                        f"{self._verify_base_url}/certificates/verify/{certificate_number}"
                    ),
                    instructor_name=instructor_name,
                    organization_name=organization_name,
                ),
            )
        except Exception as e:
            logger.warning("Certificate render failed for %s: %s", certificate_number, e)
            return RenderResult(success=False, error=str(e))
        return RenderResult(success=True, file_url=f"{self._base_url}/{filename}")
