import io
import logging
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from modules.certificates.models.certificate import Certificate
from modules.certificates.models.department import get_department_name

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"


def _fmt(value) -> str:
    return value.strftime(DATE_FORMAT) if value else "-"


def _draw_signature(pdf: canvas.Canvas, image: Optional[bytes], x: float, y: float) -> None:
    if not image:
        return
    try:
        pdf.drawImage(ImageReader(io.BytesIO(image)), x, y, width=30 * mm, height=10 * mm,
                      preserveAspectRatio=True, mask="auto")
    except (OSError, ValueError) as e:
        # Unreadable images still leave the signer's name on the page
        logger.warning("Skipping unreadable e-signature image: %s", e)


def render_certificate_pdf(certificate: Certificate) -> bytes:
    """Renders a completed No Dues Certificate as a one-page PDF"""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    left = 20 * mm
    y = height - 25 * mm

    pdf.setTitle(f"No Dues Certificate {certificate.certificate_number}")
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawCentredString(width / 2, y, "NO DUES CERTIFICATE")
    y -= 10 * mm

    pdf.setFont("Helvetica", 10)
    pdf.drawString(left, y, f"Certificate No.: {certificate.certificate_number}")
    pdf.drawRightString(width - left, y, f"Issue Date: {_fmt(certificate.issue_date)}")
    y -= 10 * mm

    details = [
        ("Name of Student", certificate.student_name),
        ("Enrollment No.", certificate.student_roll_number),
        ("Computer Code", certificate.computer_code or "-"),
        ("Department", certificate.branch or "-"),
        ("Semester / Year", str(certificate.semester) if certificate.semester is not None else "-"),
        ("E-mail", certificate.email or "-"),
        ("Mobile No.", certificate.mobile_number or "-"),
    ]
    for label, value in details:
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(left, y, f"{label}:")
        pdf.setFont("Helvetica", 10)
        pdf.drawString(left + 45 * mm, y, value)
        y -= 6 * mm

    y -= 6 * mm
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(left, y, "#")
    pdf.drawString(left + 10 * mm, y, "Department")
    pdf.drawString(left + 65 * mm, y, "Signed By")
    pdf.drawString(left + 115 * mm, y, "Date")
    pdf.drawString(left + 140 * mm, y, "Signature")
    y -= 8 * mm

    pdf.setFont("Helvetica", 10)
    for index, record in enumerate(certificate.signatures, start=1):
        pdf.drawString(left, y, str(index))
        pdf.drawString(left + 10 * mm, y, get_department_name(record.department))
        pdf.drawString(left + 65 * mm, y, record.signed_by_name or "-")
        pdf.drawString(left + 115 * mm, y, _fmt(record.signed_at))
        _draw_signature(pdf, record.e_signature, left + 140 * mm, y - 3 * mm)
        y -= 12 * mm

    y -= 10 * mm
    pdf.setFont("Helvetica-Bold", 11)
    pdf.drawString(left, y, "Principal")
    pdf.setFont("Helvetica", 10)
    pdf.drawString(left + 65 * mm, y, certificate.principal_signed_by or "-")
    pdf.drawString(left + 115 * mm, y, _fmt(certificate.principal_signed_at))
    _draw_signature(pdf, certificate.principal_e_signature, left + 140 * mm, y - 3 * mm)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
