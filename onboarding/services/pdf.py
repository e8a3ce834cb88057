"""PDF rendering for contracts and application reports."""
from __future__ import annotations

from io import BytesIO
from typing import Sequence

from django.conf import settings
from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import PageBreak, Paragraph, Preformatted, SimpleDocTemplate, Spacer, Table, TableStyle
from xml.sax.saxutils import escape

from onboarding.templatetags.contract_filters import longdate, money, percent


def _doc(buffer: BytesIO, title: str) -> SimpleDocTemplate:
    return SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=title,
        leftMargin=48,
        rightMargin=48,
        topMargin=54,
        bottomMargin=48,
    )


def _signature_rows(contract) -> list[list[str]]:
    rows = [['Party', 'Signed by', 'E-mail', 'Date']]
    operator = settings.ONBOARDING['OPERATOR_NAME']
    for label, name, email, at in (
        ('Hospital', contract.hospital_signed_by, contract.hospital_signer_email, contract.hospital_signed_at),
        (operator, contract.operator_signed_by, contract.operator_signer_email, contract.operator_signed_at),
    ):
        stamp = timezone.localtime(at).strftime('%d %b %Y %H:%M') if at else 'Pending'
        rows.append([label, name or '-', email or '-', stamp])
    return rows


def render_contract(contract, *, executed: bool = False, document_hash: str = '') -> bytes:
    """The contract as sent for signature, or the executed copy."""
    buffer = BytesIO()
    doc = _doc(buffer, contract.contract_number)
    styles = getSampleStyleSheet()
    body = styles['BodyText']
    elements = [Paragraph('PARTNERSHIP AGREEMENT', styles['Title'])]
    if executed:
        elements.append(Paragraph('(EXECUTED)', styles['Heading3']))
        elements.append(Paragraph('This contract has been signed by both parties.', body))
    elements.append(Spacer(1, 12))

    summary = [
        ['Contract number', contract.contract_number],
        ['Hospital', contract.application.hospital_name],
        ['Term', f"{longdate(contract.start_date)} to {longdate(contract.end_date)}"],
        ['Setup fee', money(contract.setup_fee, contract.currency)],
        ['Monthly fee', money(contract.monthly_fee, contract.currency)],
        ['Revenue share', percent(contract.revenue_share_percentage)],
        ['Version', str(contract.version)],
    ]
    table = Table(summary, colWidths=[140, 330])
    table.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    elements += [table, Spacer(1, 18)]
    elements.append(Preformatted(contract.content or '', styles['Code'], maxLineLength=95))

    if executed:
        elements.append(PageBreak())
        elements.append(Paragraph('SIGNATURES', styles['Heading2']))
        signatures = Table(_signature_rows(contract), repeatRows=1)
        signatures.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ]))
        elements += [signatures, Spacer(1, 18)]
        elements.append(Paragraph(f"Document verification hash: {escape(document_hash)}", body))

    doc.build(elements)
    return buffer.getvalue()


def render_applications_report(applications: Sequence, stats: dict) -> bytes:
    buffer = BytesIO()
    doc = _doc(buffer, 'Onboarding applications')
    styles = getSampleStyleSheet()
    body = styles['BodyText']
    generated = timezone.localtime().strftime('%d %b %Y %H:%M')
    elements = [
        Paragraph('Hospital Onboarding Applications Report', styles['Title']),
        Paragraph(f"Generated: {generated}", body),
        Spacer(1, 12),
        Paragraph('Summary', styles['Heading2']),
    ]
    for label, key in (('Total applications', 'total'), ('Approved', 'approved'), ('Rejected', 'rejected'),
                       ('Pending', 'pending'), ('Approval rate', 'approvalRate')):
        elements.append(Paragraph(f"{label}: {stats.get(key, 0)}", body))
    elements.append(Spacer(1, 12))

    rows = [['Number', 'Hospital', 'State', 'Status', 'Score', 'Submitted']]
    for a in applications:
        rows.append([
            a.application_number,
            Paragraph(escape(a.hospital_name), body),
            a.state,
            a.status,
            '' if a.evaluation_score is None else f"{a.evaluation_score:.2f}",
            timezone.localtime(a.submitted_at).strftime('%Y-%m-%d') if a.submitted_at else '',
        ])
    table = Table(rows, repeatRows=1, colWidths=[110, 150, 60, 80, 45, 65])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    elements.append(table)
    doc.build(elements)
    return buffer.getvalue()
