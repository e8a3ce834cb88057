"""CSV and PDF exports of onboarding applications."""
from __future__ import annotations

import csv
import io

from django.utils import timezone

from onboarding.services import pdf

CSV_COLUMNS = (
    ('Application Number', 'application_number'),
    ('Hospital Name', 'hospital_name'),
    ('Facility Type', 'facility_type'),
    ('State', 'state'),
    ('City', 'city'),
    ('Contact Name', 'contact_name'),
    ('Contact Email', 'contact_email'),
    ('Contact Phone', 'contact_phone'),
    ('Bed Capacity', 'bed_capacity'),
    ('Status', 'status'),
    ('Evaluation Score', 'evaluation_score'),
    ('Submitted At', 'submitted_at'),
)

# Leading characters a spreadsheet would evaluate as a formula.
_FORMULA_PREFIXES = ('=', '+', '-', '@')


def _cell(value) -> str:
    if value is None:
        return ''
    if hasattr(value, 'isoformat'):
        return timezone.localtime(value).isoformat() if timezone.is_aware(value) else value.isoformat()
    text = str(value)
    if text.startswith(_FORMULA_PREFIXES) and not isinstance(value, (int, float)):
        return "'" + text
    return text


def export_csv(applications) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in CSV_COLUMNS])
    for application in applications:
        writer.writerow([_cell(getattr(application, field)) for _, field in CSV_COLUMNS])
    return buffer.getvalue()


def summary(applications) -> dict:
    rows = list(applications)
    approved = sum(1 for a in rows if a.status == 'APPROVED')
    rejected = sum(1 for a in rows if a.status == 'REJECTED')
    decided = approved + rejected
    return {
        'total': len(rows),
        'approved': approved,
        'rejected': rejected,
        'pending': sum(1 for a in rows if a.status in ('SUBMITTED', 'UNDER_REVIEW')),
        'approvalRate': f"{approved / decided * 100:.2f}%" if decided else '0.00%',
    }


def export_pdf(applications) -> bytes:
    rows = list(applications)
    return pdf.render_applications_report(rows, summary(rows))
