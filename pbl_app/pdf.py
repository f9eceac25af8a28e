"""
Registration form PDF

Renders a finalized school with its resources and fees as a printable form.
"""
from io import BytesIO
from xml.sax.saxutils import escape

from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle


def _display(value):
    if value is None or value == '':
        return '-'
    if isinstance(value, (list, tuple)):
        return ', '.join(str(item) for item in value) or '-'
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if hasattr(value, 'strftime'):
        return value.strftime('%d/%m/%Y')
    return str(value)


def _section(title, rows, styles):
    table = Table(
        [[Paragraph(label, styles['Label']), Paragraph(escape(_display(value)), styles['Value'])] for label, value in rows],
        colWidths=[60 * mm, 110 * mm],
    )
    table.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#f0f0f0')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]))
    return [Paragraph(title, styles['Section']), table, Spacer(1, 6 * mm)]


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name='FormTitle', parent=styles['Title'], alignment=TA_CENTER, fontSize=16))
    styles.add(ParagraphStyle(name='Section', parent=styles['Heading2'], fontSize=12, spaceAfter=4))
    styles.add(ParagraphStyle(name='Label', parent=styles['Normal'], fontName='Helvetica-Bold', fontSize=9))
    styles.add(ParagraphStyle(name='Value', parent=styles['Normal'], fontSize=9))
    return styles


def generate_registration_pdf(school, resources=None, fees=None):
    """
    Build the registration form for a school.

    Args:
        school: School instance
        resources: Resources instance or None
        fees: Fees instance or None

    Returns:
        BytesIO: PDF file positioned at the start
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=20 * mm, rightMargin=20 * mm, topMargin=18 * mm, bottomMargin=18 * mm,
        title=f"PBL Registration - {school.school_code}",
    )
    styles = _styles()

    story = [
        Paragraph('Project Based Learning - School Registration', styles['FormTitle']),
        Paragraph(f"School code: {school.school_code}", styles['Normal']),
        Spacer(1, 6 * mm),
    ]

    story += _section('School Information', [
        ('School name', school.school_name),
        ('Address', school.school_address),
        ('Contact numbers', school.contact_numbers),
        ('School type', school.get_school_type_display() if school.school_type else None),
        ('Academic year', f"{_display(school.academic_year_start)} to {_display(school.academic_year_end)}"),
        ('Grade levels', f"{_display(school.grade_level_from)} to {_display(school.grade_level_till)}"),
        ('Languages', school.languages),
        ('Other language', school.other_language),
        ('PSP/MSP registration', school.psp_msp_registration),
        ('Status', 'Active' if school.is_active else 'Inactive'),
        ('Registration completed', school.registration_completed_at),
    ], styles)

    story += _section('Contacts', [
        ('Principal', f"{_display(school.principal_name)} / {_display(school.principal_email)} / {_display(school.principal_cell)}"),
        ('Primary coordinator', f"{_display(school.primary_coordinator_name)} / {_display(school.primary_coordinator_email)} / {_display(school.primary_coordinator_cell)}"),
        ('Middle coordinator', f"{_display(school.middle_coordinator_name)} / {_display(school.middle_coordinator_email)} / {_display(school.middle_coordinator_cell)}"),
    ], styles)

    story += _section('Enrolment', [
        ('Grade IV', school.grade_iv),
        ('Grade V', school.grade_v),
        ('Grade VI', school.grade_vi),
        ('Grade VII', school.grade_vii),
        ('Grade VIII', school.grade_viii),
    ], styles)

    if resources is not None:
        story += _section('Resources and Support', [
            ('Primary teachers', resources.primary_teachers),
            ('Middle teachers', resources.middle_teachers),
            ('Undergraduate teachers', resources.undergraduate_teachers),
            ('Graduate teachers', resources.graduate_teachers),
            ('Postgraduate teachers', resources.postgraduate_teachers),
            ('Education degree teachers', resources.education_degree_teachers),
            ('Total weeks', resources.total_weeks),
            ('Weekly periods', resources.weekly_periods),
            ('Period duration (min)', resources.period_duration),
            ('Max students per class', resources.max_students),
            ('Facilities', resources.facilities),
            ('Other facilities', [f for f in (resources.other_facility_1, resources.other_facility_2,
                                              resources.other_facility_3) if f]),
        ], styles)

    if fees is not None:
        payment_rows = [('Payment method', fees.get_payment_method_display() if fees.payment_method else None)]
        if fees.payment_method == 'cheque':
            payment_rows += [('Cheque number', fees.cheque_number), ('Cheque date', fees.cheque_date)]
        elif fees.payment_method == 'deposit':
            payment_rows += [
                ('Deposit slip number', fees.deposit_slip_number),
                ('Pay order number', fees.deposit_pay_order_number),
                ('Deposit date', fees.deposit_date),
            ]
        payment_rows += [
            ('Amount', fees.amount),
            ('Head of institution', fees.head_of_institution),
            ('Disclaimer accepted', fees.disclaimer_accepted),
        ]
        story += _section('Registration Fees', payment_rows, styles)

    story.append(Paragraph(f"Generated on {timezone.now().strftime('%d/%m/%Y %H:%M')}", styles['Italic']))

    doc.build(story)
    buffer.seek(0)
    return buffer
