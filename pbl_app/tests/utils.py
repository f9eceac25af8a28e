from datetime import date
from io import BytesIO

from openpyxl import Workbook

from pbl_app.importers import TEMPLATE_HEADERS
from pbl_app.models import DraftFees, DraftResources, DraftSchool, School, Student


def make_draft(school_code='0405', disclaimer_accepted=True, with_resources=True, with_fees=True):
    draft = DraftSchool.objects.create(
        school_code=school_code,
        school_name='Beaconhouse Primary',
        school_type='coeducational',
        principal_name='Amina Khan',
        principal_email='principal@example.com',
        grade_iv=40,
        grade_v=35,
    )
    if with_resources:
        DraftResources.objects.create(school=draft, primary_teachers=4, middle_teachers=3, facilities=['library'])
    if with_fees:
        DraftFees.objects.create(
            school=draft,
            payment_method='cheque',
            cheque_number='CHQ-001',
            cheque_date=date(2024, 1, 10),
            head_of_institution='Amina Khan',
            disclaimer_accepted=disclaimer_accepted,
        )
    return draft


def make_school(school_code='0405', school_name='Beaconhouse Primary'):
    return School.objects.create(school_code=school_code, school_name=school_name, is_active=True)


def make_student(student_id, school_code='0405', grade='IV', **fields):
    values = {
        'student_name': 'Ali Raza',
        'father_name': 'Raza Ahmed',
        'gender': 'M',
        'date_of_birth': date(2013, 3, 15),
    }
    values.update(fields)
    return Student.objects.create(student_id=student_id, school_code=school_code, grade=grade, **values)


def build_workbook(sheets):
    """xlsx bytes from {sheet_name: [row, ...]}."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for sheet_name, rows in sheets.items():
        worksheet = workbook.create_sheet(sheet_name)
        for row in rows:
            worksheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer


def grade_sheet(*students):
    return [TEMPLATE_HEADERS] + [list(student) for student in students]
