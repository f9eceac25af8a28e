# importers.py
"""
Normalisation of student rows coming from spreadsheets and API batches.

Rows arrive with whatever headers the school typed into its workbook, so
column names are matched fuzzily: lower-cased, stripped of every non-letter,
then checked for any of the accepted spellings as a substring.
"""
import logging
import numbers
import re
from datetime import date, datetime, timedelta, timezone as dt_timezone
from io import BytesIO

import pandas as pd

from .models import GRADE_CHOICES, grade_level

logger = logging.getLogger(__name__)

# Canonical field -> accepted (normalised) header spellings.
# Order matters: father_name is tried before student_name.
HEADER_ALIASES = (
    ('father_name', ('fullfathername', 'fathername')),
    ('student_name', ('fullstudentname', 'studentname', 'nameofthestudent')),
    ('gender', ('gender', 'gendermf')),
    ('date_of_birth', ('dateofbirth', 'dob', 'dateofbirthddmmyyyy')),
    ('school_code', ('schoolcode',)),
    ('grade', ('grade',)),
)

REQUIRED_COLUMNS = ('student_name', 'father_name', 'gender', 'date_of_birth')

TEMPLATE_HEADERS = ['Full Student Name', 'Full Father Name', 'Gender (M/F)', 'Date of Birth (DD/MM/YYYY)']

GRADES = [value for value, _ in GRADE_CHOICES]

# Sheet names (and free-form grade values) that map to a grade
GRADE_ALIASES = {
    'grade4': 'IV', 'grade5': 'V', 'grade6': 'VI', 'grade7': 'VII', 'grade8': 'VIII',
    '4': 'IV', '5': 'V', '6': 'VI', '7': 'VII', '8': 'VIII',
}

EXCEL_EPOCH_OFFSET_DAYS = 25569
DATE_PATTERN = re.compile(r'(\d{1,4})[/-](\d{1,2})[/-](\d{2,4})')
FILENAME_CODE_PATTERN = re.compile(r'^(\d{4})')
XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def normalize_header(header):
    if header is None:
        return ''
    return re.sub(r'[^a-z]', '', str(header).lower())


def match_header(header):
    """Canonical field name for a raw column header, or None."""
    normalized = normalize_header(header)
    if not normalized:
        return None
    for field, aliases in HEADER_ALIASES:
        if any(alias in normalized for alias in aliases):
            return field
    return None


def normalize_grade(value):
    if value is None:
        return None
    text = str(value).strip()
    upper = text.upper()
    if upper in GRADES:
        return upper
    compact = re.sub(r'[^a-z0-9]', '', text.lower())
    if compact.startswith('grade') and compact[5:].upper() in GRADES:
        return compact[5:].upper()
    return GRADE_ALIASES.get(compact)


def normalize_gender(value):
    if value is None:
        return None
    gender = str(value).strip().upper()
    if gender in ('MALE', 'FEMALE'):
        return gender[0]
    return gender


def excel_serial_to_date(serial):
    """Excel serial day count to a calendar date: (serial - 25569) days from the Unix epoch."""
    millis = round((float(serial) - EXCEL_EPOCH_OFFSET_DAYS) * 86400 * 1000)
    moment = datetime(1970, 1, 1, tzinfo=dt_timezone.utc) + timedelta(milliseconds=millis)
    return moment.date()


def parse_date_string(value):
    """
    Reassemble D/M/YYYY or YYYY-M-D style strings as ISO dates.

    The component order is taken from whichever group is four digits long.
    Strings that match neither layout are returned unchanged for the
    serializer to judge.
    """
    text = value.strip()
    match = DATE_PATTERN.search(text)
    if not match:
        return text
    first, second, third = match.groups()
    if len(first) == 4:
        return f"{first}-{second.zfill(2)}-{third.zfill(2)}"
    if len(third) == 4:
        return f"{third}-{second.zfill(2)}-{first.zfill(2)}"
    return text


def normalize_date_of_birth(value):
    """Coerce a spreadsheet or JSON date value to an ISO date string."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date().isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Number):
        try:
            return excel_serial_to_date(value).isoformat()
        except (OverflowError, ValueError):
            # Out of calendar range; left for the serializer to reject
            return value
    if isinstance(value, str):
        return parse_date_string(value)
    return value


def _clean(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def canonicalize_row(row):
    """Map a raw row to canonical field names with normalised values."""
    canonical = {}
    for key, value in row.items():
        field = match_header(key)
        if field is None or field in canonical:
            continue
        canonical[field] = _clean(value)

    if canonical.get('school_code') is not None:
        code = canonical['school_code']
        if isinstance(code, float) and code.is_integer():
            code = int(code)
        canonical['school_code'] = str(code).strip()
    if 'gender' in canonical:
        canonical['gender'] = normalize_gender(canonical['gender'])
    if 'grade' in canonical:
        canonical['grade'] = normalize_grade(canonical['grade']) or canonical['grade']
    if 'date_of_birth' in canonical:
        canonical['date_of_birth'] = normalize_date_of_birth(canonical['date_of_birth'])
    for field in ('student_name', 'father_name'):
        if canonical.get(field) is not None:
            canonical[field] = str(canonical[field]).strip()
    return canonical


# ==================== WORKBOOKS ====================
def _cell_code(value):
    value = _clean(value)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).lstrip("'").strip()
    match = FILENAME_CODE_PATTERN.match(text)
    return match.group(1) if match else None


def extract_school_code(filename, sheets):
    """
    School code for a workbook: leading four digits of the filename, else the
    first four digits of A1 on a grade sheet (ignoring 0000), else A1 of the
    first sheet.
    """
    match = FILENAME_CODE_PATTERN.match(filename or '')
    if match:
        return match.group(1)

    for sheet_name, frame in sheets.items():
        if not str(sheet_name).startswith('Grade ') or frame.empty:
            continue
        code = _cell_code(frame.iat[0, 0])
        if code and code != '0000':
            return code

    for frame in sheets.values():
        if not frame.empty:
            return _cell_code(frame.iat[0, 0])
        break
    return None


def read_student_workbook(excel_file, filename=None):
    """
    Read every grade sheet of a workbook into canonical student rows.

    Returns ``(school_code, rows)``. Sheets whose name is not a grade, or
    which lack one of the required columns, are skipped.
    """
    filename = filename or getattr(excel_file, 'name', '')
    sheets = pd.read_excel(excel_file, sheet_name=None, header=None, engine='openpyxl', dtype=object)
    school_code = extract_school_code(filename, sheets)

    rows = []
    for sheet_name, frame in sheets.items():
        grade = normalize_grade(sheet_name)
        if grade is None:
            logger.warning(f"Skipping sheet '{sheet_name}': not a grade sheet")
            continue
        if len(frame.index) < 2:
            continue

        columns = {}
        for index, header in enumerate(frame.iloc[0].tolist()):
            field = match_header(header)
            if field in REQUIRED_COLUMNS and field not in columns:
                columns[field] = index

        missing = [field for field in REQUIRED_COLUMNS if field not in columns]
        if missing:
            logger.warning(f"Skipping sheet '{sheet_name}': missing columns {', '.join(missing)}")
            continue

        for values in frame.iloc[1:].itertuples(index=False, name=None):
            raw = {field: _clean(values[index]) for field, index in columns.items()}
            if any(raw[field] is None for field in REQUIRED_COLUMNS):
                continue
            row = canonicalize_row(raw)
            row.update({
                'school_code': school_code,
                'grade': grade,
                'level': grade_level(grade),
            })
            rows.append(row)

    return school_code, rows


def build_import_template():
    """In-memory workbook with one sheet per grade and the expected headers."""
    output = BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        for number, grade in enumerate(GRADES, start=4):
            sheet_name = f"Grade {number}"
            frame = pd.DataFrame([{
                TEMPLATE_HEADERS[0]: 'Ali Raza',
                TEMPLATE_HEADERS[1]: 'Raza Ahmed',
                TEMPLATE_HEADERS[2]: 'M',
                TEMPLATE_HEADERS[3]: '15/03/2013',
            }], columns=TEMPLATE_HEADERS)
            frame.to_excel(writer, sheet_name=sheet_name, index=False)

            worksheet = writer.sheets[sheet_name]
            for column in worksheet.columns:
                width = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
                worksheet.column_dimensions[column[0].column_letter].width = min(width + 2, 40)
    output.seek(0)
    return output
