# services.py
import logging
import secrets
from collections import OrderedDict
from dataclasses import dataclass, field

from django.conf import settings
from django.contrib.auth.hashers import make_password
from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import RegistrationConflict, RegistrationIncomplete, SchoolNotRegistered
from .importers import canonicalize_row
from .models import (
    DraftFees, DraftResources, DraftSchool, Fees, Resources, School,
    SchoolCredentials, Student, User, grade_code,
)
from .serializers import StudentImportSerializer

logger = logging.getLogger(__name__)

# Columns never carried from a draft row to its final counterpart
NON_COPIED_FIELDS = {'id', 'school', 'created_at', 'updated_at'}


def _copy_values(source, target_model):
    target_fields = {f.name for f in target_model._meta.concrete_fields}
    return {
        f.name: getattr(source, f.name)
        for f in source._meta.concrete_fields
        if f.name not in NON_COPIED_FIELDS and f.name in target_fields
    }


def generate_student_id(school_code, grade, sequence):
    return f"{school_code}-{grade_code(grade)}-{sequence:02d}"


# ==================== REGISTRATION ====================
@dataclass
class CompletedRegistration:
    school: School
    credentials: SchoolCredentials
    password: str  # plaintext, returned once


class RegistrationService:

    @staticmethod
    def generate_password():
        return secrets.token_urlsafe(12)

    @classmethod
    def complete_registration(cls, school_code, performed_by=None):
        """
        Promote a school's draft rows to the final tables.

        Preconditions are checked before anything is written: the draft school
        exists, its draft fees carry an accepted disclaimer, and the code has
        not been finalized already. Everything else happens in one transaction.
        """
        try:
            with transaction.atomic():
                draft = DraftSchool.objects.select_for_update().filter(school_code=school_code).first()
                if draft is None:
                    raise RegistrationIncomplete(
                        f"No draft registration found for school code '{school_code}'", school_code
                    )

                draft_fees = DraftFees.objects.for_code(school_code)
                if draft_fees is None or not draft_fees.disclaimer_accepted:
                    raise RegistrationIncomplete(
                        'Registration cannot be completed until the fees disclaimer has been accepted',
                        school_code,
                    )

                if School.objects.filter(school_code=school_code).exists():
                    raise RegistrationConflict(
                        f"School code '{school_code}' has already been registered", school_code
                    )
                if User.objects.filter(username=school_code).exists():
                    raise RegistrationConflict(
                        f"Username '{school_code}' is already taken by another account", school_code
                    )

                draft_resources = DraftResources.objects.for_code(school_code)

                school = School.objects.create(
                    **_copy_values(draft, School),
                    is_active=True,
                    registration_completed_at=timezone.now(),
                )
                if draft_resources is not None:
                    Resources.objects.create(school=school, **_copy_values(draft_resources, Resources))
                Fees.objects.create(school=school, **_copy_values(draft_fees, Fees))

                password = cls.generate_password()
                user = User(username=school_code, role='school', first_name=school.school_name[:150])
                user.set_unusable_password()
                user.save()
                credentials = SchoolCredentials.objects.create(
                    school=school,
                    user=user,
                    username=school_code,
                    password=make_password(password),
                    is_active=True,
                )

                # Children before the parent
                DraftFees.objects.delete_for(school_code)
                DraftResources.objects.delete_for(school_code)
                DraftSchool.objects.delete_for(school_code)
        except IntegrityError as e:
            logger.warning(f"Registration for {school_code} collided with an existing row: {str(e)}")
            raise RegistrationConflict(
                f"School code '{school_code}' conflicts with an existing registration", school_code
            ) from e

        logger.info(f"Registration completed for school {school_code} by {performed_by or 'system'}")
        return CompletedRegistration(school=school, credentials=credentials, password=password)

    @staticmethod
    def delete_school(school):
        """Delete a final school with its resources, fees and login; students are kept."""
        with transaction.atomic():
            User.objects.filter(school_credentials__school=school).delete()
            school.delete()

    @staticmethod
    def set_active(school, is_active):
        with transaction.atomic():
            school.is_active = is_active
            school.save(update_fields=['is_active', 'updated_at'])
            SchoolCredentials.objects.filter(school=school).update(is_active=is_active, updated_at=timezone.now())
        return school


# ==================== STUDENTS ====================
class StudentService:

    @staticmethod
    def create_student(school_code, student_name, father_name, gender, date_of_birth, grade):
        if not School.objects.filter(school_code=school_code).exists():
            raise SchoolNotRegistered(school_code)

        with transaction.atomic():
            sequence = Student.objects.next_sequence(school_code, grade)
            return Student.objects.create(
                student_id=generate_student_id(school_code, grade, sequence),
                school_code=school_code,
                student_name=student_name,
                father_name=father_name,
                gender=gender,
                date_of_birth=date_of_birth,
                grade=grade,
            )


@dataclass
class ImportResult:
    imported_count: int = 0
    duplicate_count: int = 0
    failures: list = field(default_factory=list)
    unregistered_schools: list = field(default_factory=list)
    students: list = field(default_factory=list)

    @property
    def is_error(self):
        return self.imported_count == 0 and self.duplicate_count == 0

    @property
    def message(self):
        if self.imported_count and self.duplicate_count:
            message = (f"Successfully imported {self.imported_count} students. "
                       f"{self.duplicate_count} duplicates were skipped.")
        elif self.imported_count:
            message = f"Successfully imported {self.imported_count} students."
        elif self.duplicate_count:
            message = f"No new students imported. {self.duplicate_count} duplicates were skipped."
        else:
            message = 'No students were imported.'
        if self.unregistered_schools:
            message += (f" {len(self.unregistered_schools)} school(s) were not registered: "
                        f"{', '.join(self.unregistered_schools)}")
        return message


class StudentImportService:
    """
    Bulk student ingestion.

    Rows are validated one by one, grouped per school, checked against the
    school's existing students for duplicates, numbered per grade and then
    inserted per school in a single statement.
    """

    def __init__(self, default_school_code=None):
        self.default_school_code = default_school_code

    def import_rows(self, raw_rows):
        result = ImportResult()
        groups = OrderedDict()

        for index, raw in enumerate(raw_rows, start=1):
            if not isinstance(raw, dict):
                result.failures.append({'row': index, 'data': raw, 'error': 'Row must be an object'})
                continue

            row = canonicalize_row(raw)
            if not row.get('school_code'):
                row['school_code'] = self.default_school_code
            if not row.get('school_code'):
                result.failures.append({'row': index, 'data': raw, 'error': 'Missing school code'})
                continue

            serializer = StudentImportSerializer(data=row)
            if not serializer.is_valid():
                result.failures.append({'row': index, 'data': raw, 'errors': serializer.errors})
                continue

            groups.setdefault(row['school_code'], []).append((index, serializer.validated_data))

        for school_code, group in groups.items():
            if not School.objects.filter(school_code=school_code).exists():
                result.unregistered_schools.append(school_code)
                message = SchoolNotRegistered(school_code).message
                for index, data in group:
                    result.failures.append({'row': index, 'data': _jsonable(data), 'error': message})
                continue

            imported, duplicates = self._import_group(school_code, [data for _, data in group])
            result.imported_count += len(imported)
            result.duplicate_count += duplicates
            result.students.extend(imported)

        return result

    def _import_group(self, school_code, rows):
        with transaction.atomic():
            existing = Student.objects.for_school(school_code).values_list(
                'student_name', 'father_name', 'date_of_birth'
            )
            seen = {Student.duplicate_key(*values) for values in existing}

            by_grade = OrderedDict()
            duplicates = 0
            for data in rows:
                key = Student.duplicate_key(data['student_name'], data['father_name'], data['date_of_birth'])
                if key in seen:
                    duplicates += 1
                    continue
                seen.add(key)
                by_grade.setdefault(data['grade'], []).append(data)

            students = []
            for grade, grade_rows in by_grade.items():
                sequence = Student.objects.next_sequence(school_code, grade)
                for offset, data in enumerate(grade_rows):
                    students.append(Student(
                        student_id=generate_student_id(school_code, grade, sequence + offset),
                        school_code=school_code,
                        student_name=data['student_name'],
                        father_name=data['father_name'],
                        gender=data['gender'],
                        date_of_birth=data['date_of_birth'],
                        grade=grade,
                    ))

            if students:
                Student.objects.bulk_create(students)

        logger.info(f"Imported {len(students)} students into {school_code}, {duplicates} duplicates skipped")
        return students, duplicates


def _jsonable(data):
    return {
        key: value.isoformat() if hasattr(value, 'isoformat') else value
        for key, value in data.items()
    }


# ==================== ADMIN ACCOUNT ====================
def ensure_admin_user(username=None, password=None):
    """Create or reset the administrator account. Returns (user, created)."""
    username = username or settings.PBL_ADMIN_USERNAME
    password = password or settings.PBL_ADMIN_PASSWORD

    user = User.objects.filter(username=username).first()
    created = user is None
    if created:
        user = User(username=username)
    user.role = 'admin'
    user.is_staff = True
    user.is_superuser = True
    user.is_active = True
    user.set_password(password)
    user.save()
    return user, created
