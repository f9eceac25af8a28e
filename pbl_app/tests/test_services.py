from datetime import date

from django.contrib.auth.hashers import check_password
from django.test import TestCase

from pbl_app.exceptions import RegistrationConflict, RegistrationIncomplete, SchoolNotRegistered
from pbl_app.models import (
    DraftFees, DraftResources, DraftSchool, Fees, Resources, School, SchoolCredentials, Student, User,
)
from pbl_app.services import (
    RegistrationService, StudentImportService, StudentService, ensure_admin_user, generate_student_id,
)

from .utils import make_draft, make_school, make_student


class CompleteRegistrationTest(TestCase):

    def test_requires_draft_school(self):
        with self.assertRaises(RegistrationIncomplete):
            RegistrationService.complete_registration('0405')
        self.assertFalse(School.objects.exists())

    def test_requires_draft_fees(self):
        make_draft(with_fees=False)

        with self.assertRaises(RegistrationIncomplete):
            RegistrationService.complete_registration('0405')

        self.assertFalse(School.objects.exists())
        self.assertTrue(DraftSchool.objects.filter(school_code='0405').exists())

    def test_requires_accepted_disclaimer(self):
        make_draft(disclaimer_accepted=False)

        with self.assertRaises(RegistrationIncomplete):
            RegistrationService.complete_registration('0405')

        self.assertFalse(School.objects.exists())
        self.assertFalse(SchoolCredentials.objects.exists())
        self.assertEqual(DraftFees.objects.count(), 1)

    def test_promotes_draft_and_issues_credentials(self):
        make_draft()

        completed = RegistrationService.complete_registration('0405')

        school = School.objects.get(school_code='0405')
        self.assertTrue(school.is_active)
        self.assertIsNotNone(school.registration_completed_at)
        self.assertEqual(school.school_name, 'Beaconhouse Primary')
        self.assertEqual(school.grade_iv, 40)

        self.assertEqual(Resources.objects.for_code('0405').primary_teachers, 4)
        fees = Fees.objects.for_code('0405')
        self.assertTrue(fees.disclaimer_accepted)
        self.assertEqual(fees.cheque_number, 'CHQ-001')

        credentials = completed.credentials
        self.assertEqual(credentials.username, '0405')
        self.assertTrue(credentials.is_active)
        self.assertNotEqual(credentials.password, completed.password)
        self.assertTrue(check_password(completed.password, credentials.password))
        self.assertEqual(credentials.user.role, 'school')

        self.assertFalse(DraftSchool.objects.exists())
        self.assertFalse(DraftResources.objects.exists())
        self.assertFalse(DraftFees.objects.exists())

    def test_promotes_without_resources(self):
        make_draft(with_resources=False)

        RegistrationService.complete_registration('0405')

        self.assertTrue(School.objects.filter(school_code='0405').exists())
        self.assertFalse(Resources.objects.exists())

    def test_already_registered_code_conflicts(self):
        make_school('0405')
        make_draft('0405')

        with self.assertRaises(RegistrationConflict):
            RegistrationService.complete_registration('0405')

        # Nothing written, nothing removed
        self.assertEqual(School.objects.count(), 1)
        self.assertFalse(SchoolCredentials.objects.exists())
        self.assertTrue(DraftSchool.objects.filter(school_code='0405').exists())

    def test_username_taken_by_another_account_conflicts(self):
        User.objects.create_user(username='0405', password='admin123', role='admin')
        make_draft('0405')

        with self.assertRaises(RegistrationConflict) as raised:
            RegistrationService.complete_registration('0405')

        self.assertIn('Username', raised.exception.message)
        self.assertFalse(School.objects.exists())
        self.assertTrue(DraftSchool.objects.filter(school_code='0405').exists())

    def test_second_promotion_finds_no_draft(self):
        make_draft()
        RegistrationService.complete_registration('0405')

        with self.assertRaises(RegistrationIncomplete):
            RegistrationService.complete_registration('0405')
        self.assertEqual(School.objects.count(), 1)

    def test_delete_school_keeps_students(self):
        make_draft()
        completed = RegistrationService.complete_registration('0405')
        make_student('0405-04-01')

        RegistrationService.delete_school(completed.school)

        self.assertFalse(School.objects.exists())
        self.assertFalse(SchoolCredentials.objects.exists())
        self.assertFalse(User.objects.filter(username='0405').exists())
        self.assertTrue(Student.objects.filter(student_id='0405-04-01').exists())

    def test_set_active_follows_credentials(self):
        make_draft()
        completed = RegistrationService.complete_registration('0405')

        RegistrationService.set_active(completed.school, False)

        self.assertFalse(School.objects.get(school_code='0405').is_active)
        self.assertFalse(SchoolCredentials.objects.get(username='0405').is_active)


class StudentServiceTest(TestCase):

    def test_generate_student_id(self):
        self.assertEqual(generate_student_id('0405', 'VI', 1), '0405-06-01')
        self.assertEqual(generate_student_id('0405', 'VIII', 12), '0405-08-12')

    def test_create_student_assigns_next_id(self):
        make_school()
        make_student('0405-05-04', grade='V')

        student = StudentService.create_student(
            '0405', 'Hina Ali', 'Ali Khan', 'F', date(2014, 6, 1), 'V'
        )

        self.assertEqual(student.student_id, '0405-05-05')

    def test_create_student_requires_registered_school(self):
        with self.assertRaises(SchoolNotRegistered):
            StudentService.create_student('9999', 'Hina Ali', 'Ali Khan', 'F', date(2014, 6, 1), 'V')


class StudentImportServiceTest(TestCase):

    def setUp(self):
        make_school('0405')

    def row(self, name, father='Raza Ahmed', dob='2013-03-15', grade='VI', **extra):
        values = {
            'Student Name': name,
            'Father Name': father,
            'Gender': 'M',
            'Date of Birth': dob,
            'Grade': grade,
        }
        values.update(extra)
        return values

    def test_ids_are_consecutive_per_grade(self):
        result = StudentImportService('0405').import_rows([
            self.row('Ali Raza'),
            self.row('Bilal Raza'),
            self.row('Omar Raza', grade='IV'),
        ])

        self.assertEqual(result.imported_count, 3)
        self.assertEqual(
            sorted(Student.objects.values_list('student_id', flat=True)),
            ['0405-04-01', '0405-06-01', '0405-06-02'],
        )

    def test_numbering_continues_after_existing_students(self):
        make_student('0405-06-01', grade='VI', student_name='Existing')

        StudentImportService('0405').import_rows([self.row('Ali Raza')])

        self.assertTrue(Student.objects.filter(student_id='0405-06-02', student_name='Ali Raza').exists())

    def test_existing_student_is_skipped_as_duplicate(self):
        make_student('0405-06-01', grade='VI')

        result = StudentImportService('0405').import_rows([
            self.row('  ali raza ', father='RAZA AHMED'),
        ])

        self.assertEqual(result.imported_count, 0)
        self.assertEqual(result.duplicate_count, 1)
        self.assertFalse(result.is_error)
        self.assertEqual(Student.objects.count(), 1)

    def test_repeated_row_in_batch_counts_as_duplicate(self):
        result = StudentImportService('0405').import_rows([self.row('Ali Raza'), self.row('Ali Raza')])

        self.assertEqual(result.imported_count, 1)
        self.assertEqual(result.duplicate_count, 1)

    def test_same_student_at_another_school_is_not_duplicate(self):
        make_school('0406', 'Other School')
        make_student('0406-06-01', school_code='0406', grade='VI')

        result = StudentImportService('0405').import_rows([self.row('Ali Raza')])

        self.assertEqual(result.imported_count, 1)

    def test_unregistered_school_rows_are_rejected(self):
        result = StudentImportService().import_rows([
            self.row('Ali Raza', **{'School Code': '0405'}),
            self.row('Sara Khan', **{'School Code': '9999'}),
        ])

        self.assertEqual(result.imported_count, 1)
        self.assertEqual(result.unregistered_schools, ['9999'])
        self.assertEqual(len(result.failures), 1)
        self.assertIn('not registered', result.failures[0]['error'])
        self.assertFalse(Student.objects.filter(school_code='9999').exists())

    def test_invalid_rows_fail_individually(self):
        result = StudentImportService('0405').import_rows([
            self.row('Ali Raza'),
            self.row('Sara Khan', Gender='X'),
            self.row('Hina Ali', dob='not a date'),
            'not a row',
        ])

        self.assertEqual(result.imported_count, 1)
        self.assertEqual([failure['row'] for failure in result.failures], [2, 3, 4])

    def test_impossible_date_fails_only_its_row(self):
        result = StudentImportService('0405').import_rows([
            self.row('Ali Raza', dob='31/02/2013'),
            self.row('Sara Khan', dob='15/03/2013'),
        ])

        self.assertEqual(result.imported_count, 1)
        self.assertEqual(len(result.failures), 1)
        self.assertEqual(result.failures[0]['row'], 1)
        self.assertIn('date_of_birth', result.failures[0]['errors'])

    def test_out_of_range_serial_fails_only_its_row(self):
        result = StudentImportService('0405').import_rows([
            self.row('Ali Raza', dob=10 ** 12),
            self.row('Sara Khan'),
        ])

        self.assertEqual(result.imported_count, 1)
        self.assertEqual([failure['row'] for failure in result.failures], [1])

    def test_date_with_trailing_text_is_rejected(self):
        result = StudentImportService('0405').import_rows([self.row('Ali Raza', dob='2013-03-15xyz')])

        self.assertEqual(result.imported_count, 0)
        self.assertIn('date_of_birth', result.failures[0]['errors'])

    def test_rows_without_school_code_are_rejected(self):
        result = StudentImportService().import_rows([self.row('Ali Raza')])

        self.assertTrue(result.is_error)
        self.assertEqual(result.failures[0]['error'], 'Missing school code')

    def test_excel_serial_date_of_birth(self):
        StudentImportService('0405').import_rows([self.row('Ali Raza', dob=45000)])

        self.assertEqual(Student.objects.get().date_of_birth, date(2023, 3, 15))

    def test_report_message(self):
        make_student('0405-06-01', grade='VI')
        result = StudentImportService('0405').import_rows([self.row('Ali Raza'), self.row('Sara Khan')])

        self.assertEqual(result.message, 'Successfully imported 1 students. 1 duplicates were skipped.')


class EnsureAdminUserTest(TestCase):

    def test_creates_then_resets(self):
        user, created = ensure_admin_user('admin', 'first-pass')
        self.assertTrue(created)
        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, 'admin')

        user, created = ensure_admin_user('admin', 'second-pass')
        self.assertFalse(created)
        self.assertTrue(user.check_password('second-pass'))
        self.assertEqual(User.objects.filter(username='admin').count(), 1)
