import shutil
import tempfile
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from pbl_app.importers import XLSX_CONTENT_TYPE
from pbl_app.models import AuditAction, AuditLog, DraftFees, DraftSchool, School, Student, User
from pbl_app.services import RegistrationService

from .utils import build_workbook, grade_sheet, make_draft, make_school, make_student


class AdminAPITestCase(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', password='admin123', role='admin')
        self.client.force_authenticate(user=self.admin)


class AuthenticationTest(APITestCase):

    def setUp(self):
        User.objects.create_user(username='admin', password='admin123', role='admin')

    def test_admin_login(self):
        response = self.client.post('/api/auth/login/', {'username': 'admin', 'password': 'admin123'},
                                    format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['data'])
        self.assertEqual(response.data['data']['user']['role'], 'admin')
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.USER_LOGIN, success=True).exists())

    def test_wrong_password_is_audited(self):
        response = self.client.post('/api/auth/login/', {'username': 'admin', 'password': 'nope'},
                                    format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        log = AuditLog.objects.get(action=AuditAction.USER_LOGIN)
        self.assertFalse(log.success)
        self.assertEqual(log.username, 'admin')

    def test_school_login_with_issued_password(self):
        make_draft()
        completed = RegistrationService.complete_registration('0405')

        response = self.client.post('/api/auth/login/', {'username': '0405', 'password': completed.password},
                                    format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['user']['school_code'], '0405')

    def test_inactive_school_cannot_log_in(self):
        make_draft()
        completed = RegistrationService.complete_registration('0405')
        RegistrationService.set_active(completed.school, False)

        response = self.client.post('/api/auth/login/', {'username': '0405', 'password': completed.password},
                                    format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_routes_require_authentication(self):
        response = self.client.get('/api/schools/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_system_status_is_public(self):
        response = self.client.get('/api/auth/system-status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['database'], 'connected')


class DraftRegistrationViewsTest(AdminAPITestCase):

    def test_draft_school_upsert(self):
        payload = {'school_code': '0405', 'school_name': 'Beaconhouse Primary', 'grade_iv': 10}

        first = self.client.post('/api/drafts/school/', payload, format='json')
        payload['school_name'] = 'Beaconhouse Primary Campus'
        second = self.client.post('/api/drafts/school/', payload, format='json')

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(DraftSchool.objects.count(), 1)
        self.assertEqual(DraftSchool.objects.get().school_name, 'Beaconhouse Primary Campus')

    def test_validation_errors_list_every_field(self):
        response = self.client.post('/api/drafts/school/', {
            'school_code': '0405',
            'principal_email': 'not-an-email',
            'grade_iv': -3,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        paths = {error['path'] for error in response.data['errors']}
        self.assertEqual(paths, {'school_name', 'principal_email', 'grade_iv'})
        self.assertFalse(DraftSchool.objects.exists())

    def test_payment_method_clears_other_group(self):
        make_draft(with_fees=False)

        self.client.post('/api/drafts/fees/', {
            'school_code': '0405',
            'payment_method': 'cheque',
            'cheque_number': 'CHQ-1',
            'cheque_date': '2024-01-10',
        }, format='json')
        response = self.client.post('/api/drafts/fees/', {
            'school_code': '0405',
            'payment_method': 'deposit',
            'cheque_number': 'CHQ-1',
            'deposit_slip_number': 'DEP-9',
            'deposit_date': '2024-02-01T09:00:00Z',
            'disclaimer_accepted': None,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        fees = DraftFees.objects.get()
        self.assertIsNone(fees.cheque_number)
        self.assertIsNone(fees.cheque_date)
        self.assertEqual(fees.deposit_slip_number, 'DEP-9')
        self.assertEqual(str(fees.deposit_date), '2024-02-01')
        self.assertFalse(fees.disclaimer_accepted)
        self.assertEqual(str(fees.amount), '20000.00')

    def test_fees_need_a_draft_school(self):
        response = self.client.post('/api/drafts/fees/', {'school_code': '0405'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_draft(self):
        make_draft()

        response = self.client.delete('/api/drafts/school/0405/')
        again = self.client.delete('/api/drafts/school/0405/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(again.status_code, status.HTTP_200_OK)
        self.assertFalse(DraftSchool.objects.exists())
        self.assertFalse(DraftFees.objects.exists())

    def test_school_login_cannot_edit_drafts(self):
        make_draft()
        completed = RegistrationService.complete_registration('0405')
        self.client.force_authenticate(user=completed.credentials.user)

        response = self.client.get('/api/drafts/schools/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CompleteRegistrationViewTest(AdminAPITestCase):

    def test_complete_returns_one_time_password(self):
        make_draft()

        response = self.client.post('/api/schools/0405/complete/')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['data']['credentials']['password'])
        self.assertEqual(response.data['data']['school']['school_code'], '0405')

        credentials = self.client.get('/api/schools/0405/credentials/')
        self.assertEqual(credentials.status_code, status.HTTP_200_OK)
        self.assertNotIn('password', credentials.data['data'])
        self.assertEqual(credentials.data['data']['username'], '0405')

    def test_disclaimer_not_accepted(self):
        make_draft(disclaimer_accepted=False)

        response = self.client.post('/api/schools/0405/complete/')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(School.objects.exists())

    def test_already_registered(self):
        make_school('0405')
        make_draft('0405')

        response = self.client.post('/api/schools/0405/complete/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_code_matching_an_existing_username(self):
        make_draft('admin')

        response = self.client.post('/api/schools/admin/complete/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('already taken', response.data['error'])
        self.assertTrue(DraftSchool.objects.filter(school_code='admin').exists())


class SchoolViewsTest(AdminAPITestCase):

    def setUp(self):
        super().setUp()
        make_draft()
        self.completed = RegistrationService.complete_registration('0405')

    def test_grades_only_update(self):
        response = self.client.patch('/api/schools/0405/', {'grade_vi': 25}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['grade_vi'], 25)
        self.assertEqual(response.data['data']['school_name'], 'Beaconhouse Primary')

    def test_negative_grade_is_rejected(self):
        response = self.client.patch('/api/schools/0405/', {'grade_vi': -1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['path'], 'grade_vi')

    def test_unknown_school_is_404(self):
        response = self.client.get('/api/schools/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])

    def test_toggle(self):
        response = self.client.patch('/api/schools/0405/toggle/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['is_active'])
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.SCHOOL_DEACTIVATED).exists())

    def test_school_login_sees_only_its_school(self):
        self.client.force_authenticate(user=self.completed.credentials.user)
        make_school('0406', 'Other School')

        self.assertEqual(self.client.get('/api/schools/0405/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/schools/0406/').status_code, status.HTTP_403_FORBIDDEN)

    def test_school_login_cannot_change_its_active_flag(self):
        self.client.force_authenticate(user=User.objects.get(username='0405'))

        response = self.client.patch('/api/schools/0405/', {'is_active': False, 'school_name': 'Renamed'},
                                     format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        school = School.objects.get(school_code='0405')
        self.assertTrue(school.is_active)
        self.assertEqual(school.school_name, 'Renamed')

    def test_deactivated_school_login_cannot_reactivate(self):
        RegistrationService.set_active(self.completed.school, False)
        self.client.force_authenticate(user=User.objects.get(username='0405'))

        response = self.client.patch('/api/schools/0405/', {'is_active': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(School.objects.get(school_code='0405').is_active)
        self.assertFalse(AuditLog.objects.filter(action=AuditAction.SCHOOL_UPDATED).exists())

    def test_deactivated_school_login_is_forbidden(self):
        RegistrationService.set_active(self.completed.school, False)
        self.client.force_authenticate(user=User.objects.get(username='0405'))

        self.assertEqual(self.client.get('/api/schools/0405/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/schools/0405/students/').status_code,
                         status.HTTP_403_FORBIDDEN)

    def test_student_fees_are_computed(self):
        response = self.client.post('/api/schools/0405/student-fees/', {
            'primary_candidates': 3,
            'middle_candidates': 2,
            'total_amount': '1.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['total_amount'], '10500.00')

        response = self.client.patch('/api/schools/0405/student-fees/', {'middle_candidates': 4}, format='json')
        self.assertEqual(response.data['data']['total_amount'], '15000.00')

    def test_student_fees_patch_without_row(self):
        response = self.client.patch('/api/schools/0405/student-fees/', {'middle_candidates': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_pdf(self):
        response = self.client.get('/api/schools/0405/pdf/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_delete_keeps_students(self):
        make_student('0405-04-01')

        response = self.client.delete('/api/schools/0405/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        listing = self.client.get('/api/students/')
        self.assertEqual(len(listing.data['data']), 1)
        self.assertIsNone(listing.data['data'][0]['school_name'])


class StudentViewsTest(AdminAPITestCase):

    def setUp(self):
        super().setUp()
        make_school('0405')

    def student_payload(self, **overrides):
        payload = {
            'student_name': 'Ali Raza',
            'father_name': 'Raza Ahmed',
            'gender': 'M',
            'date_of_birth': '2013-03-15',
            'grade': 'IV',
        }
        payload.update(overrides)
        return payload

    def test_create_student(self):
        response = self.client.post('/api/schools/0405/students/', self.student_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['student_id'], '0405-04-01')
        self.assertEqual(response.data['data']['level'], 'primary')

    def test_impossible_date_of_birth_is_rejected(self):
        response = self.client.post('/api/schools/0405/students/',
                                    self.student_payload(date_of_birth='2013-02-30'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['path'], 'date_of_birth')
        self.assertFalse(Student.objects.exists())

    def test_date_of_birth_with_trailing_text_is_rejected(self):
        response = self.client.post('/api/schools/0405/students/',
                                    self.student_payload(date_of_birth='2013-03-15xyz'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['path'], 'date_of_birth')

    def test_create_student_for_unregistered_school(self):
        response = self.client.post('/api/schools/9999/students/', self.student_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('not registered', response.data['error'])

    def test_audit_failure_does_not_break_the_request(self):
        with mock.patch.object(AuditLog.objects, 'create', side_effect=DatabaseError('audit table gone')):
            response = self.client.post('/api/schools/0405/students/', self.student_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Student.objects.filter(student_id='0405-04-01').exists())
        self.assertFalse(AuditLog.objects.exists())

    def test_update_student_keeps_id(self):
        make_student('0405-04-01')

        response = self.client.patch('/api/students/0405-04-01/', {'student_name': 'Ali Raza Khan',
                                                                   'student_id': 'XXXX'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        student = Student.objects.get()
        self.assertEqual(student.student_id, '0405-04-01')
        self.assertEqual(student.student_name, 'Ali Raza Khan')
        log = AuditLog.objects.get(action=AuditAction.STUDENT_UPDATED)
        self.assertEqual(log.old_data['student_name'], 'Ali Raza')

    def test_json_import(self):
        rows = [
            self.student_payload(),
            self.student_payload(student_name='Sara Khan', gender='F'),
            self.student_payload(),
            self.student_payload(student_name='Bad Row', gender='Q'),
        ]

        response = self.client.post('/api/schools/0405/students/import/', rows, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['count'], 2)
        self.assertEqual(response.data['data']['duplicates'], 1)
        self.assertEqual(len(response.data['data']['failed_rows']), 1)
        self.assertTrue(AuditLog.objects.filter(action=AuditAction.STUDENT_IMPORTED).exists())

    def test_import_into_unregistered_school_only(self):
        rows = [self.student_payload(school_code='9999')]

        response = self.client.post('/api/students/import/', rows, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['unregistered_schools'], ['9999'])
        self.assertFalse(Student.objects.exists())

    def test_empty_import(self):
        response = self.client.post('/api/students/import/', [], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_excel_import(self):
        workbook = build_workbook({
            'Grade 4': grade_sheet(('Ali Raza', 'Raza Ahmed', 'M', '15/03/2013')),
            'Grade 7': grade_sheet(('Sara Khan', 'Imran Khan', 'F', 40000)),
        })
        upload = SimpleUploadedFile('0405_students.xlsx', workbook.getvalue(), content_type=XLSX_CONTENT_TYPE)

        response = self.client.post('/api/students/import/excel/', {'excelFile': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(
            sorted(Student.objects.values_list('student_id', flat=True)),
            ['0405-04-01', '0405-07-01'],
        )

    def test_excel_import_without_file(self):
        response = self.client.post('/api/students/import/excel/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_placeholders(self):
        response = self.client.post('/api/schools/0405/students/placeholders/', [
            {'grade': 'IV', 'level': 'primary'},
            {'grade': 'IX'},
        ], format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']['students']), 1)
        self.assertEqual(response.data['data']['students'][0]['school_code'], '0405')
        self.assertEqual(len(response.data['data']['failed_rows']), 1)
        self.assertFalse(Student.objects.exists())

    def test_download_template(self):
        response = self.client.get('/api/students/download-template/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)

    def test_audit_log_listing(self):
        self.client.post('/api/schools/0405/students/', self.student_payload(), format='json')
        self.client.post('/api/schools/0405/students/', self.student_payload(student_name='Sara'), format='json')

        response = self.client.get('/api/audit-logs/', {'action': 'STUDENT_CREATED', 'limit': 1})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['resource_id'], '0405-04-02')


class DepositSlipUploadTest(AdminAPITestCase):

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def test_image_upload(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            upload = SimpleUploadedFile('slip.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')
            response = self.client.post('/api/upload/deposit-slip/', {'depositSlip': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('/uploads/deposit-slips/', response.data['data']['url'])
        self.assertTrue(response.data['data']['url'].endswith('.png'))

    def test_non_image_is_rejected(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            upload = SimpleUploadedFile('slip.txt', b'hello', content_type='text/plain')
            response = self.client.post('/api/upload/deposit-slip/', {'depositSlip': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

    def test_too_large(self):
        with override_settings(MEDIA_ROOT=self.media_root, PBL_UPLOAD_MAX_BYTES=4):
            upload = SimpleUploadedFile('slip.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')
            response = self.client.post('/api/upload/deposit-slip/', {'depositSlip': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
