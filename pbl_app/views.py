# views.py
import logging
import os
import time

from django.conf import settings
from django.contrib.auth.models import update_last_login
from django.core.files.storage import default_storage
from django.db import connection
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .audit import AuditService, model_snapshot
from .exceptions import RegistrationError, SchoolNotRegistered, validation_error_response
from .importers import XLSX_CONTENT_TYPE, build_import_template, read_student_workbook
from .models import (
    AuditAction, DraftFees, DraftResources, DraftSchool, Fees, Resources, School,
    SchoolCredentials, Student, StudentFees,
)
from .pdf import generate_registration_pdf
from .permissions import IsAdministrator, IsAdministratorOrOwnSchool
from .serializers import (
    AuditLogQuerySerializer, AuditLogSerializer, DraftFeesSerializer, DraftResourcesSerializer,
    DraftSchoolSerializer, FeesSerializer, LoginSerializer, LogoutSerializer,
    PlaceholderStudentSerializer, RefreshTokenSerializer, ResourcesSerializer,
    SchoolCredentialsSerializer, SchoolGradesSerializer, SchoolSerializer, StudentCreateSerializer,
    StudentFeesSerializer, StudentSerializer, StudentUpdateSerializer, UserSerializer,
)
from .services import RegistrationService, StudentImportService, StudentService

logger = logging.getLogger(__name__)

GRADE_FIELDS = {'grade_iv', 'grade_v', 'grade_vi', 'grade_vii', 'grade_viii'}


def _not_found(message):
    return Response({'success': False, 'error': message}, status=status.HTTP_404_NOT_FOUND)


def _rows_from(data):
    """Import batches arrive as a bare list or as {"students": [...]}."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get('students'), list):
        return data['students']
    return []


# ==================== AUTHENTICATION VIEWS ====================
class LoginView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            # Log failed login attempt
            username = request.data.get('username', 'unknown')
            AuditService.log_auth_action(
                AuditAction.USER_LOGIN, username, False, request=request,
                error_message='Invalid credentials',
            )
            return validation_error_response(serializer.errors)

        user = serializer.validated_data['user']

        refresh = RefreshToken.for_user(user)
        update_last_login(None, user)

        AuditService.log_auth_action(AuditAction.USER_LOGIN, user.username, True, request=request, user=user)

        return Response({
            'success': True,
            'data': {
                'access': str(refresh.access_token),
                'refresh': str(refresh),
                'user': UserSerializer(user).data,
            }
        }, status=status.HTTP_200_OK)


class LogoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        try:
            RefreshToken(serializer.validated_data['refresh_token']).blacklist()
        except TokenError:
            return Response({
                'success': False,
                'error': 'Invalid or expired refresh token'
            }, status=status.HTTP_400_BAD_REQUEST)

        AuditService.log_auth_action(
            AuditAction.USER_LOGOUT, request.user.username, True, request=request, user=request.user
        )
        return Response({'success': True, 'message': 'Successfully logged out'}, status=status.HTTP_200_OK)


class RefreshTokenView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RefreshTokenSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        try:
            refresh = RefreshToken(serializer.validated_data['refresh_token'])
            return Response({
                'success': True,
                'data': {
                    'access': str(refresh.access_token),
                    'refresh': str(refresh),
                }
            }, status=status.HTTP_200_OK)
        except TokenError:
            return Response({
                'success': False,
                'error': 'Invalid or expired refresh token'
            }, status=status.HTTP_401_UNAUTHORIZED)


# ==================== PUBLIC VIEWS ====================
@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def system_status(request):
    """Check system status"""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")

        return Response({
            'status': 'ok',
            'database': 'connected',
            'schools_count': School.objects.count(),
            'timestamp': timezone.now().isoformat(),
            'version': '1.0.0'
        })
    except Exception as e:
        logger.error(f"System status check failed: {str(e)}")
        return Response({
            'status': 'error',
            'database': 'disconnected',
            'error': str(e),
            'timestamp': timezone.now().isoformat()
        }, status=status.HTTP_503_SERVICE_UNAVAILABLE)


# ==================== DRAFT REGISTRATION VIEWS ====================
class DraftSchoolUpsertView(APIView):
    """Save step one of the registration form; saving again overwrites."""
    permission_classes = [IsAdministrator]

    def post(self, request):
        serializer = DraftSchoolSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = dict(serializer.validated_data)
        school_code = data.pop('school_code')
        old = model_snapshot(DraftSchool.objects.for_code(school_code))
        draft, created = DraftSchool.objects.upsert(school_code, **data)

        AuditService.log_school_action(
            AuditAction.DRAFT_CREATED if created else AuditAction.DRAFT_UPDATED,
            draft, request=request, old_data=old, resource='DraftSchool',
        )
        return Response({
            'success': True,
            'data': DraftSchoolSerializer(draft).data
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class DraftSchoolListView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request):
        drafts = DraftSchool.objects.all()
        return Response({
            'success': True,
            'data': DraftSchoolSerializer(drafts, many=True).data
        })


class DraftSchoolDetailView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request, school_code):
        draft = DraftSchool.objects.for_code(school_code)
        if draft is None:
            return _not_found('Draft school not found')
        return Response({'success': True, 'data': DraftSchoolSerializer(draft).data})

    def delete(self, request, school_code):
        draft = DraftSchool.objects.for_code(school_code)
        # Resources and fees go with the school row (cascade)
        deleted = DraftSchool.objects.delete_for(school_code)
        if draft is not None:
            AuditService.log_action(
                AuditAction.DRAFT_DELETED,
                request=request,
                resource='DraftSchool',
                resource_id=school_code,
                old_data=model_snapshot(draft),
                details=f"Draft registration {school_code} deleted",
            )
        return Response({
            'success': True,
            'message': 'Draft deleted' if deleted else 'Nothing to delete'
        })


class DraftResourcesUpsertView(APIView):
    permission_classes = [IsAdministrator]

    def post(self, request):
        serializer = DraftResourcesSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = dict(serializer.validated_data)
        school_code = data.pop('school_id')
        if not DraftSchool.objects.filter(school_code=school_code).exists():
            return _not_found(f"No draft school found for code '{school_code}'")

        resources, created = DraftResources.objects.upsert(school_code, **data)
        AuditService.log_school_action(
            AuditAction.RESOURCES_CREATED if created else AuditAction.RESOURCES_UPDATED,
            resources, request=request, resource='DraftResources',
        )
        return Response({
            'success': True,
            'data': DraftResourcesSerializer(resources).data
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class DraftResourcesDetailView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request, school_code):
        resources = DraftResources.objects.for_code(school_code)
        if resources is None:
            return _not_found('Draft resources not found')
        return Response({'success': True, 'data': DraftResourcesSerializer(resources).data})


class DraftFeesUpsertView(APIView):
    permission_classes = [IsAdministrator]

    def post(self, request):
        serializer = DraftFeesSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = dict(serializer.validated_data)
        school_code = data.pop('school_id')
        if not DraftSchool.objects.filter(school_code=school_code).exists():
            return _not_found(f"No draft school found for code '{school_code}'")

        fees, created = DraftFees.objects.upsert(school_code, **data)
        AuditService.log_school_action(
            AuditAction.FEES_CREATED if created else AuditAction.FEES_UPDATED,
            fees, request=request, resource='DraftFees',
        )
        return Response({
            'success': True,
            'data': DraftFeesSerializer(fees).data
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class DraftFeesDetailView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request, school_code):
        fees = DraftFees.objects.for_code(school_code)
        if fees is None:
            return _not_found('Draft fees not found')
        return Response({'success': True, 'data': DraftFeesSerializer(fees).data})


# ==================== REGISTRATION COMPLETION ====================
class CompleteRegistrationView(APIView):
    """Promote a draft to a registered school and issue its login."""
    permission_classes = [IsAdministrator]

    def post(self, request, school_code):
        try:
            completed = RegistrationService.complete_registration(
                school_code, performed_by=request.user.username
            )
        except RegistrationError as e:
            AuditService.log_action(
                AuditAction.REGISTRATION_COMPLETED,
                request=request,
                resource='School',
                resource_id=school_code,
                success=False,
                error_message=e.message,
            )
            return Response({'success': False, 'error': e.message}, status=e.status_code)

        AuditService.log_school_action(AuditAction.REGISTRATION_COMPLETED, completed.school, request=request)

        credentials = SchoolCredentialsSerializer(completed.credentials).data
        # Shown once; only the hash is stored
        credentials['password'] = completed.password
        return Response({
            'success': True,
            'data': {
                'school': SchoolSerializer(completed.school).data,
                'credentials': credentials,
            }
        }, status=status.HTTP_201_CREATED)


# ==================== SCHOOL VIEWS ====================
class SchoolListView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request):
        schools = School.objects.all()
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            schools = schools.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))
        return Response({
            'success': True,
            'data': SchoolSerializer(schools, many=True).data
        })


class SchoolDetailView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get(self, request, school_code):
        school = get_object_or_404(School, school_code=school_code)
        return Response({'success': True, 'data': SchoolSerializer(school).data})

    def patch(self, request, school_code):
        school = get_object_or_404(School, school_code=school_code)

        # A body holding only enrolment counts is a grades update
        if set(request.data.keys()) <= GRADE_FIELDS:
            serializer = SchoolGradesSerializer(school, data=request.data, partial=True)
        else:
            serializer = SchoolSerializer(school, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        old = model_snapshot(school)
        school = School.objects.update_for(school_code, **serializer.validated_data)
        AuditService.log_school_action(AuditAction.SCHOOL_UPDATED, school, request=request, old_data=old)
        return Response({'success': True, 'data': SchoolSerializer(school).data})

    def delete(self, request, school_code):
        if not request.user.is_admin:
            return Response({
                'success': False,
                'error': 'You do not have permission to delete schools'
            }, status=status.HTTP_403_FORBIDDEN)

        school = get_object_or_404(School, school_code=school_code)
        old = model_snapshot(school)
        RegistrationService.delete_school(school)

        AuditService.log_action(
            AuditAction.SCHOOL_DELETED,
            request=request,
            resource='School',
            resource_id=school_code,
            old_data=old,
            details=f"School {school_code} deleted",
        )
        return Response({'success': True, 'message': f"School {school_code} deleted"})


class SchoolToggleView(APIView):
    permission_classes = [IsAdministrator]

    def patch(self, request, school_code):
        school = get_object_or_404(School, school_code=school_code)
        school = RegistrationService.set_active(school, not school.is_active)

        AuditService.log_school_action(
            AuditAction.SCHOOL_ACTIVATED if school.is_active else AuditAction.SCHOOL_DEACTIVATED,
            school, request=request,
        )
        return Response({'success': True, 'data': SchoolSerializer(school).data})


class SchoolResourcesView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get(self, request, school_code):
        resources = Resources.objects.for_code(school_code)
        if resources is None:
            return _not_found('Resources not found')
        return Response({'success': True, 'data': ResourcesSerializer(resources).data})

    def patch(self, request, school_code):
        get_object_or_404(School, school_code=school_code)
        serializer = ResourcesSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        old = model_snapshot(Resources.objects.for_code(school_code))
        resources, created = Resources.objects.upsert(school_code, **serializer.validated_data)
        AuditService.log_school_action(
            AuditAction.RESOURCES_CREATED if created else AuditAction.RESOURCES_UPDATED,
            resources, request=request, old_data=old, resource='Resources',
        )
        return Response({'success': True, 'data': ResourcesSerializer(resources).data})


class SchoolFeesView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get(self, request, school_code):
        fees = Fees.objects.for_code(school_code)
        if fees is None:
            return _not_found('Fees not found')
        return Response({'success': True, 'data': FeesSerializer(fees).data})

    def patch(self, request, school_code):
        get_object_or_404(School, school_code=school_code)
        serializer = FeesSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        old = model_snapshot(Fees.objects.for_code(school_code))
        fees, created = Fees.objects.upsert(school_code, **serializer.validated_data)
        AuditService.log_school_action(
            AuditAction.FEES_CREATED if created else AuditAction.FEES_UPDATED,
            fees, request=request, old_data=old, resource='Fees',
        )
        return Response({'success': True, 'data': FeesSerializer(fees).data})


class SchoolCredentialsView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request, school_code):
        credentials = SchoolCredentials.objects.for_code(school_code)
        if credentials is None:
            return _not_found('Credentials not found')
        return Response({'success': True, 'data': SchoolCredentialsSerializer(credentials).data})


class SchoolPdfView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get(self, request, school_code):
        school = get_object_or_404(School, school_code=school_code)
        try:
            pdf = generate_registration_pdf(
                school,
                resources=Resources.objects.for_code(school_code),
                fees=Fees.objects.for_code(school_code),
            )
        except Exception as e:
            logger.error(f"Error generating PDF for {school_code}: {str(e)}")
            return Response({
                'success': False,
                'error': 'Failed to generate PDF'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        response = HttpResponse(pdf.getvalue(), content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="pbl-registration-{school_code}.pdf"'
        return response


class StudentFeesView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get(self, request, school_code):
        student_fees = StudentFees.objects.for_code(school_code)
        if student_fees is None:
            return _not_found('Student fees not found')
        return Response({'success': True, 'data': StudentFeesSerializer(student_fees).data})

    def post(self, request, school_code):
        get_object_or_404(School, school_code=school_code)
        serializer = StudentFeesSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        student_fees, created = StudentFees.objects.upsert(school_code, **serializer.validated_data)
        AuditService.log_school_action(
            AuditAction.FEES_CREATED if created else AuditAction.FEES_UPDATED,
            student_fees, request=request, resource='StudentFees',
        )
        return Response({
            'success': True,
            'data': StudentFeesSerializer(student_fees).data
        }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)

    def patch(self, request, school_code):
        serializer = StudentFeesSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        old = model_snapshot(StudentFees.objects.for_code(school_code))
        student_fees = StudentFees.objects.update_for(school_code, **serializer.validated_data)
        if student_fees is None:
            return _not_found('Student fees not found')

        AuditService.log_school_action(
            AuditAction.FEES_UPDATED, student_fees, request=request, old_data=old, resource='StudentFees',
        )
        return Response({'success': True, 'data': StudentFeesSerializer(student_fees).data})


# ==================== STUDENT MANAGEMENT ====================
class SchoolStudentsView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get(self, request, school_code):
        students = Student.objects.with_school_name().for_school(school_code)
        grade = request.query_params.get('grade')
        if grade:
            students = students.filter(grade=grade)
        return Response({
            'success': True,
            'data': StudentSerializer(students, many=True).data
        })

    def post(self, request, school_code):
        serializer = StudentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        try:
            student = StudentService.create_student(school_code, **serializer.validated_data)
        except SchoolNotRegistered as e:
            return Response({'success': False, 'error': e.message}, status=e.status_code)
        except Exception as e:
            logger.error(f"Error creating student: {str(e)}")
            AuditService.log_error(e, 'student creation', request=request)
            return Response({
                'success': False,
                'error': 'Failed to create student'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        AuditService.log_student_action(AuditAction.STUDENT_CREATED, student, request=request)
        return Response({
            'success': True,
            'data': StudentSerializer(student).data
        }, status=status.HTTP_201_CREATED)


class StudentListView(APIView):
    """All students with the name of their school (blank once the school is gone)."""
    permission_classes = [IsAdministrator]

    def get(self, request):
        students = Student.objects.with_school_name()
        school_code = request.query_params.get('school_code')
        if school_code:
            students = students.for_school(school_code)
        grade = request.query_params.get('grade')
        if grade:
            students = students.filter(grade=grade)
        return Response({
            'success': True,
            'data': StudentSerializer(students, many=True).data
        })


class StudentDetailView(APIView):
    permission_classes = [IsAdministratorOrOwnSchool]

    def get_object(self, student_id):
        student = get_object_or_404(Student.objects.with_school_name(), student_id=student_id)
        self.check_object_permissions(self.request, student)
        return student

    def get(self, request, student_id):
        student = self.get_object(student_id)
        return Response({'success': True, 'data': StudentSerializer(student).data})

    def patch(self, request, student_id):
        student = self.get_object(student_id)
        serializer = StudentUpdateSerializer(student, data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        old = model_snapshot(student)
        try:
            student = serializer.save()
        except Exception as e:
            logger.error(f"Error updating student {student_id}: {str(e)}")
            AuditService.log_error(e, 'student update', request=request)
            return Response({
                'success': False,
                'error': 'Failed to update student'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        AuditService.log_student_action(AuditAction.STUDENT_UPDATED, student, request=request, old_data=old)
        return Response({'success': True, 'data': StudentSerializer(student).data})


class StudentImportMixin:
    """Runs a batch through the import service and shapes the report."""

    def run_import(self, request, rows, default_school_code=None):
        try:
            result = StudentImportService(default_school_code).import_rows(rows)
        except Exception as e:
            logger.error(f"Error importing students: {str(e)}")
            AuditService.log_error(e, 'student import', request=request)
            return Response({
                'success': False,
                'error': 'Failed to import students'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        if result.is_error:
            return Response({
                'success': False,
                'error': 'No valid students to import',
                'message': result.message,
                'failed_rows': result.failures,
                'unregistered_schools': result.unregistered_schools,
            }, status=status.HTTP_400_BAD_REQUEST)

        AuditService.log_bulk_operation(
            AuditAction.STUDENT_IMPORTED, result.imported_count, 'Student', request=request,
            new_data={
                'imported': result.imported_count,
                'duplicates': result.duplicate_count,
                'failed': len(result.failures),
                'student_ids': [student.student_id for student in result.students],
            },
        )
        return Response({
            'success': True,
            'message': result.message,
            'data': {
                'count': result.imported_count,
                'duplicates': result.duplicate_count,
                'failed_rows': result.failures,
                'unregistered_schools': result.unregistered_schools,
                'students': StudentSerializer(result.students, many=True).data,
            }
        }, status=status.HTTP_201_CREATED)


class SchoolStudentImportView(StudentImportMixin, APIView):
    """JSON batch for one school; rows without a code fall back to the URL's."""
    permission_classes = [IsAdministratorOrOwnSchool]
    parser_classes = [JSONParser]

    def post(self, request, school_code):
        rows = _rows_from(request.data)
        if not rows:
            return Response({
                'success': False,
                'error': 'No students to import'
            }, status=status.HTTP_400_BAD_REQUEST)
        return self.run_import(request, rows, default_school_code=school_code)


class StudentImportView(StudentImportMixin, APIView):
    """JSON batch where every row names its own school code."""
    permission_classes = [IsAdministrator]
    parser_classes = [JSONParser]

    def post(self, request):
        rows = _rows_from(request.data)
        if not rows:
            return Response({
                'success': False,
                'error': 'No students to import'
            }, status=status.HTTP_400_BAD_REQUEST)
        return self.run_import(request, rows)


class StudentBulkImportView(StudentImportMixin, APIView):
    """Bulk import students from Excel file"""
    parser_classes = [MultiPartParser]
    permission_classes = [IsAdministrator]

    def post(self, request):
        if 'excelFile' not in request.FILES:
            return Response({
                'success': False,
                'error': 'No file uploaded'
            }, status=status.HTTP_400_BAD_REQUEST)

        excel_file = request.FILES['excelFile']
        try:
            school_code, rows = read_student_workbook(excel_file, filename=excel_file.name)
        except Exception as e:
            logger.error(f"Error reading workbook {excel_file.name}: {str(e)}")
            return Response({
                'success': False,
                'error': 'Could not read the uploaded workbook'
            }, status=status.HTTP_400_BAD_REQUEST)

        if not rows:
            return Response({
                'success': False,
                'error': 'No valid student rows found in the workbook'
            }, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Workbook {excel_file.name}: {len(rows)} rows for school {school_code}")
        return self.run_import(request, rows, default_school_code=request.data.get('school_code'))


class PlaceholderStudentsView(APIView):
    """Validate placeholder rows for fee estimates; nothing is stored."""
    permission_classes = [IsAdministratorOrOwnSchool]

    def post(self, request, school_code):
        rows = _rows_from(request.data)
        if not rows:
            return Response({
                'success': False,
                'error': 'No students to process'
            }, status=status.HTTP_400_BAD_REQUEST)

        validated = []
        failed_rows = []
        for row in rows:
            if not isinstance(row, dict):
                failed_rows.append({'row': row, 'error': 'Row must be an object'})
                continue
            serializer = PlaceholderStudentSerializer(data={**row, 'school_code': school_code})
            if serializer.is_valid():
                validated.append(serializer.data)
            else:
                failed_rows.append({'row': row, 'errors': serializer.errors})

        if not validated:
            return Response({
                'success': False,
                'error': 'No valid placeholder students to process',
                'failed_rows': failed_rows,
            }, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'success': True,
            'message': f"Successfully processed {len(validated)} placeholder students",
            'data': {
                'students': validated,
                'failed_rows': failed_rows,
            }
        })


class DownloadTemplateView(APIView):
    """Download Excel template for student import"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        try:
            output = build_import_template()
        except Exception as e:
            logger.error(f"Error generating template: {str(e)}")
            return Response({
                'success': False,
                'error': 'Failed to generate template'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        response = HttpResponse(output.getvalue(), content_type=XLSX_CONTENT_TYPE)
        response['Content-Disposition'] = 'attachment; filename="student_import_template.xlsx"'
        return response


# ==================== UPLOADS ====================
class DepositSlipUploadView(APIView):
    parser_classes = [MultiPartParser, FormParser]
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        upload = request.FILES.get('depositSlip') or request.FILES.get('file')
        if upload is None:
            return Response({
                'success': False,
                'error': 'No file uploaded'
            }, status=status.HTTP_400_BAD_REQUEST)

        if upload.size > settings.PBL_UPLOAD_MAX_BYTES:
            return Response({
                'success': False,
                'error': 'File too large. Maximum size is 10MB.'
            }, status=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)

        if not (upload.content_type or '').startswith('image/'):
            return Response({
                'success': False,
                'error': 'Only image files are allowed'
            }, status=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)

        extension = os.path.splitext(upload.name)[1].lower()
        name = f"{settings.PBL_UPLOAD_DIR}/deposit-slips/{int(time.time() * 1000)}{extension}"
        try:
            saved = default_storage.save(name, upload)
        except Exception as e:
            logger.error(f"Error uploading file: {str(e)}")
            return Response({
                'success': False,
                'error': 'File upload failed'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({
            'success': True,
            'data': {'url': default_storage.url(saved)}
        }, status=status.HTTP_201_CREATED)


# ==================== AUDIT ====================
class AuditLogListView(APIView):
    permission_classes = [IsAdministrator]

    def get(self, request):
        serializer = AuditLogQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        logs = AuditService.get_audit_logs(**serializer.validated_data)
        return Response({
            'success': True,
            'data': AuditLogSerializer(logs, many=True).data
        })
