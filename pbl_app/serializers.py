# serializers.py
from datetime import date, datetime

from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.hashers import check_password
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from .models import (
    GRADE_CHOICES, GENDER_CHOICES, PAYMENT_GROUPS,
    AuditAction, AuditLog, DraftFees, DraftResources, DraftSchool, Fees, Resources, School,
    SchoolCredentials, Student, StudentFees, User,
)

TIMESTAMP_FIELDS = ['id', 'created_at', 'updated_at']


# ==================== FIELDS & MIXINS ====================
class CalendarDateField(serializers.DateField):
    """Accepts a date, a datetime, or an ISO date/datetime string; stores the calendar day."""

    def to_internal_value(self, value):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            text = value.strip()
            # Well-formed but impossible dates (2013-02-30) raise ValueError
            try:
                parsed = parse_date(text)
            except ValueError:
                parsed = None
            if parsed is None:
                try:
                    moment = parse_datetime(text)
                except ValueError:
                    moment = None
                parsed = moment.date() if moment else None
            if parsed is not None:
                return parsed
        return super().to_internal_value(value)


class NullFalseBooleanField(serializers.BooleanField):
    """Boolean where null and absent both mean False."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        kwargs.setdefault('default', False)
        super().__init__(**kwargs)

    def validate_empty_values(self, data):
        if data is None:
            return (True, False)
        return super().validate_empty_values(data)


class PaymentMethodMixin:
    """Clears the other payment group whenever payment_method is supplied."""

    def validate(self, attrs):
        attrs = super().validate(attrs)
        method = attrs.get('payment_method')
        if method in PAYMENT_GROUPS:
            for other_method, fields in PAYMENT_GROUPS.items():
                if other_method == method:
                    continue
                for field in fields:
                    attrs[field] = None
        return attrs


class PaymentFieldsSerializer(PaymentMethodMixin, serializers.ModelSerializer):
    cheque_date = CalendarDateField(required=False, allow_null=True)
    deposit_date = CalendarDateField(required=False, allow_null=True)
    disclaimer_accepted = NullFalseBooleanField()


# ==================== USERS & AUTH ====================
class UserSerializer(serializers.ModelSerializer):
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    school_code = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'role', 'role_display',
                  'school_code', 'is_active', 'last_login']
        read_only_fields = fields

    def get_school_code(self, obj):
        credentials = getattr(obj, 'school_credentials', None)
        return credentials.school_id if credentials else None


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        username = data.get('username').strip()
        password = data.get('password')

        # School logins first, then administrator accounts
        credentials = SchoolCredentials.objects.select_related('school', 'user').filter(
            username=username
        ).first()
        if credentials is not None:
            if not check_password(password, credentials.password):
                raise serializers.ValidationError({'password': 'Invalid username or password'})
            if not credentials.is_active or not credentials.school.is_active:
                raise serializers.ValidationError({'username': 'This school account is inactive'})
            if credentials.user is None or not credentials.user.is_active:
                raise serializers.ValidationError({'username': 'This school account is inactive'})
            data['user'] = credentials.user
            return data

        user = authenticate(request=self.context.get('request'), username=username, password=password)
        if not user:
            raise serializers.ValidationError({'password': 'Invalid username or password'})
        data['user'] = user
        return data


class LogoutSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class RefreshTokenSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


# ==================== DRAFT REGISTRATION ====================
class DraftSchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = DraftSchool
        fields = '__all__'
        read_only_fields = TIMESTAMP_FIELDS
        # Upserts are keyed on school_code, so the unique check is left to storage
        extra_kwargs = {'school_code': {'validators': []}}


class DraftResourcesSerializer(serializers.ModelSerializer):
    school_code = serializers.CharField(source='school_id', max_length=20)

    class Meta:
        model = DraftResources
        exclude = ['school']
        read_only_fields = TIMESTAMP_FIELDS


class DraftFeesSerializer(PaymentFieldsSerializer):
    school_code = serializers.CharField(source='school_id', max_length=20)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False,
                                      default=settings.PBL_REGISTRATION_FEE)

    class Meta:
        model = DraftFees
        exclude = ['school']
        read_only_fields = TIMESTAMP_FIELDS


# ==================== FINAL REGISTRATION ====================
class SchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = School
        fields = '__all__'
        # Activation changes go through the admin toggle
        read_only_fields = TIMESTAMP_FIELDS + ['school_code', 'is_active', 'registration_completed_at']


class SchoolGradesSerializer(serializers.ModelSerializer):
    """Enrolment counts only."""

    class Meta:
        model = School
        fields = ['grade_iv', 'grade_v', 'grade_vi', 'grade_vii', 'grade_viii']


class ResourcesSerializer(serializers.ModelSerializer):
    school_code = serializers.CharField(source='school_id', read_only=True)

    class Meta:
        model = Resources
        exclude = ['school']
        read_only_fields = TIMESTAMP_FIELDS


class FeesSerializer(PaymentFieldsSerializer):
    school_code = serializers.CharField(source='school_id', read_only=True)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False,
                                      default=settings.PBL_REGISTRATION_FEE)

    class Meta:
        model = Fees
        exclude = ['school']
        read_only_fields = TIMESTAMP_FIELDS


class SchoolCredentialsSerializer(serializers.ModelSerializer):
    school_code = serializers.CharField(source='school_id', read_only=True)

    class Meta:
        model = SchoolCredentials
        fields = ['id', 'school_code', 'username', 'is_active', 'created_at', 'updated_at']
        read_only_fields = fields


class StudentFeesSerializer(PaymentFieldsSerializer):
    school_code = serializers.CharField(source='school_id', read_only=True)

    class Meta:
        model = StudentFees
        exclude = ['school']
        read_only_fields = TIMESTAMP_FIELDS + ['primary_amount', 'middle_amount', 'total_amount']


# ==================== STUDENT MANAGEMENT ====================
class StudentSerializer(serializers.ModelSerializer):
    school_name = serializers.SerializerMethodField()
    level = serializers.CharField(read_only=True)

    class Meta:
        model = Student
        fields = ['id', 'student_id', 'school_code', 'school_name', 'student_name', 'father_name',
                  'gender', 'date_of_birth', 'grade', 'level', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_school_name(self, obj):
        # Present when the queryset was annotated with with_school_name()
        return getattr(obj, 'school_name', None)


class StudentCreateSerializer(serializers.ModelSerializer):
    date_of_birth = CalendarDateField()

    class Meta:
        model = Student
        fields = ['student_name', 'father_name', 'gender', 'date_of_birth', 'grade']

    def validate_student_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Student name is required')
        return value.strip()

    def validate_father_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Father's name is required")
        return value.strip()


class StudentUpdateSerializer(StudentCreateSerializer):
    pass


class StudentImportSerializer(serializers.Serializer):
    """One canonicalised import row; school_code may come from the URL instead."""
    school_code = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)
    student_name = serializers.CharField(max_length=150)
    father_name = serializers.CharField(max_length=150)
    gender = serializers.ChoiceField(choices=GENDER_CHOICES)
    date_of_birth = CalendarDateField()
    grade = serializers.ChoiceField(choices=GRADE_CHOICES)


class PlaceholderStudentSerializer(serializers.Serializer):
    school_code = serializers.CharField(max_length=20)
    grade = serializers.ChoiceField(choices=GRADE_CHOICES)
    level = serializers.ChoiceField(choices=['primary', 'middle'], required=False)


# ==================== AUDIT ====================
class AuditLogSerializer(serializers.ModelSerializer):
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'action', 'action_display', 'user', 'username', 'ip_address', 'user_agent',
                  'resource', 'resource_id', 'old_data', 'new_data', 'details', 'success',
                  'error_message', 'session_id', 'created_at']
        read_only_fields = fields


class AuditLogQuerySerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    user_id = serializers.IntegerField(required=False)
    resource = serializers.CharField(required=False)
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=1000, default=100)
