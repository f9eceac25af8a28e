# models.py
from decimal import Decimal

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import OuterRef, Subquery


# ==================== CHOICES & CONSTANTS ====================
GRADE_CHOICES = [
    ('IV', 'Grade IV'),
    ('V', 'Grade V'),
    ('VI', 'Grade VI'),
    ('VII', 'Grade VII'),
    ('VIII', 'Grade VIII'),
]

# Two-digit grade code used inside generated student IDs
GRADE_CODES = {
    'IV': '04',
    'V': '05',
    'VI': '06',
    'VII': '07',
    'VIII': '08',
}

PRIMARY_GRADES = ('IV', 'V')

GENDER_CHOICES = [
    ('M', 'Male'),
    ('F', 'Female'),
]

SCHOOL_TYPE_CHOICES = [
    ('boys', 'Boys'),
    ('girls', 'Girls'),
    ('coeducational', 'Co-educational'),
]

PAYMENT_METHOD_CHOICES = [
    ('cheque', 'Cheque'),
    ('deposit', 'Deposit'),
]

# Fields owned by each payment method; the other group is cleared on change
PAYMENT_GROUPS = {
    'cheque': ('cheque_number', 'cheque_date'),
    'deposit': ('deposit_slip_number', 'deposit_pay_order_number', 'deposit_date'),
}


def grade_code(grade):
    return GRADE_CODES.get(grade, '00')


def grade_level(grade):
    return 'primary' if grade in PRIMARY_GRADES else 'middle'


# ==================== QUERYSETS ====================
class SchoolCodeQuerySet(models.QuerySet):
    """
    Storage operations keyed by school code.

    Every model using this queryset names the column holding the code in
    ``SCHOOL_CODE_FIELD`` (``school_code`` on the school tables, ``school_id``
    on rows hanging off a school).
    """

    def _code_lookup(self, school_code):
        return {self.model.SCHOOL_CODE_FIELD: school_code}

    def for_code(self, school_code):
        return self.filter(**self._code_lookup(school_code)).first()

    def upsert(self, school_code, **fields):
        """Update the row for ``school_code`` when it exists, insert it otherwise.

        Returns ``(instance, created)``.
        """
        instance = self.for_code(school_code)
        if instance is None:
            fields.update(self._code_lookup(school_code))
            return self.create(**fields), True

        for name, value in fields.items():
            setattr(instance, name, value)
        instance.save()
        return instance, False

    def update_for(self, school_code, **fields):
        instance = self.for_code(school_code)
        if instance is None:
            return None

        for name, value in fields.items():
            setattr(instance, name, value)
        # updated_at is auto_now, so a save always stamps it
        instance.save()
        return instance

    def delete_for(self, school_code):
        deleted, _ = self.filter(**self._code_lookup(school_code)).delete()
        return deleted


class StudentQuerySet(models.QuerySet):
    def for_school(self, school_code):
        return self.filter(school_code=school_code)

    def with_school_name(self):
        # Subquery keeps students whose school row is gone (school_name is NULL)
        school_name = School.objects.filter(
            school_code=OuterRef('school_code')
        ).values('school_name')[:1]
        return self.annotate(school_name=Subquery(school_name))

    def next_sequence(self, school_code, grade):
        """Highest existing sequence for the school/grade prefix, plus one."""
        prefix = f"{school_code}-{grade_code(grade)}-"
        highest = 0
        for student_id in self.filter(student_id__startswith=prefix).values_list('student_id', flat=True):
            suffix = student_id[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest + 1


# ==================== USER MANAGEMENT ====================
class User(AbstractUser):
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('school', 'School'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='admin')

    class Meta:
        indexes = [
            models.Index(fields=['role'], name='idx_user_role'),
        ]

    @property
    def is_admin(self):
        return self.role == 'admin' or self.is_superuser


# ==================== ABSTRACT SHAPES ====================
class SchoolProfile(models.Model):
    """Registration form fields shared by the draft and final school tables."""
    school_code = models.CharField(max_length=20, unique=True)
    school_name = models.CharField(max_length=255)
    school_address = models.TextField(blank=True, null=True)
    contact_numbers = models.CharField(max_length=100, blank=True, null=True)
    school_type = models.CharField(max_length=20, choices=SCHOOL_TYPE_CHOICES, blank=True, null=True)
    academic_year_start = models.CharField(max_length=20, blank=True, null=True)
    academic_year_end = models.CharField(max_length=20, blank=True, null=True)
    grade_level_from = models.CharField(max_length=10, blank=True, null=True)
    grade_level_till = models.CharField(max_length=10, blank=True, null=True)
    languages = models.JSONField(default=list, blank=True)
    other_language = models.CharField(max_length=100, blank=True, null=True)

    # Contacts
    principal_name = models.CharField(max_length=150, blank=True, null=True)
    principal_email = models.EmailField(blank=True, null=True)
    principal_cell = models.CharField(max_length=20, blank=True, null=True)
    primary_coordinator_name = models.CharField(max_length=150, blank=True, null=True)
    primary_coordinator_email = models.EmailField(blank=True, null=True)
    primary_coordinator_cell = models.CharField(max_length=20, blank=True, null=True)
    middle_coordinator_name = models.CharField(max_length=150, blank=True, null=True)
    middle_coordinator_email = models.EmailField(blank=True, null=True)
    middle_coordinator_cell = models.CharField(max_length=20, blank=True, null=True)

    # Enrolment counts
    grade_iv = models.PositiveIntegerField(default=0)
    grade_v = models.PositiveIntegerField(default=0)
    grade_vi = models.PositiveIntegerField(default=0)
    grade_vii = models.PositiveIntegerField(default=0)
    grade_viii = models.PositiveIntegerField(default=0)
    psp_msp_registration = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    SCHOOL_CODE_FIELD = 'school_code'

    objects = SchoolCodeQuerySet.as_manager()

    class Meta:
        abstract = True
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.school_code} - {self.school_name}"


class ResourcesProfile(models.Model):
    primary_teachers = models.PositiveIntegerField(blank=True, null=True)
    middle_teachers = models.PositiveIntegerField(blank=True, null=True)
    undergraduate_teachers = models.PositiveIntegerField(default=0)
    graduate_teachers = models.PositiveIntegerField(default=0)
    postgraduate_teachers = models.PositiveIntegerField(default=0)
    education_degree_teachers = models.PositiveIntegerField(default=0)

    # Timetable
    total_weeks = models.PositiveIntegerField(blank=True, null=True)
    weekly_periods = models.PositiveIntegerField(blank=True, null=True)
    period_duration = models.PositiveIntegerField(blank=True, null=True)
    max_students = models.PositiveIntegerField(blank=True, null=True)

    facilities = models.JSONField(default=list, blank=True)
    other_facility_1 = models.CharField(max_length=150, blank=True, null=True)
    other_facility_2 = models.CharField(max_length=150, blank=True, null=True)
    other_facility_3 = models.CharField(max_length=150, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    SCHOOL_CODE_FIELD = 'school_id'

    objects = SchoolCodeQuerySet.as_manager()

    class Meta:
        abstract = True

    def __str__(self):
        return f"Resources - {self.school_id}"


class PaymentDetails(models.Model):
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, blank=True, null=True)
    cheque_number = models.CharField(max_length=50, blank=True, null=True)
    cheque_date = models.DateField(blank=True, null=True)
    deposit_slip_number = models.CharField(max_length=50, blank=True, null=True)
    deposit_date = models.DateField(blank=True, null=True)
    deposit_pay_order_number = models.CharField(max_length=50, blank=True, null=True)

    # Declaration
    head_of_institution = models.CharField(max_length=150, blank=True, null=True)
    disclaimer_accepted = models.BooleanField(default=False)
    head_signature = models.CharField(max_length=255, blank=True, null=True)
    institution_stamp = models.CharField(max_length=255, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    SCHOOL_CODE_FIELD = 'school_id'

    objects = SchoolCodeQuerySet.as_manager()

    class Meta:
        abstract = True


# ==================== DRAFT REGISTRATION ====================
class DraftSchool(SchoolProfile):
    class Meta(SchoolProfile.Meta):
        verbose_name = "Draft School"
        verbose_name_plural = "Draft Schools"


class DraftResources(ResourcesProfile):
    school = models.OneToOneField(
        DraftSchool, on_delete=models.CASCADE, to_field='school_code',
        db_column='school_code', related_name='resources'
    )

    class Meta(ResourcesProfile.Meta):
        verbose_name = "Draft Resources"
        verbose_name_plural = "Draft Resources"


class DraftFees(PaymentDetails):
    school = models.OneToOneField(
        DraftSchool, on_delete=models.CASCADE, to_field='school_code',
        db_column='school_code', related_name='fees'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('20000.00'))

    class Meta(PaymentDetails.Meta):
        verbose_name = "Draft Fees"
        verbose_name_plural = "Draft Fees"

    def __str__(self):
        return f"Draft fees - {self.school_id}"


# ==================== FINAL REGISTRATION ====================
class School(SchoolProfile):
    is_active = models.BooleanField(default=True)
    registration_completed_at = models.DateTimeField(blank=True, null=True)

    class Meta(SchoolProfile.Meta):
        indexes = [
            models.Index(fields=['is_active'], name='idx_school_active'),
        ]


class Resources(ResourcesProfile):
    school = models.OneToOneField(
        School, on_delete=models.CASCADE, to_field='school_code',
        db_column='school_code', related_name='resources'
    )

    class Meta(ResourcesProfile.Meta):
        verbose_name_plural = "Resources"


class Fees(PaymentDetails):
    school = models.OneToOneField(
        School, on_delete=models.CASCADE, to_field='school_code',
        db_column='school_code', related_name='fees'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('20000.00'))
    payment_screenshot = models.CharField(max_length=255, blank=True, null=True)

    class Meta(PaymentDetails.Meta):
        verbose_name_plural = "Fees"

    def __str__(self):
        return f"Fees - {self.school_id}"


class SchoolCredentials(models.Model):
    school = models.OneToOneField(
        School, on_delete=models.CASCADE, to_field='school_code',
        db_column='school_code', related_name='credentials'
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='school_credentials'
    )
    username = models.CharField(max_length=50, unique=True)
    password = models.CharField(max_length=128)  # hashed
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    SCHOOL_CODE_FIELD = 'school_id'

    objects = SchoolCodeQuerySet.as_manager()

    class Meta:
        verbose_name = "School Credentials"
        verbose_name_plural = "School Credentials"

    def __str__(self):
        return self.username


# ==================== STUDENT MANAGEMENT ====================
class Student(models.Model):
    student_id = models.CharField(max_length=30, unique=True, editable=False)
    # Plain column: students outlive their school row
    school_code = models.CharField(max_length=20, db_index=True)
    student_name = models.CharField(max_length=150)
    father_name = models.CharField(max_length=150)
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES)
    date_of_birth = models.DateField()
    grade = models.CharField(max_length=4, choices=GRADE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StudentQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['school_code', 'grade'], name='idx_student_school_grade'),
        ]

    @staticmethod
    def duplicate_key(student_name, father_name, date_of_birth):
        return (
            (student_name or '').strip().lower(),
            (father_name or '').strip().lower(),
            date_of_birth.isoformat() if date_of_birth else None,
        )

    @property
    def level(self):
        return grade_level(self.grade)

    def __str__(self):
        return f"{self.student_name} ({self.student_id})"


class StudentFees(PaymentDetails):
    school = models.OneToOneField(
        School, on_delete=models.CASCADE, to_field='school_code',
        db_column='school_code', related_name='student_fees'
    )
    primary_candidates = models.PositiveIntegerField(default=0)
    middle_candidates = models.PositiveIntegerField(default=0)
    primary_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                         validators=[MinValueValidator(0)])
    middle_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                        validators=[MinValueValidator(0)])
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    payment_screenshot = models.CharField(max_length=255, blank=True, null=True)

    class Meta(PaymentDetails.Meta):
        verbose_name_plural = "Student Fees"

    def save(self, *args, **kwargs):
        # Amounts always follow the candidate counts
        per_candidate = settings.PBL_FEE_PER_CANDIDATE
        self.primary_amount = self.primary_candidates * per_candidate['primary']
        self.middle_amount = self.middle_candidates * per_candidate['middle']
        self.total_amount = self.primary_amount + self.middle_amount
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Student fees - {self.school_id}"


# ==================== SYSTEM & AUDIT ====================
class AuditAction(models.TextChoices):
    STUDENT_CREATED = 'STUDENT_CREATED', 'Student Created'
    STUDENT_UPDATED = 'STUDENT_UPDATED', 'Student Updated'
    STUDENT_DELETED = 'STUDENT_DELETED', 'Student Deleted'
    STUDENT_IMPORTED = 'STUDENT_IMPORTED', 'Student Imported'
    STUDENT_VIEWED = 'STUDENT_VIEWED', 'Student Viewed'
    SCHOOL_CREATED = 'SCHOOL_CREATED', 'School Created'
    SCHOOL_UPDATED = 'SCHOOL_UPDATED', 'School Updated'
    SCHOOL_DELETED = 'SCHOOL_DELETED', 'School Deleted'
    SCHOOL_ACTIVATED = 'SCHOOL_ACTIVATED', 'School Activated'
    SCHOOL_DEACTIVATED = 'SCHOOL_DEACTIVATED', 'School Deactivated'
    SCHOOL_VIEWED = 'SCHOOL_VIEWED', 'School Viewed'
    REGISTRATION_COMPLETED = 'REGISTRATION_COMPLETED', 'Registration Completed'
    DRAFT_CREATED = 'DRAFT_CREATED', 'Draft Created'
    DRAFT_UPDATED = 'DRAFT_UPDATED', 'Draft Updated'
    DRAFT_DELETED = 'DRAFT_DELETED', 'Draft Deleted'
    FEES_CREATED = 'FEES_CREATED', 'Fees Created'
    FEES_UPDATED = 'FEES_UPDATED', 'Fees Updated'
    RESOURCES_CREATED = 'RESOURCES_CREATED', 'Resources Created'
    RESOURCES_UPDATED = 'RESOURCES_UPDATED', 'Resources Updated'
    USER_LOGIN = 'USER_LOGIN', 'User Login'
    USER_LOGOUT = 'USER_LOGOUT', 'User Logout'
    SYSTEM_ERROR = 'SYSTEM_ERROR', 'System Error'
    API_REQUEST = 'API_REQUEST', 'API Request'


class AuditLog(models.Model):
    action = models.CharField(max_length=40, choices=AuditAction.choices)

    # Who
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    username = models.CharField(max_length=150, blank=True, null=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.TextField(blank=True, null=True)
    session_id = models.CharField(max_length=100, blank=True, null=True)

    # What
    resource = models.CharField(max_length=50, blank=True, null=True)
    resource_id = models.CharField(max_length=50, blank=True, null=True)
    old_data = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    new_data = models.JSONField(blank=True, null=True, encoder=DjangoJSONEncoder)
    details = models.TextField(blank=True, null=True)

    # Outcome
    success = models.BooleanField(default=True)
    error_message = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['resource'], name='idx_audit_resource'),
        ]

    def __str__(self):
        return f"{self.created_at} - {self.action} - {self.username or 'Unknown'}"
