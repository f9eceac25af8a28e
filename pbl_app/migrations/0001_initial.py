import decimal

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


GRADE_CHOICES = [
    ('IV', 'Grade IV'),
    ('V', 'Grade V'),
    ('VI', 'Grade VI'),
    ('VII', 'Grade VII'),
    ('VIII', 'Grade VIII'),
]

SCHOOL_TYPE_CHOICES = [('boys', 'Boys'), ('girls', 'Girls'), ('coeducational', 'Co-educational')]

PAYMENT_METHOD_CHOICES = [('cheque', 'Cheque'), ('deposit', 'Deposit')]

AUDIT_ACTION_CHOICES = [
    ('STUDENT_CREATED', 'Student Created'),
    ('STUDENT_UPDATED', 'Student Updated'),
    ('STUDENT_DELETED', 'Student Deleted'),
    ('STUDENT_IMPORTED', 'Student Imported'),
    ('STUDENT_VIEWED', 'Student Viewed'),
    ('SCHOOL_CREATED', 'School Created'),
    ('SCHOOL_UPDATED', 'School Updated'),
    ('SCHOOL_DELETED', 'School Deleted'),
    ('SCHOOL_ACTIVATED', 'School Activated'),
    ('SCHOOL_DEACTIVATED', 'School Deactivated'),
    ('SCHOOL_VIEWED', 'School Viewed'),
    ('REGISTRATION_COMPLETED', 'Registration Completed'),
    ('DRAFT_CREATED', 'Draft Created'),
    ('DRAFT_UPDATED', 'Draft Updated'),
    ('DRAFT_DELETED', 'Draft Deleted'),
    ('FEES_CREATED', 'Fees Created'),
    ('FEES_UPDATED', 'Fees Updated'),
    ('RESOURCES_CREATED', 'Resources Created'),
    ('RESOURCES_UPDATED', 'Resources Updated'),
    ('USER_LOGIN', 'User Login'),
    ('USER_LOGOUT', 'User Logout'),
    ('SYSTEM_ERROR', 'System Error'),
    ('API_REQUEST', 'API Request'),
]


def school_profile_fields():
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('school_code', models.CharField(max_length=20, unique=True)),
        ('school_name', models.CharField(max_length=255)),
        ('school_address', models.TextField(blank=True, null=True)),
        ('contact_numbers', models.CharField(blank=True, max_length=100, null=True)),
        ('school_type', models.CharField(blank=True, choices=SCHOOL_TYPE_CHOICES, max_length=20, null=True)),
        ('academic_year_start', models.CharField(blank=True, max_length=20, null=True)),
        ('academic_year_end', models.CharField(blank=True, max_length=20, null=True)),
        ('grade_level_from', models.CharField(blank=True, max_length=10, null=True)),
        ('grade_level_till', models.CharField(blank=True, max_length=10, null=True)),
        ('languages', models.JSONField(blank=True, default=list)),
        ('other_language', models.CharField(blank=True, max_length=100, null=True)),
        ('principal_name', models.CharField(blank=True, max_length=150, null=True)),
        ('principal_email', models.EmailField(blank=True, max_length=254, null=True)),
        ('principal_cell', models.CharField(blank=True, max_length=20, null=True)),
        ('primary_coordinator_name', models.CharField(blank=True, max_length=150, null=True)),
        ('primary_coordinator_email', models.EmailField(blank=True, max_length=254, null=True)),
        ('primary_coordinator_cell', models.CharField(blank=True, max_length=20, null=True)),
        ('middle_coordinator_name', models.CharField(blank=True, max_length=150, null=True)),
        ('middle_coordinator_email', models.EmailField(blank=True, max_length=254, null=True)),
        ('middle_coordinator_cell', models.CharField(blank=True, max_length=20, null=True)),
        ('grade_iv', models.PositiveIntegerField(default=0)),
        ('grade_v', models.PositiveIntegerField(default=0)),
        ('grade_vi', models.PositiveIntegerField(default=0)),
        ('grade_vii', models.PositiveIntegerField(default=0)),
        ('grade_viii', models.PositiveIntegerField(default=0)),
        ('psp_msp_registration', models.JSONField(blank=True, default=list)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
    ]


def resources_profile_fields():
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('primary_teachers', models.PositiveIntegerField(blank=True, null=True)),
        ('middle_teachers', models.PositiveIntegerField(blank=True, null=True)),
        ('undergraduate_teachers', models.PositiveIntegerField(default=0)),
        ('graduate_teachers', models.PositiveIntegerField(default=0)),
        ('postgraduate_teachers', models.PositiveIntegerField(default=0)),
        ('education_degree_teachers', models.PositiveIntegerField(default=0)),
        ('total_weeks', models.PositiveIntegerField(blank=True, null=True)),
        ('weekly_periods', models.PositiveIntegerField(blank=True, null=True)),
        ('period_duration', models.PositiveIntegerField(blank=True, null=True)),
        ('max_students', models.PositiveIntegerField(blank=True, null=True)),
        ('facilities', models.JSONField(blank=True, default=list)),
        ('other_facility_1', models.CharField(blank=True, max_length=150, null=True)),
        ('other_facility_2', models.CharField(blank=True, max_length=150, null=True)),
        ('other_facility_3', models.CharField(blank=True, max_length=150, null=True)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
    ]


def payment_fields():
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('payment_method', models.CharField(blank=True, choices=PAYMENT_METHOD_CHOICES, max_length=10, null=True)),
        ('cheque_number', models.CharField(blank=True, max_length=50, null=True)),
        ('cheque_date', models.DateField(blank=True, null=True)),
        ('deposit_slip_number', models.CharField(blank=True, max_length=50, null=True)),
        ('deposit_date', models.DateField(blank=True, null=True)),
        ('deposit_pay_order_number', models.CharField(blank=True, max_length=50, null=True)),
        ('head_of_institution', models.CharField(blank=True, max_length=150, null=True)),
        ('disclaimer_accepted', models.BooleanField(default=False)),
        ('head_signature', models.CharField(blank=True, max_length=255, null=True)),
        ('institution_stamp', models.CharField(blank=True, max_length=255, null=True)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('updated_at', models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('school', 'School')], default='admin', max_length=20)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
                'indexes': [models.Index(fields=['role'], name='idx_user_role')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='DraftSchool',
            fields=school_profile_fields(),
            options={
                'verbose_name': 'Draft School',
                'verbose_name_plural': 'Draft Schools',
                'ordering': ['-created_at', '-id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='School',
            fields=school_profile_fields() + [
                ('is_active', models.BooleanField(default=True)),
                ('registration_completed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'abstract': False,
                'indexes': [models.Index(fields=['is_active'], name='idx_school_active')],
            },
        ),
        migrations.CreateModel(
            name='DraftResources',
            fields=resources_profile_fields() + [
                ('school', models.OneToOneField(db_column='school_code', on_delete=django.db.models.deletion.CASCADE, related_name='resources', to='pbl_app.draftschool', to_field='school_code')),
            ],
            options={
                'verbose_name': 'Draft Resources',
                'verbose_name_plural': 'Draft Resources',
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='DraftFees',
            fields=payment_fields() + [
                ('school', models.OneToOneField(db_column='school_code', on_delete=django.db.models.deletion.CASCADE, related_name='fees', to='pbl_app.draftschool', to_field='school_code')),
                ('amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('20000.00'), max_digits=10)),
            ],
            options={
                'verbose_name': 'Draft Fees',
                'verbose_name_plural': 'Draft Fees',
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Resources',
            fields=resources_profile_fields() + [
                ('school', models.OneToOneField(db_column='school_code', on_delete=django.db.models.deletion.CASCADE, related_name='resources', to='pbl_app.school', to_field='school_code')),
            ],
            options={
                'verbose_name_plural': 'Resources',
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Fees',
            fields=payment_fields() + [
                ('school', models.OneToOneField(db_column='school_code', on_delete=django.db.models.deletion.CASCADE, related_name='fees', to='pbl_app.school', to_field='school_code')),
                ('amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('20000.00'), max_digits=10)),
                ('payment_screenshot', models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                'verbose_name_plural': 'Fees',
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='SchoolCredentials',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('username', models.CharField(max_length=50, unique=True)),
                ('password', models.CharField(max_length=128)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('school', models.OneToOneField(db_column='school_code', on_delete=django.db.models.deletion.CASCADE, related_name='credentials', to='pbl_app.school', to_field='school_code')),
                ('user', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='school_credentials', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'School Credentials',
                'verbose_name_plural': 'School Credentials',
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('student_id', models.CharField(editable=False, max_length=30, unique=True)),
                ('school_code', models.CharField(db_index=True, max_length=20)),
                ('student_name', models.CharField(max_length=150)),
                ('father_name', models.CharField(max_length=150)),
                ('gender', models.CharField(choices=[('M', 'Male'), ('F', 'Female')], max_length=1)),
                ('date_of_birth', models.DateField()),
                ('grade', models.CharField(choices=GRADE_CHOICES, max_length=4)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['school_code', 'grade'], name='idx_student_school_grade')],
            },
        ),
        migrations.CreateModel(
            name='StudentFees',
            fields=payment_fields() + [
                ('school', models.OneToOneField(db_column='school_code', on_delete=django.db.models.deletion.CASCADE, related_name='student_fees', to='pbl_app.school', to_field='school_code')),
                ('primary_candidates', models.PositiveIntegerField(default=0)),
                ('middle_candidates', models.PositiveIntegerField(default=0)),
                ('primary_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('middle_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('total_amount', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=10)),
                ('payment_screenshot', models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                'verbose_name_plural': 'Student Fees',
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=AUDIT_ACTION_CHOICES, max_length=40)),
                ('username', models.CharField(blank=True, max_length=150, null=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('session_id', models.CharField(blank=True, max_length=100, null=True)),
                ('resource', models.CharField(blank=True, max_length=50, null=True)),
                ('resource_id', models.CharField(blank=True, max_length=50, null=True)),
                ('old_data', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('new_data', models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True)),
                ('details', models.TextField(blank=True, null=True)),
                ('success', models.BooleanField(default=True)),
                ('error_message', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['created_at'], name='idx_audit_created'),
                    models.Index(fields=['action'], name='idx_audit_action'),
                    models.Index(fields=['resource'], name='idx_audit_resource'),
                ],
            },
        ),
    ]
