# admin.py
import csv

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.http import HttpResponse

from .models import (
    AuditLog, DraftFees, DraftResources, DraftSchool, Fees, Resources, School,
    SchoolCredentials, Student, StudentFees, User,
)
from .services import RegistrationService

admin.site.site_header = "PBL REGISTRATION ADMINISTRATION"
admin.site.site_title = "PBL Admin Portal"
admin.site.index_title = "School & Student Registration"


# ==================== CUSTOM ADMIN CLASSES ====================
class ReadOnlyAdminMixin:
    """Mixin to make admin read-only"""
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class ExportCsvMixin:
    """Mixin to add CSV export functionality"""
    def export_as_csv(self, request, queryset):
        field_names = [field.name for field in self.model._meta.fields]

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename={self.model.__name__}.csv'

        writer = csv.writer(response)
        writer.writerow(field_names)

        for obj in queryset:
            writer.writerow([getattr(obj, field) for field in field_names])

        return response

    export_as_csv.short_description = "Export Selected as CSV"


# ==================== USER MANAGEMENT ====================
class CustomUserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'first_name', 'role', 'is_active', 'last_login')
    list_filter = ('role', 'is_active', 'is_staff')
    search_fields = ('username', 'email', 'first_name', 'last_name')
    ordering = ('-date_joined',)

    fieldsets = (
        (None, {'fields': ('username', 'password')}),
        ('Personal Info', {'fields': ('first_name', 'last_name', 'email')}),
        ('Role', {'fields': ('role',)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser',
                                   'groups', 'user_permissions')}),
        ('Important Dates', {'fields': ('last_login', 'date_joined')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('username', 'email', 'role', 'password1', 'password2'),
        }),
    )

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return ('last_login', 'date_joined')
        return ()


# ==================== DRAFT REGISTRATION ====================
class DraftResourcesInline(admin.StackedInline):
    model = DraftResources
    extra = 0


class DraftFeesInline(admin.StackedInline):
    model = DraftFees
    extra = 0


class DraftSchoolAdmin(admin.ModelAdmin):
    list_display = ('school_code', 'school_name', 'school_type', 'principal_name', 'created_at', 'updated_at')
    list_filter = ('school_type',)
    search_fields = ('school_code', 'school_name', 'principal_name', 'principal_email')
    readonly_fields = ('created_at', 'updated_at')
    inlines = [DraftResourcesInline, DraftFeesInline]


# ==================== REGISTERED SCHOOLS ====================
class ResourcesInline(admin.StackedInline):
    model = Resources
    extra = 0


class FeesInline(admin.StackedInline):
    model = Fees
    extra = 0


class SchoolAdmin(admin.ModelAdmin, ExportCsvMixin):
    list_display = ('school_code', 'school_name', 'school_type', 'is_active',
                    'registration_completed_at', 'created_at')
    list_filter = ('is_active', 'school_type')
    search_fields = ('school_code', 'school_name', 'principal_name', 'principal_email')
    readonly_fields = ('school_code', 'registration_completed_at', 'created_at', 'updated_at')
    date_hierarchy = 'created_at'
    inlines = [ResourcesInline, FeesInline]
    actions = ['export_as_csv', 'activate_schools', 'deactivate_schools']

    fieldsets = (
        ('School Information', {
            'fields': ('school_code', 'school_name', 'school_address', 'contact_numbers', 'school_type',
                       'academic_year_start', 'academic_year_end', 'grade_level_from', 'grade_level_till',
                       'languages', 'other_language', 'psp_msp_registration')
        }),
        ('Contacts', {
            'fields': ('principal_name', 'principal_email', 'principal_cell',
                       'primary_coordinator_name', 'primary_coordinator_email', 'primary_coordinator_cell',
                       'middle_coordinator_name', 'middle_coordinator_email', 'middle_coordinator_cell')
        }),
        ('Enrolment', {
            'fields': ('grade_iv', 'grade_v', 'grade_vi', 'grade_vii', 'grade_viii')
        }),
        ('Status', {
            'fields': ('is_active', 'registration_completed_at', 'created_at', 'updated_at')
        }),
    )

    def activate_schools(self, request, queryset):
        for school in queryset:
            RegistrationService.set_active(school, True)
        self.message_user(request, f'{queryset.count()} school(s) activated successfully.')

    def deactivate_schools(self, request, queryset):
        for school in queryset:
            RegistrationService.set_active(school, False)
        self.message_user(request, f'{queryset.count()} school(s) deactivated successfully.')

    activate_schools.short_description = "Activate selected schools"
    deactivate_schools.short_description = "Deactivate selected schools"


class SchoolCredentialsAdmin(admin.ModelAdmin):
    list_display = ('username', 'school', 'user', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('username', 'school__school_name')
    # The hash is never shown or edited here
    exclude = ('password',)
    readonly_fields = ('username', 'school', 'user', 'created_at', 'updated_at')


class StudentFeesAdmin(admin.ModelAdmin, ExportCsvMixin):
    list_display = ('school', 'primary_candidates', 'middle_candidates', 'total_amount',
                    'payment_method', 'disclaimer_accepted')
    list_filter = ('payment_method', 'disclaimer_accepted')
    search_fields = ('school__school_code', 'school__school_name')
    readonly_fields = ('primary_amount', 'middle_amount', 'total_amount', 'created_at', 'updated_at')
    actions = ['export_as_csv']


# ==================== STUDENT MANAGEMENT ====================
class StudentAdmin(admin.ModelAdmin, ExportCsvMixin):
    list_display = ('student_id', 'student_name', 'father_name', 'school_code', 'grade',
                    'gender', 'date_of_birth', 'created_at')
    list_filter = ('grade', 'gender')
    search_fields = ('student_id', 'student_name', 'father_name', 'school_code')
    readonly_fields = ('student_id', 'school_code', 'created_at', 'updated_at')
    date_hierarchy = 'created_at'
    actions = ['export_as_csv']

    def has_add_permission(self, request):
        # Students get their IDs through the import service
        return False


# ==================== SYSTEM & AUDIT ====================
class AuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin, ExportCsvMixin):
    list_display = ('created_at', 'action', 'user', 'username', 'resource',
                    'resource_id', 'success', 'ip_address')
    list_filter = ('action', 'success', 'resource', 'created_at')
    search_fields = ('username', 'user__username', 'resource', 'resource_id', 'ip_address')
    readonly_fields = ('created_at', 'session_id')
    date_hierarchy = 'created_at'
    actions = ['export_as_csv']


# User Management
admin.site.register(User, CustomUserAdmin)

# Draft Registration
admin.site.register(DraftSchool, DraftSchoolAdmin)

# Registered Schools
admin.site.register(School, SchoolAdmin)
admin.site.register(SchoolCredentials, SchoolCredentialsAdmin)
admin.site.register(StudentFees, StudentFeesAdmin)

# Students
admin.site.register(Student, StudentAdmin)

# System & Audit
admin.site.register(AuditLog, AuditLogAdmin)
