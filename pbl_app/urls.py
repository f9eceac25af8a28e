# urls.py
from django.urls import path

from . import views

urlpatterns = [
    # Authentication endpoints
    path('api/auth/login/', views.LoginView.as_view(), name='login'),
    path('api/auth/logout/', views.LogoutView.as_view(), name='logout'),
    path('api/auth/refresh-token/', views.RefreshTokenView.as_view(), name='refresh-token'),
    path('api/auth/system-status/', views.system_status, name='system-status'),

    # Draft registration
    path('api/drafts/school/', views.DraftSchoolUpsertView.as_view(), name='draft-school-upsert'),
    path('api/drafts/schools/', views.DraftSchoolListView.as_view(), name='draft-school-list'),
    path('api/drafts/school/<str:school_code>/', views.DraftSchoolDetailView.as_view(), name='draft-school-detail'),
    path('api/drafts/resources/', views.DraftResourcesUpsertView.as_view(), name='draft-resources-upsert'),
    path('api/drafts/resources/<str:school_code>/', views.DraftResourcesDetailView.as_view(),
         name='draft-resources-detail'),
    path('api/drafts/fees/', views.DraftFeesUpsertView.as_view(), name='draft-fees-upsert'),
    path('api/drafts/fees/<str:school_code>/', views.DraftFeesDetailView.as_view(), name='draft-fees-detail'),

    # Registered schools
    path('api/schools/', views.SchoolListView.as_view(), name='school-list'),
    path('api/schools/<str:school_code>/', views.SchoolDetailView.as_view(), name='school-detail'),
    path('api/schools/<str:school_code>/complete/', views.CompleteRegistrationView.as_view(),
         name='school-complete'),
    path('api/schools/<str:school_code>/toggle/', views.SchoolToggleView.as_view(), name='school-toggle'),
    path('api/schools/<str:school_code>/resources/', views.SchoolResourcesView.as_view(), name='school-resources'),
    path('api/schools/<str:school_code>/fees/', views.SchoolFeesView.as_view(), name='school-fees'),
    path('api/schools/<str:school_code>/credentials/', views.SchoolCredentialsView.as_view(),
         name='school-credentials'),
    path('api/schools/<str:school_code>/pdf/', views.SchoolPdfView.as_view(), name='school-pdf'),
    path('api/schools/<str:school_code>/student-fees/', views.StudentFeesView.as_view(), name='student-fees'),

    # Student management endpoints
    path('api/schools/<str:school_code>/students/', views.SchoolStudentsView.as_view(), name='school-students'),
    path('api/schools/<str:school_code>/students/import/', views.SchoolStudentImportView.as_view(),
         name='school-student-import'),
    path('api/schools/<str:school_code>/students/placeholders/', views.PlaceholderStudentsView.as_view(),
         name='school-student-placeholders'),
    path('api/students/', views.StudentListView.as_view(), name='student-list'),
    path('api/students/import/', views.StudentImportView.as_view(), name='student-import'),
    path('api/students/import/excel/', views.StudentBulkImportView.as_view(), name='student-import-excel'),
    path('api/students/download-template/', views.DownloadTemplateView.as_view(), name='download-template'),
    path('api/students/<str:student_id>/', views.StudentDetailView.as_view(), name='student-detail'),

    # Uploads
    path('api/upload/deposit-slip/', views.DepositSlipUploadView.as_view(), name='upload-deposit-slip'),

    # Audit
    path('api/audit-logs/', views.AuditLogListView.as_view(), name='audit-log-list'),
]
