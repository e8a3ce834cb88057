"""
Django admin registrations for the onboarding models.

Mostly read-oriented: state changes go through the API so that the
service-layer rules (transitions, signing, promotion) are applied.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Application,
    AuditEvent,
    ChecklistItem,
    Contract,
    ContractTemplate,
    Document,
    EvaluationScore,
    Hospital,
    SequenceCounter,
    User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'role', 'primary_hospital', 'is_staff', 'is_superuser')
    list_filter = ('role', 'is_staff', 'is_superuser')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Platform', {'fields': ('role', 'phone', 'primary_hospital')}),
    )


class DocumentInline(admin.TabularInline):
    model = Document
    extra = 0
    fields = ('document_type', 'name', 'is_verified', 'verified_at', 'size', 'checksum')
    readonly_fields = fields


class ChecklistInline(admin.TabularInline):
    model = ChecklistItem
    extra = 0
    fields = ('code', 'category', 'is_required', 'is_completed', 'completed_at')
    readonly_fields = fields


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ('application_number', 'hospital_name', 'state', 'status', 'evaluation_score', 'submitted_at')
    list_filter = ('status', 'state', 'facility_type')
    search_fields = ('application_number', 'hospital_name', 'contact_email')
    readonly_fields = ('application_number', 'status', 'evaluation_score', 'decision', 'submitted_at',
                       'reviewed_at', 'approved_at', 'rejected_at', 'withdrawn_at')
    inlines = [DocumentInline, ChecklistInline]


@admin.register(EvaluationScore)
class EvaluationScoreAdmin(admin.ModelAdmin):
    list_display = ('application', 'total_score', 'recommendation', 'is_auto_generated', 'evaluated_at')
    list_filter = ('recommendation', 'is_auto_generated')


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'state', 'status', 'owner', 'activated_at')
    list_filter = ('status', 'state')
    search_fields = ('code', 'name', 'email')


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ('contract_number', 'hospital', 'status', 'version', 'hospital_signed_at', 'operator_signed_at')
    list_filter = ('status', 'currency')
    search_fields = ('contract_number', 'hospital__name')
    readonly_fields = ('status', 'document_hash', 'hospital_signed_at', 'operator_signed_at', 'activated_at')


@admin.register(ContractTemplate)
class ContractTemplateAdmin(admin.ModelAdmin):
    list_display = ('name', 'template_type', 'version', 'is_active', 'updated_at')
    list_filter = ('template_type', 'is_active')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')


admin.site.register(SequenceCounter)
