from django.contrib import admin

from .models import Case, CaseNumberSequence


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ("case_number", "patient_name", "district", "priority",
                    "status", "volunteer", "volunteer_approval_status",
                    "funding_target", "total_donations", "created_at")
    list_filter = ("status", "priority", "district", "case_type",
                   "volunteer_approval_status", "zakat_eligible")
    search_fields = ("case_number", "patient_name", "area", "manual_area")
    readonly_fields = ("case_number", "total_donations", "decided_by",
                       "decided_at", "created_at", "updated_at")


@admin.register(CaseNumberSequence)
class CaseNumberSequenceAdmin(admin.ModelAdmin):
    list_display = ("year", "last_value")
