import decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CaseNumberSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveIntegerField(unique=True, verbose_name="Year")),
                ("last_value", models.PositiveIntegerField(default=0, verbose_name="Last Issued Value")),
            ],
            options={
                "verbose_name": "Case Number Sequence",
                "verbose_name_plural": "Case Number Sequences",
            },
        ),
        migrations.CreateModel(
            name="Case",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("case_number", models.CharField(editable=False, help_text="CASE-<year>-<5-digit sequence>, e.g. CASE-2025-00001.", max_length=20, unique=True, verbose_name="Case Number")),
                ("patient_name", models.CharField(max_length=255, verbose_name="Patient Name")),
                ("patient_cnic", models.CharField(blank=True, default="", max_length=15, verbose_name="Patient CNIC")),
                ("patient_phone", models.CharField(blank=True, default="", max_length=20, verbose_name="Patient Phone")),
                ("district", models.CharField(choices=[("Central", "Central"), ("East", "East"), ("South", "South"), ("West", "West"), ("Malir", "Malir"), ("Korangi", "Korangi"), ("Keamari", "Keamari")], max_length=20, verbose_name="District")),
                ("area", models.CharField(blank=True, default="", help_text="Locality picked from the area list.", max_length=255, verbose_name="Area")),
                ("manual_area", models.CharField(blank=True, default="", help_text="Free-text locality when it is not in the list.", max_length=255, verbose_name="Manual Area")),
                ("address", models.TextField(blank=True, default="", verbose_name="Address")),
                ("case_type", models.CharField(choices=[("medicine", "Medicine / Treatment"), ("test", "Laboratory Tests")], default="medicine", max_length=10, verbose_name="Case Type")),
                ("disease_type", models.CharField(blank=True, choices=[("chronic", "Chronic"), ("other", "Other")], default="", max_length=10, verbose_name="Disease Type")),
                ("disease_name", models.CharField(blank=True, default="", max_length=255, verbose_name="Disease")),
                ("selected_tests", models.JSONField(blank=True, default=list, verbose_name="Selected Tests")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("hospital_name", models.CharField(blank=True, default="", max_length=255, verbose_name="Hospital")),
                ("doctor_name", models.CharField(blank=True, default="", max_length=255, verbose_name="Doctor")),
                ("document_reference", models.CharField(blank=True, default="", max_length=500, verbose_name="Medical Document Reference")),
                ("utility_bill_reference", models.CharField(blank=True, default="", max_length=500, verbose_name="Utility Bill Reference")),
                ("priority", models.CharField(choices=[("High", "High"), ("Medium", "Medium"), ("Low", "Low")], db_index=True, default="Medium", max_length=10, verbose_name="Priority")),
                ("priority_overridden", models.BooleanField(default=False, help_text="Pinned by an admin; bulk recomputes leave it untouched.", verbose_name="Priority Overridden")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("accepted", "Accepted"), ("rejected", "Rejected")], db_index=True, default="pending", max_length=10, verbose_name="Status")),
                ("volunteer_approval_status", models.CharField(blank=True, choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")], default=None, max_length=10, null=True, verbose_name="Volunteer Verdict")),
                ("volunteer_rejection_reasons", models.JSONField(blank=True, default=list, verbose_name="Volunteer Rejection Reasons")),
                ("decided_at", models.DateTimeField(blank=True, null=True, verbose_name="Decided At")),
                ("funding_target", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Funding Target (PKR)")),
                ("zakat_eligible", models.BooleanField(default=False, help_text="Whether zakat-restricted money may fund this case.", verbose_name="Zakat Eligible")),
                ("total_donations", models.DecimalField(decimal_places=2, default=decimal.Decimal("0"), max_digits=12, verbose_name="Total Donations (PKR)")),
                ("decided_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="decided_cases", to=settings.AUTH_USER_MODEL, verbose_name="Decided By")),
                ("submitted_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="submitted_cases", to=settings.AUTH_USER_MODEL, verbose_name="Submitted By")),
                ("volunteer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_cases", to=settings.AUTH_USER_MODEL, verbose_name="Assigned Volunteer")),
            ],
            options={
                "verbose_name": "Case",
                "verbose_name_plural": "Cases",
                "ordering": ["-created_at"],
                "permissions": [
                    ("can_assign_volunteer", "Can assign a volunteer to a case"),
                    ("can_record_verdict", "Can record a volunteer verdict"),
                    ("can_decide_case", "Can accept or reject a case"),
                    ("can_override_priority", "Can override or recompute case priority"),
                    ("can_be_assigned_volunteer", "Can be assigned to cases as volunteer"),
                    ("can_scope_all_cases", "Can see all cases"),
                    ("can_scope_assigned_cases", "Can see cases assigned to self"),
                    ("can_scope_own_cases", "Can see self-submitted cases"),
                    ("can_scope_accepted_cases", "Can see accepted cases"),
                ],
                "indexes": [
                    models.Index(fields=["status", "priority"], name="cases_case_status_8b1f3e_idx"),
                    models.Index(fields=["volunteer", "volunteer_approval_status"], name="cases_case_volunte_4c2a9d_idx"),
                ],
            },
        ),
    ]
