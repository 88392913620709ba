"""
Cases app models.

Covers one medical-need case from submission, through volunteer
verification and the admin's final decision, to funding by donors.
Donations themselves live in the ``donations`` app; the case only keeps
the running ``total_donations`` aggregate.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models

from core.constants import MONEY_DECIMAL_PLACES, MONEY_MAX_DIGITS
from core.models import TimeStampedModel
from core.permissions_constants import CasesPerms


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class District(models.TextChoices):
    """Karachi administrative districts a patient can live in."""

    CENTRAL = "Central", "Central"
    EAST = "East", "East"
    SOUTH = "South", "South"
    WEST = "West", "West"
    MALIR = "Malir", "Malir"
    KORANGI = "Korangi", "Korangi"
    KEAMARI = "Keamari", "Keamari"


class CasePriority(models.TextChoices):
    HIGH = "High", "High"
    MEDIUM = "Medium", "Medium"
    LOW = "Low", "Low"


class CaseStatus(models.TextChoices):
    """
    Persisted admin-facing status.  ``accepted`` and ``rejected`` are
    the admin's decision; only accepted cases take donations.
    """

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"


class VolunteerApprovalStatus(models.TextChoices):
    """Verdict slot of the assigned volunteer (``NULL`` when unassigned)."""

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class VolunteerRejectionReason(models.TextChoices):
    """Closed set of reasons a volunteer may cite when rejecting."""

    PERSONAL = "Personal information issue", "Personal information issue"
    FINANCIAL = "Financial information issue", "Financial information issue"
    DISEASE = "Disease information issue", "Disease information issue"


class LifecycleState(models.TextChoices):
    """
    Derived state of the approval workflow.  Never stored; computed from
    ``status``, ``volunteer`` and ``volunteer_approval_status``.
    """

    UNASSIGNED = "unassigned", "Unassigned"
    VOLUNTEER_PENDING = "volunteer_pending", "Awaiting Volunteer Verdict"
    VOLUNTEER_APPROVED = "volunteer_approved", "Volunteer Approved"
    VOLUNTEER_REJECTED = "volunteer_rejected", "Volunteer Rejected"
    ADMIN_ACCEPTED = "admin_accepted", "Accepted"
    ADMIN_REJECTED = "admin_rejected", "Rejected"


class CaseType(models.TextChoices):
    """What the requested money pays for."""

    MEDICINE = "medicine", "Medicine / Treatment"
    TEST = "test", "Laboratory Tests"


class DiseaseType(models.TextChoices):
    CHRONIC = "chronic", "Chronic"
    OTHER = "other", "Other"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class CaseNumberSequence(models.Model):
    """
    Per-year counter backing ``Case.case_number``.

    Incremented with an ``F()`` update under a row lock, so concurrent
    submissions in the same year never draw the same number.
    """

    year = models.PositiveIntegerField(unique=True, verbose_name="Year")
    last_value = models.PositiveIntegerField(default=0, verbose_name="Last Issued Value")

    class Meta:
        verbose_name = "Case Number Sequence"
        verbose_name_plural = "Case Number Sequences"

    def __str__(self):
        return f"{self.year}: {self.last_value}"


class Case(TimeStampedModel):
    """
    A medical-need case submitted on behalf of a patient.

    * ``priority`` is derived from the patient's location at creation and
      only changes through an explicit admin override or a recompute.
    * At most one volunteer is bound at a time; reassignment replaces the
      previous volunteer and resets the verdict slot.
    * ``total_donations`` only ever grows through
      ``donations.services.FundingLedgerService``.
    """

    case_number = models.CharField(
        max_length=20,
        unique=True,
        editable=False,
        verbose_name="Case Number",
        help_text="CASE-<year>-<5-digit sequence>, e.g. CASE-2025-00001.",
    )
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="submitted_cases",
        verbose_name="Submitted By",
    )

    # ── Patient profile ─────────────────────────────────────────────
    patient_name = models.CharField(max_length=255, verbose_name="Patient Name")
    patient_cnic = models.CharField(
        max_length=15,
        blank=True,
        default="",
        verbose_name="Patient CNIC",
    )
    patient_phone = models.CharField(
        max_length=20,
        blank=True,
        default="",
        verbose_name="Patient Phone",
    )
    district = models.CharField(
        max_length=20,
        choices=District.choices,
        verbose_name="District",
    )
    area = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Area",
        help_text="Locality picked from the area list.",
    )
    manual_area = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Manual Area",
        help_text="Free-text locality when it is not in the list.",
    )
    address = models.TextField(blank=True, default="", verbose_name="Address")

    # ── Disease information ─────────────────────────────────────────
    case_type = models.CharField(
        max_length=10,
        choices=CaseType.choices,
        default=CaseType.MEDICINE,
        verbose_name="Case Type",
    )
    disease_type = models.CharField(
        max_length=10,
        choices=DiseaseType.choices,
        blank=True,
        default="",
        verbose_name="Disease Type",
    )
    disease_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Disease",
    )
    selected_tests = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Selected Tests",
    )
    description = models.TextField(blank=True, default="", verbose_name="Description")
    hospital_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Hospital",
    )
    doctor_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Doctor",
    )

    # ── Opaque references from the document store ───────────────────
    document_reference = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Medical Document Reference",
    )
    utility_bill_reference = models.CharField(
        max_length=500,
        blank=True,
        default="",
        verbose_name="Utility Bill Reference",
    )

    # ── Classification ──────────────────────────────────────────────
    priority = models.CharField(
        max_length=10,
        choices=CasePriority.choices,
        default=CasePriority.MEDIUM,
        db_index=True,
        verbose_name="Priority",
    )
    priority_overridden = models.BooleanField(
        default=False,
        verbose_name="Priority Overridden",
        help_text="Pinned by an admin; bulk recomputes leave it untouched.",
    )

    # ── Workflow ────────────────────────────────────────────────────
    status = models.CharField(
        max_length=10,
        choices=CaseStatus.choices,
        default=CaseStatus.PENDING,
        db_index=True,
        verbose_name="Status",
    )
    volunteer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_cases",
        verbose_name="Assigned Volunteer",
    )
    volunteer_approval_status = models.CharField(
        max_length=10,
        choices=VolunteerApprovalStatus.choices,
        null=True,
        blank=True,
        default=None,
        verbose_name="Volunteer Verdict",
    )
    volunteer_rejection_reasons = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Volunteer Rejection Reasons",
    )
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="decided_cases",
        verbose_name="Decided By",
    )
    decided_at = models.DateTimeField(null=True, blank=True, verbose_name="Decided At")

    # ── Funding ─────────────────────────────────────────────────────
    funding_target = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        verbose_name="Funding Target (PKR)",
    )
    zakat_eligible = models.BooleanField(
        default=False,
        verbose_name="Zakat Eligible",
        help_text="Whether zakat-restricted money may fund this case.",
    )
    total_donations = models.DecimalField(
        max_digits=MONEY_MAX_DIGITS,
        decimal_places=MONEY_DECIMAL_PLACES,
        default=Decimal("0"),
        verbose_name="Total Donations (PKR)",
    )

    class Meta:
        verbose_name = "Case"
        verbose_name_plural = "Cases"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "priority"], name="cases_case_status_8b1f3e_idx"),
            models.Index(fields=["volunteer", "volunteer_approval_status"], name="cases_case_volunte_4c2a9d_idx"),
        ]
        permissions = [
            (CasesPerms.CAN_ASSIGN_VOLUNTEER, "Can assign a volunteer to a case"),
            (CasesPerms.CAN_RECORD_VERDICT, "Can record a volunteer verdict"),
            (CasesPerms.CAN_DECIDE_CASE, "Can accept or reject a case"),
            (CasesPerms.CAN_OVERRIDE_PRIORITY, "Can override or recompute case priority"),
            (CasesPerms.CAN_BE_ASSIGNED_VOLUNTEER, "Can be assigned to cases as volunteer"),
            (CasesPerms.CAN_SCOPE_ALL_CASES, "Can see all cases"),
            (CasesPerms.CAN_SCOPE_ASSIGNED_CASES, "Can see cases assigned to self"),
            (CasesPerms.CAN_SCOPE_OWN_CASES, "Can see self-submitted cases"),
            (CasesPerms.CAN_SCOPE_ACCEPTED_CASES, "Can see accepted cases"),
        ]

    def __str__(self):
        return f"{self.case_number} - {self.patient_name} [{self.get_status_display()}]"

    @property
    def effective_area(self) -> str:
        """Locality used for classification: the picked area, else the typed one."""
        return self.area or self.manual_area

    @property
    def lifecycle_state(self) -> str:
        if self.status == CaseStatus.ACCEPTED:
            return LifecycleState.ADMIN_ACCEPTED
        if self.status == CaseStatus.REJECTED:
            return LifecycleState.ADMIN_REJECTED
        if self.volunteer_id is None:
            return LifecycleState.UNASSIGNED
        return {
            VolunteerApprovalStatus.APPROVED: LifecycleState.VOLUNTEER_APPROVED,
            VolunteerApprovalStatus.REJECTED: LifecycleState.VOLUNTEER_REJECTED,
        }.get(self.volunteer_approval_status, LifecycleState.VOLUNTEER_PENDING)

    @property
    def remaining_amount(self) -> Decimal:
        return max(Decimal("0"), self.funding_target - self.total_donations)

    @property
    def is_fully_funded(self) -> bool:
        return self.total_donations >= self.funding_target
