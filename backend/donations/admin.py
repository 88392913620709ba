from django.contrib import admin

from .models import Donation


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ("id", "case", "donor", "amount", "payment_method",
                    "is_zakat_donation", "status", "created_at")
    list_filter = ("status", "payment_method", "is_zakat_donation")
    search_fields = ("payment_reference", "transaction_id",
                     "case__case_number", "donor__username")
    readonly_fields = ("case", "donor", "amount", "payment_reference",
                       "transaction_id", "created_at", "updated_at")
