import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("cases", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Donation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Amount (PKR)")),
                ("payment_method", models.CharField(choices=[("stripe", "Stripe"), ("jazzcash", "JazzCash"), ("easypaisa", "Easypaisa"), ("card", "Card")], default="card", max_length=10, verbose_name="Payment Method")),
                ("payment_reference", models.CharField(blank=True, default="", help_text="Processor-issued id of the capture; used as idempotency key.", max_length=255, verbose_name="Payment Reference")),
                ("transaction_id", models.CharField(blank=True, default="", max_length=255, verbose_name="Transaction ID")),
                ("is_zakat_donation", models.BooleanField(default=False, verbose_name="Zakat Donation")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed")], db_index=True, default="completed", max_length=10, verbose_name="Status")),
                ("case", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="donations", to="cases.case", verbose_name="Case")),
                ("donor", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="donations", to=settings.AUTH_USER_MODEL, verbose_name="Donor")),
            ],
            options={
                "verbose_name": "Donation",
                "verbose_name_plural": "Donations",
                "ordering": ["-created_at"],
                "permissions": [
                    ("can_view_all_donations", "Can see every donor's donations"),
                    ("can_reconcile_totals", "Can recalculate case donation totals"),
                ],
                "indexes": [
                    models.Index(fields=["case", "status"], name="donations_d_case_id_6e0a7c_idx"),
                    models.Index(fields=["donor", "status"], name="donations_d_donor_i_3f5b21_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("payment_reference", ""), _negated=True), fields=("payment_reference",), name="unique_donation_payment_reference"),
                ],
            },
        ),
    ]
