"""
Concurrency tests: simultaneous donations to one case must all be
reflected in the running total, and simultaneous admin decisions on one
case must settle on a single outcome.

Runs against the file-backed SQLite test database by default, where
writers queue on the database lock, and against PostgreSQL when
``DB_ENGINE`` selects it.
"""

from __future__ import annotations

import threading
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.db import connection
from django.test import TransactionTestCase

from accounts.models import Role, RoleName, User
from cases.models import Case, CaseStatus
from cases.services import CaseSubmissionService, CaseWorkflowService
from cases.tests.helpers import medicine_payload
from donations.models import Donation
from donations.services import FundingLedgerService

DONORS = 8
DONATIONS_PER_DONOR = 5
CONTESTED_CASES = 4


class TestConcurrentWrites(TransactionTestCase):

    def setUp(self):
        call_command("setup_rbac", stdout=StringIO())
        roles = {role.name: role for role in Role.objects.all()}

        self.admin = User.objects.create_user(
            username="admin_user", password="CaseFlow!Pass1",
            email="admin_user@example.com", phone_number="03000000001",
            role=roles[RoleName.ADMIN],
        )
        self.other_admin = User.objects.create_user(
            username="other_admin", password="CaseFlow!Pass1",
            email="other_admin@example.com", phone_number="03000000002",
            role=roles[RoleName.ADMIN],
        )
        self.submitter = User.objects.create_user(
            username="submitter_user", password="CaseFlow!Pass1",
            email="submitter_user@example.com", phone_number="03000000003",
            role=roles[RoleName.SUBMITTER],
        )
        self.donors = [
            User.objects.create_user(
                username=f"donor_{n}", password="CaseFlow!Pass1",
                email=f"donor_{n}@example.com", phone_number=f"0301{n:07d}",
                role=roles[RoleName.DONOR],
            )
            for n in range(DONORS)
        ]
        case = CaseSubmissionService.submit_case(medicine_payload(), self.submitter)
        self.case = CaseWorkflowService.admin_approve(case.pk, self.admin)

    def run_together(self, workers):
        errors: list[BaseException] = []
        barrier = threading.Barrier(len(workers))

        def run(work):
            try:
                barrier.wait()
                work()
            except BaseException as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=run, args=(w,)) for w in workers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return errors

    def test_no_lost_updates(self):
        def donor_worker(donor_pk):
            def work():
                donor = User.objects.get(pk=donor_pk)
                for i in range(DONATIONS_PER_DONOR):
                    FundingLedgerService.record_donation(
                        self.case.pk, donor, "10.00",
                        payment_reference=f"ref-{donor.pk}-{i}",
                    )
            return work

        errors = self.run_together([donor_worker(d.pk) for d in self.donors])

        self.assertEqual(errors, [])
        expected = Decimal("10.00") * DONORS * DONATIONS_PER_DONOR
        self.assertEqual(Donation.objects.filter(case=self.case).count(), DONORS * DONATIONS_PER_DONOR)
        self.assertEqual(Case.objects.get(pk=self.case.pk).total_donations, expected)

    def test_competing_admin_decisions_settle_on_one_outcome(self):
        cases = [
            CaseSubmissionService.submit_case(medicine_payload(), self.submitter)
            for _ in range(CONTESTED_CASES)
        ]
        returned: dict[int, list[str]] = {case.pk: [] for case in cases}
        lock = threading.Lock()

        def decider(case_pk, admin_pk, decide):
            def work():
                admin = User.objects.get(pk=admin_pk)
                result = decide(case_pk, admin)
                with lock:
                    returned[case_pk].append(result.status)
            return work

        workers = []
        for case in cases:
            workers.append(decider(case.pk, self.admin.pk, CaseWorkflowService.admin_approve))
            workers.append(decider(case.pk, self.other_admin.pk, CaseWorkflowService.admin_reject))

        errors = self.run_together(workers)

        self.assertEqual(errors, [])
        for case in cases:
            stored = Case.objects.get(pk=case.pk)
            self.assertIn(stored.status, (CaseStatus.ACCEPTED, CaseStatus.REJECTED))
            self.assertIsNotNone(stored.decided_by_id)
            self.assertEqual(returned[case.pk], [stored.status, stored.status])
