"""
Integration tests for the deposit request lifecycle.

Tests cover:
- Submission checks
- Approval crediting the balance and paying the referral cascade
- Rejection and double processing
- Notification failures not affecting the deposit
"""

from decimal import Decimal

import pytest

from wallet_ledger.models.enums import DepositStatus, TransactionType
from wallet_ledger.repositories.commission_repository import CommissionRecordRepository
from wallet_ledger.repositories.request_repository import DepositRequestRepository
from wallet_ledger.repositories.transaction_repository import TransactionRepository
from wallet_ledger.services.deposit import DepositRequestService
from wallet_ledger.services.ledger.store import LedgerStore
from wallet_ledger.services.referral.cascade import CascadeStopReason
from wallet_ledger.utils.exceptions import (
    AccountNotFound,
    AlreadyProcessed,
    InvalidAmount,
    RequestNotFound,
)


class MalformedSettingsProvider:
    """Settings source holding a row it cannot parse."""

    async def get_referral_settings(self):
        raise RuntimeError("malformed settings row {'level': 1}")

    async def get_investment_plan(self, plan_id):
        raise RuntimeError(f"malformed plan row {{'id': {plan_id}}}")


@pytest.fixture
def deposit_service(session, settings_provider, notification_sink):
    return DepositRequestService(session, settings_provider, notification_sink)


class TestSubmit:
    """Test deposit submission."""

    @pytest.mark.asyncio
    async def test_creates_pending_request(self, deposit_service, make_account):
        """A valid submission is stored as pending."""
        await make_account(1)

        deposit = await deposit_service.submit(
            1, Decimal("100"), "bank_transfer", external_reference="TX-1"
        )

        assert deposit.status == DepositStatus.PENDING.value
        assert deposit.amount == Decimal("100.00")
        assert deposit.external_reference == "TX-1"

    @pytest.mark.asyncio
    async def test_no_balance_effect(self, session, deposit_service, make_account):
        """Submission alone does not move money."""
        await make_account(1)

        await deposit_service.submit(1, Decimal("100"), "bank_transfer")

        assert await LedgerStore(session).get_balance(1) == Decimal("0.00")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["0", "-10"])
    async def test_non_positive_amount(self, deposit_service, make_account, amount):
        """Zero and negative deposits are rejected."""
        await make_account(1)

        with pytest.raises(InvalidAmount):
            await deposit_service.submit(1, Decimal(amount), "bank_transfer")

    @pytest.mark.asyncio
    async def test_unknown_account(self, deposit_service):
        """Deposits need an existing account."""
        with pytest.raises(AccountNotFound):
            await deposit_service.submit(404, Decimal("10"), "bank_transfer")


class TestApprove:
    """Test deposit approval."""

    @pytest.mark.asyncio
    async def test_credits_balance_and_pays_chain(
        self, session, deposit_service, make_account, set_referral_setting
    ):
        """Approval credits the user and each configured referrer level."""
        await set_referral_setting("level2_percentage", "2")
        await make_account(100)  # B
        await make_account(200, referred_by=100)  # A
        await make_account(300, referred_by=200)  # U
        deposit = await deposit_service.submit(300, Decimal("1000"), "bank_transfer")

        result = await deposit_service.approve(deposit.id, admin_id=1)

        store = LedgerStore(session)
        assert result.balance_after == Decimal("1000.00")
        assert await store.get_balance(300) == Decimal("1000.00")
        assert await store.get_balance(200) == Decimal("50.00")
        assert await store.get_balance(100) == Decimal("20.00")

        assert [(c.level, c.referrer_user_id, c.amount) for c in result.cascade.paid] == [
            (1, 200, Decimal("50.00")),
            (2, 100, Decimal("20.00")),
        ]
        assert result.cascade.stop_reason == CascadeStopReason.CHAIN_EXHAUSTED
        assert result.needs_cascade_retry is False

        records = await CommissionRecordRepository(session).find_for_trigger(
            "deposit", str(deposit.id)
        )
        assert sorted(
            (r.referrer_user_id, r.referred_user_id, r.level, r.commission_amount)
            for r in records
        ) == [
            (100, 300, 2, Decimal("20.00")),
            (200, 300, 1, Decimal("50.00")),
        ]

    @pytest.mark.asyncio
    async def test_status_and_ledger_entry(self, session, deposit_service, make_account):
        """The request is approved and exactly one deposit entry exists."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("75.50"), "card")

        result = await deposit_service.approve(deposit.id, admin_id=9)

        stored = await DepositRequestRepository(session).get_fresh(deposit.id)
        assert stored.status == DepositStatus.APPROVED.value
        assert stored.processed_by == 9
        assert stored.processed_at is not None

        entry = await TransactionRepository(session).get_by_reference(
            TransactionType.DEPOSIT.value, "deposit_request", str(deposit.id)
        )
        assert entry.id == result.transaction_id
        assert entry.amount == Decimal("75.50")

    @pytest.mark.asyncio
    async def test_notifies_user(self, deposit_service, make_account, notification_sink):
        """The depositor is told about the credit."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("10"), "card")

        await deposit_service.approve(deposit.id, admin_id=9)

        assert notification_sink.types_for(1) == ["deposit_approved"]

    @pytest.mark.asyncio
    async def test_double_approval(self, session, deposit_service, make_account):
        """A second approval fails and credits nothing."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("100"), "card")
        await deposit_service.approve(deposit.id, admin_id=9)

        with pytest.raises(AlreadyProcessed):
            await deposit_service.approve(deposit.id, admin_id=9)

        assert await LedgerStore(session).get_balance(1) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_concurrent_approval_credits_once(
        self, session_maker, settings_provider_factory, make_account
    ):
        """Two admins approving the same request credit it once."""
        await make_account(1)
        async with session_maker() as first, session_maker() as second:
            first_service = DepositRequestService(first, settings_provider_factory(first))
            second_service = DepositRequestService(
                second, settings_provider_factory(second)
            )
            deposit = await first_service.submit(1, Decimal("100"), "card")
            # Second admin has the request loaded as pending
            stale = await DepositRequestRepository(second).get_by_id(deposit.id)
            assert stale.status == DepositStatus.PENDING.value
            await second.commit()

            await first_service.approve(deposit.id, admin_id=1)
            with pytest.raises(AlreadyProcessed):
                await second_service.approve(deposit.id, admin_id=2)

            assert await LedgerStore(second).get_balance(1) == Decimal("100.00")
            assert await TransactionRepository(second).count(
                user_id=1, type=TransactionType.DEPOSIT.value
            ) == 1

    @pytest.mark.asyncio
    async def test_unknown_request(self, deposit_service):
        """Approving a missing request fails."""
        with pytest.raises(RequestNotFound):
            await deposit_service.approve(12345, admin_id=1)

    @pytest.mark.asyncio
    async def test_failing_sink_keeps_deposit(
        self, session, settings_provider, make_account, failing_sink
    ):
        """A broken notification channel does not undo the approval."""
        await make_account(1)
        await make_account(2, referred_by=1)
        service = DepositRequestService(session, settings_provider, failing_sink)
        deposit = await service.submit(2, Decimal("200"), "card")

        result = await service.approve(deposit.id, admin_id=1)

        assert result.cascade_error is None
        assert [c.level for c in result.cascade.paid] == [1]
        assert await LedgerStore(session).get_balance(2) == Decimal("200.00")
        assert await LedgerStore(session).get_balance(1) == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_cascade_error_with_braces_keeps_approval(
        self, session, notification_sink, make_account
    ):
        """A cascade error whose text contains braces is reported, not raised."""
        await make_account(1)
        await make_account(2, referred_by=1)
        service = DepositRequestService(
            session, MalformedSettingsProvider(), notification_sink
        )
        deposit = await service.submit(2, Decimal("100"), "card")

        result = await service.approve(deposit.id, admin_id=1)

        assert result.cascade_error == "malformed settings row {'level': 1}"
        assert result.needs_cascade_retry is True
        assert await LedgerStore(session).get_balance(2) == Decimal("100.00")
        assert await LedgerStore(session).get_balance(1) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_retry_cascade_skips_paid_levels(
        self, session, deposit_service, make_account
    ):
        """Re-running the cascade of an approved deposit pays nothing twice."""
        await make_account(1)
        await make_account(2, referred_by=1)
        deposit = await deposit_service.submit(2, Decimal("100"), "card")
        await deposit_service.approve(deposit.id, admin_id=1)

        retry = await deposit_service.retry_cascade(deposit.id)

        assert retry.paid == []
        assert retry.skipped == [1]
        assert await LedgerStore(session).get_balance(1) == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_retry_cascade_needs_approval(self, deposit_service, make_account):
        """Pending deposits have no cascade to retry."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("100"), "card")

        with pytest.raises(AlreadyProcessed):
            await deposit_service.retry_cascade(deposit.id)


class TestReject:
    """Test deposit rejection."""

    @pytest.mark.asyncio
    async def test_reject_has_no_balance_effect(
        self, session, deposit_service, make_account
    ):
        """A rejected deposit never touches the ledger."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("100"), "card")

        rejected = await deposit_service.reject(deposit.id, admin_id=5, reason="No proof")

        assert rejected.status == DepositStatus.REJECTED.value
        assert rejected.admin_notes == "No proof"
        assert await LedgerStore(session).get_balance(1) == Decimal("0.00")
        assert await TransactionRepository(session).count(user_id=1) == 0

    @pytest.mark.asyncio
    async def test_rejected_cannot_be_approved(self, deposit_service, make_account):
        """Rejection is final."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("100"), "card")
        await deposit_service.reject(deposit.id, admin_id=5)

        with pytest.raises(AlreadyProcessed):
            await deposit_service.approve(deposit.id, admin_id=5)

    @pytest.mark.asyncio
    async def test_approved_cannot_be_rejected(self, deposit_service, make_account):
        """An approved deposit stays approved."""
        await make_account(1)
        deposit = await deposit_service.submit(1, Decimal("100"), "card")
        await deposit_service.approve(deposit.id, admin_id=5)

        with pytest.raises(AlreadyProcessed):
            await deposit_service.reject(deposit.id, admin_id=5)
