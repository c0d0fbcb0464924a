"""
Tests for wallet ledger rules and monthly financial report generation.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from picx.api.errors import InvalidRequestError
from picx.api.services import finance_service, wallet_service
from picx.db.models import (
    ORDER_PAID,
    TX_COMPLETED,
    TX_FAILED,
    TX_PENDING,
    FinancialReport,
    Order,
    OrderDetail,
    Payment,
    WalletTransaction,
)
from picx.tasks.finance import run_report_generation
from conftest import create_product


def completed_sum(db, wallet):
    return sum(
        (
            tx.amount
            for tx in db.query(WalletTransaction).filter(
                WalletTransaction.wallet_id == wallet.wallet_id,
                WalletTransaction.status == TX_COMPLETED,
            )
        ),
        Decimal("0.00"),
    )


class TestWalletLedger:
    def test_to_money(self):
        assert wallet_service.to_money("10.005") == Decimal("10.01")
        assert wallet_service.to_money(3) == Decimal("3.00")
        assert wallet_service.to_money(None) == Decimal("0.00")

    def test_balance_matches_completed_transactions(self, db, buyer):
        wallet = wallet_service.get_or_create_wallet(db, buyer.user_id)
        wallet_service.credit(db, wallet, Decimal("500"), "deposit", "Top-up")
        wallet_service.debit(db, wallet, Decimal("120.50"), "purchase", "Order #1")
        wallet_service.record_transaction(
            db, wallet, Decimal("300"), "deposit", "Pending top-up", status=TX_PENDING
        )
        db.commit()

        assert wallet.balance == Decimal("379.50")
        assert completed_sum(db, wallet) == wallet.balance

    def test_debit_over_balance_is_refused(self, db, buyer):
        wallet = wallet_service.get_or_create_wallet(db, buyer.user_id)
        wallet_service.credit(db, wallet, Decimal("10"), "deposit", "Top-up")

        with pytest.raises(InvalidRequestError):
            wallet_service.debit(db, wallet, Decimal("10.01"), "purchase", "Too much")

        assert wallet.balance == Decimal("10.00")

    def test_pending_settlement(self, db, buyer):
        wallet = wallet_service.get_or_create_wallet(db, buyer.user_id)
        paid = wallet_service.record_transaction(
            db, wallet, Decimal("200"), "deposit", "PayOS", status=TX_PENDING
        )
        failed = wallet_service.record_transaction(
            db, wallet, Decimal("50"), "deposit", "PayOS", status=TX_PENDING
        )

        wallet_service.complete_pending_transaction(db, paid)
        wallet_service.fail_pending_transaction(db, failed)
        # Settling twice changes nothing
        wallet_service.complete_pending_transaction(db, paid)
        db.commit()

        assert paid.status == TX_COMPLETED
        assert failed.status == TX_FAILED
        assert wallet.balance == Decimal("200.00")

    def test_get_or_create_wallet_is_idempotent(self, db, buyer):
        first = wallet_service.get_or_create_wallet(db, buyer.user_id)
        second = wallet_service.get_or_create_wallet(db, buyer.user_id)
        assert first.wallet_id == second.wallet_id


def paid_order(db, buyer, products, paid_at: datetime) -> Order:
    details = [OrderDetail(product_id=p.product_id, total_price=p.price) for p in products]
    order = Order(
        buyer_id=buyer.user_id,
        total_amount=sum((p.price for p in products), Decimal("0.00")),
        status=ORDER_PAID,
        order_date=paid_at,
        details=details,
    )
    db.add(order)
    db.flush()
    db.add(
        Payment(
            order_id=order.order_id,
            payment_method="wallet",
            payment_provider="PicX Wallet",
            transaction_id=f"tx-{order.order_id}",
            payment_date=paid_at,
            amount=order.total_amount,
            currency="VND",
        )
    )
    db.commit()
    return order


class TestFinancialReports:
    def test_month_helpers(self):
        assert finance_service.month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
        assert finance_service.previous_month(date(2024, 1, 1)) == (2023, 12)
        assert finance_service.previous_month(date(2024, 7, 15)) == (2024, 6)
        with pytest.raises(ValueError):
            finance_service.month_bounds(2024, 13)

    def test_commission(self):
        assert finance_service.commission_for(Decimal("250.00"), Decimal("10.00")) == Decimal("25.00")

    def test_generate_reports_per_artist(self, db, storage, buyer, artist, other_artist, category):
        sunset = create_product(db, storage, artist, category, title="Sunset", price="150.00")
        river = create_product(db, storage, artist, category, title="River", price="100.00")
        city = create_product(db, storage, other_artist, category, title="City", price="80.00")
        paid_order(db, buyer, [sunset, city], datetime(2024, 5, 3, 9, 0))
        paid_order(db, buyer, [river], datetime(2024, 5, 31, 23, 59))
        # Outside the period
        late = create_product(db, storage, artist, category, title="Late", price="999.00")
        paid_order(db, buyer, [late], datetime(2024, 6, 1, 0, 0))

        reports = finance_service.generate_financial_reports(db, 2024, 5, Decimal("10.00"))
        db.commit()

        by_artist = {report.artist_id: report for report in reports}
        assert set(by_artist) == {artist.user_id, other_artist.user_id}
        assert by_artist[artist.user_id].total_sales == Decimal("250.00")
        assert by_artist[artist.user_id].total_commission == Decimal("25.00")
        assert by_artist[artist.user_id].net_earnings == Decimal("225.00")
        assert by_artist[other_artist.user_id].total_sales == Decimal("80.00")
        assert by_artist[artist.user_id].period_start == date(2024, 5, 1)
        assert by_artist[artist.user_id].period_end == date(2024, 5, 31)

    def test_order_with_several_payments_counts_once(self, db, storage, buyer, artist, category):
        sunset = create_product(db, storage, artist, category, title="Sunset", price="150.00")
        order = paid_order(db, buyer, [sunset], datetime(2024, 5, 3))
        db.add(
            Payment(
                order_id=order.order_id,
                payment_method="payos",
                payment_provider="PayOS",
                transaction_id="retry-1",
                payment_date=datetime(2024, 5, 4),
                amount=order.total_amount,
                currency="VND",
            )
        )
        db.commit()

        sales = finance_service.sales_by_artist(db, date(2024, 5, 1), date(2024, 5, 31))

        assert sales == {artist.user_id: Decimal("150.00")}

    def test_regeneration_refreshes_existing_rows(self, db, storage, buyer, artist, category):
        sunset = create_product(db, storage, artist, category, title="Sunset", price="150.00")
        paid_order(db, buyer, [sunset], datetime(2024, 5, 3))
        finance_service.generate_financial_reports(db, 2024, 5, Decimal("10.00"))
        db.commit()

        finance_service.generate_financial_reports(db, 2024, 5, Decimal("20.00"))
        db.commit()

        reports = db.query(FinancialReport).filter(FinancialReport.artist_id == artist.user_id).all()
        assert len(reports) == 1
        assert reports[0].total_commission == Decimal("30.00")
        assert reports[0].net_earnings == Decimal("120.00")

    def test_statistics(self, db, storage, buyer, artist, other_artist, category):
        a = create_product(db, storage, artist, category, title="A", price="100.00")
        b = create_product(db, storage, other_artist, category, title="B", price="50.00")
        c = create_product(db, storage, artist, category, title="C", price="40.00")
        paid_order(db, buyer, [a, b], datetime(2024, 4, 10))
        paid_order(db, buyer, [c], datetime(2024, 5, 10))
        for month in (4, 5):
            finance_service.generate_financial_reports(db, 2024, month, Decimal("10.00"))
        db.commit()

        assert finance_service.artist_statistics(db, artist.user_id) == [
            {"month": "2024-04", "income": 100.0, "expense": 10.0},
            {"month": "2024-05", "income": 40.0, "expense": 4.0},
        ]
        assert finance_service.admin_statistics(db) == [
            {"month": "2024-04", "income": 150.0, "expense": 15.0},
            {"month": "2024-05", "income": 40.0, "expense": 4.0},
        ]

    def test_scheduled_generation_uses_its_own_session(
        self, db, session_factory, storage, buyer, artist, category
    ):
        sunset = create_product(db, storage, artist, category, title="Sunset", price="150.00")
        paid_order(db, buyer, [sunset], datetime(2024, 3, 12))

        result = run_report_generation(session_factory, 2024, 3, Decimal("10.00"))

        assert result == {"status": "success", "period": "2024-03", "reports_generated": 1}
        assert db.query(FinancialReport).count() == 1
