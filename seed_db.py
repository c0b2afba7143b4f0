from datetime import timedelta

from currency import to_minor_units
from database import (
    PaymentMethod,
    RecurringInterval,
    ReportFrequency,
    ReportSettings,
    SessionLocal,
    Transaction,
    TransactionType,
    User,
    init_db,
    transactional,
)
from date_ranges import start_of_next_month, utcnow
from recurrence import schedule_next_occurrence
from security import hash_password

DEMO_EMAIL = "demo@example.com"

SAMPLE_TRANSACTIONS = [
    # (days ago, type, title, amount, category, payment method, recurring interval)
    (28, TransactionType.INCOME, "Salary", 4200.00, "Salary", PaymentMethod.BANK_TRANSFER, RecurringInterval.MONTHLY),
    (26, TransactionType.EXPENSE, "Rent", 1450.00, "Housing", PaymentMethod.BANK_TRANSFER, RecurringInterval.MONTHLY),
    (21, TransactionType.EXPENSE, "Weekly groceries", 86.40, "Food", PaymentMethod.CARD, None),
    (14, TransactionType.EXPENSE, "Weekly groceries", 92.15, "Food", PaymentMethod.CARD, None),
    (12, TransactionType.EXPENSE, "Streaming subscription", 15.99, "Entertainment", PaymentMethod.AUTO_DEBIT, RecurringInterval.MONTHLY),
    (9, TransactionType.EXPENSE, "Train pass", 60.00, "Transport", PaymentMethod.MOBILE_PAYMENT, None),
    (6, TransactionType.INCOME, "Freelance invoice", 650.00, "Freelance", PaymentMethod.BANK_TRANSFER, None),
    (3, TransactionType.EXPENSE, "Dinner out", 48.75, "Food", PaymentMethod.CARD, None),
    (1, TransactionType.EXPENSE, "Pharmacy", 23.10, "Health", PaymentMethod.CASH, None),
]


def seed_demo_user():
    init_db()
    db = SessionLocal()

    # Check if the demo user exists
    if db.query(User).filter(User.email == DEMO_EMAIL).first():
        print("Demo user already exists. Skipping seed.")
        db.close()
        return

    now = utcnow()
    try:
        with transactional(db):
            user = User(name="Demo User", email=DEMO_EMAIL, password_hash=hash_password("demo1234"))
            db.add(user)
            db.flush()
            db.add(
                ReportSettings(
                    user_id=user.id,
                    frequency=ReportFrequency.MONTHLY,
                    is_enabled=True,
                    next_report_date=start_of_next_month(now),
                )
            )

            for days_ago, txn_type, title, amount, category, method, interval in SAMPLE_TRANSACTIONS:
                occurred_at = now - timedelta(days=days_ago)
                db.add(
                    Transaction(
                        user_id=user.id,
                        type=txn_type,
                        title=title,
                        amount=to_minor_units(amount),
                        category=category,
                        date=occurred_at,
                        payment_method=method,
                        is_recurring=interval is not None,
                        recurring_interval=interval,
                        next_recurring_date=schedule_next_occurrence(interval is not None, interval, occurred_at, now),
                    )
                )
    finally:
        db.close()
    print(f"Database seeded with {DEMO_EMAIL} / demo1234 and {len(SAMPLE_TRANSACTIONS)} transactions.")


if __name__ == "__main__":
    seed_demo_user()
