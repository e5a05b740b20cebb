import csv
import io
import logging
import random
import uuid
from datetime import datetime, timedelta

from sqlalchemy import func, or_

from voucherspot.errors import NotFoundError
from voucherspot.extensions import db
from voucherspot.models import RouterConfiguration, Transaction, Voucher, VoucherPackage
from voucherspot.models.transaction import CHANNEL_CASH, CHANNEL_MOBILE_MONEY
from voucherspot.payments import TransactionStatus
from voucherspot.utils.pagination import paginate
from voucherspot.utils.validation import Validator

logger = logging.getLogger(__name__)

STATUSES = tuple(s.value for s in TransactionStatus)
MANUAL_STATUSES = ("pending", "successful", "failed")

DEFAULT_PER_PAGE = 150
DEFAULT_LOOKBACK_DAYS = 60

CSV_COLUMNS = [
    "Payment ID",
    "Phone Number",
    "Amount",
    "Currency",
    "Package",
    "Voucher Code",
    "Status",
    "Channel",
    "Router ID",
    "MFS Code",
    "Created At",
    "Updated At",
]


def format_currency(amount, currency="UGX"):
    amount = float(amount or 0)
    currency = (currency or "UGX").upper()
    if currency == "UGX":
        return f"UGX {amount:,.0f}"
    if currency == "USD":
        return f"${amount:,.2f}"
    if currency == "EUR":
        return f"€{amount:,.2f}"
    return f"{currency} {amount:,.2f}"


def validate_filters(args, paginated=True, now=None):
    """Parse list/export query parameters.

    ``date_from`` defaults to two months back for the paginated list.
    """
    args = dict(args.items()) if hasattr(args, "items") else dict(args or {})
    if paginated and not args.get("date_from"):
        args["date_from"] = ((now or datetime.utcnow()) - timedelta(days=DEFAULT_LOOKBACK_DAYS)).strftime("%Y-%m-%d")

    validator = (
        Validator(args)
        .string("search", max_length=255)
        .integer("router_id")
        .one_of("status", STATUSES)
        .date("date_from")
        .date("date_to")
    )
    if paginated:
        validator.integer("per_page", minimum=10, maximum=500).integer("page", minimum=1)

    data = validator.data
    router_id = data.get("router_id")
    if router_id and db.session.get(RouterConfiguration, router_id) is None:
        validator.check(False, "router_id", "The selected router_id is invalid.")
    if data.get("date_from") and data.get("date_to"):
        validator.check(
            data["date_to"] >= data["date_from"],
            "date_to",
            "The date_to must be a date after or equal to date_from.",
        )
    return validator.validate()


def build_filters(filters, with_status=True, search_vouchers=True, search_status=True):
    conditions = []

    if filters.get("router_id"):
        conditions.append(Transaction.router_id == filters["router_id"])

    if with_status and filters.get("status"):
        conditions.append(Transaction.status == filters["status"])

    if filters.get("date_from"):
        start = filters["date_from"].replace(hour=0, minute=0, second=0, microsecond=0)
        conditions.append(Transaction.created_at >= start)

    if filters.get("date_to"):
        end = filters["date_to"].replace(hour=23, minute=59, second=59, microsecond=999999)
        conditions.append(Transaction.created_at <= end)

    if filters.get("search"):
        term = f"%{filters['search']}%"
        clauses = [
            Transaction.phone_number.ilike(term),
            Transaction.payment_id.ilike(term),
            Transaction.mfscode.ilike(term),
            Transaction.package.has(VoucherPackage.name.ilike(term)),
        ]
        if search_status:
            clauses.append(Transaction.status.ilike(term))
        if search_vouchers:
            clauses.append(Transaction.voucher.has(Voucher.code.ilike(term)))
        conditions.append(or_(*clauses))

    return conditions


def status_breakdown(filters):
    rows = (
        db.session.query(
            Transaction.status,
            func.count(Transaction.id),
            func.sum(Transaction.amount),
        )
        .filter(*build_filters(filters, with_status=False, search_vouchers=False, search_status=False))
        .group_by(Transaction.status)
        .all()
    )
    return {
        status: {
            "count": count,
            "total_amount": total,
            "formatted_amount": format_currency(total, "UGX"),
        }
        for status, count, total in rows
    }


def date_range_summary(filters):
    date_from = filters.get("date_from")
    date_to = filters.get("date_to")
    if not date_from and not date_to:
        return None
    return {
        "date_from": date_from.strftime("%Y-%m-%d") if date_from else None,
        "date_to": date_to.strftime("%Y-%m-%d") if date_to else None,
        "days_span": (date_to.date() - date_from.date()).days + 1 if date_from and date_to else None,
    }


def list_transactions(args, now=None):
    now = now or datetime.utcnow()
    filters = validate_filters(args, now=now)

    def serialize(transaction):
        item = transaction.to_dict()
        item["formatted_amount"] = format_currency(transaction.amount, transaction.currency)
        item["days_old"] = (now - transaction.created_at).days if transaction.created_at else 0
        return item

    query = (
        Transaction.query
        .filter(*build_filters(filters))
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    result = paginate(query, filters.get("page", 1), filters.get("per_page", DEFAULT_PER_PAGE), serialize)
    result["summary"] = {
        "total_transactions": result["total"],
        "status_breakdown": status_breakdown(filters),
        "date_range_summary": date_range_summary(filters),
    }
    return result


def _fmt_dt(value):
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else ""


def export_csv(args):
    filters = validate_filters(args, paginated=False)
    transactions = (
        Transaction.query
        .filter(*build_filters(filters, search_vouchers=False))
        .order_by(Transaction.created_at.desc())
        .all()
    )

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for t in transactions:
        writer.writerow([
            t.payment_id,
            t.phone_number,
            t.amount,
            t.currency,
            t.package.name if t.package else "N/A",
            t.voucher.code if t.voucher else "N/A",
            t.status,
            t.channel,
            t.router_id,
            t.mfscode,
            _fmt_dt(t.created_at),
            _fmt_dt(t.updated_at),
        ])
    return buffer.getvalue()


def _unique_reference(prefix):
    return prefix + uuid.uuid4().hex[:13]


def _unused_payment_id(prefix, digits):
    """Random numeric payment id with ``prefix`` that no transaction holds yet."""
    low, high = 10 ** (digits - 1), 10 ** digits - 1
    while True:
        payment_id = f"{prefix}{random.randint(low, high)}"
        taken = db.session.query(
            Transaction.query.filter_by(payment_id=payment_id).exists()
        ).scalar()
        if not taken:
            return payment_id


def _validate_manual(payload):
    return (
        Validator(payload)
        .string("phone_number", required=True)
        .number("amount", required=True)
        .string("currency", max_length=3, required=True)
        .one_of("status", MANUAL_STATUSES, required=True)
    )


def save_manual_transaction(payload):
    """Record a transaction entered by hand (withdrawals use negative amounts)."""
    validator = _validate_manual(payload).integer("router_id", required=True).date("created_at")
    data = validator.data
    if data.get("router_id") and db.session.get(RouterConfiguration, data["router_id"]) is None:
        validator.check(False, "router_id", "The selected router_id is invalid.")
    data = validator.validate()

    transaction = Transaction(
        phone_number=data["phone_number"],
        amount=int(data["amount"]),
        currency=data["currency"],
        status=data["status"],
        payment_id=_unused_payment_id("82", 6),
        mfscode=_unique_reference("MW"),
        package_id=None,
        channel=CHANNEL_MOBILE_MONEY,
        router_id=data["router_id"],
    )
    if data.get("created_at"):
        transaction.created_at = data["created_at"]
    db.session.add(transaction)
    db.session.commit()
    return transaction


def save_voucher_transaction(voucher_id, payload):
    """Attach a cash sale to an existing voucher."""
    data = _validate_manual(payload).validate()

    voucher = Voucher.not_deleted().filter_by(id=voucher_id).first()
    if voucher is None:
        raise NotFoundError("Voucher not found")

    transaction = Transaction(
        phone_number=data["phone_number"],
        amount=int(data["amount"]),
        currency=data["currency"],
        status=data["status"],
        payment_id=_unused_payment_id("90", 8),
        mfscode=_unique_reference("ME"),
        package_id=voucher.package_id,
        router_id=voucher.router_id,
        channel=CHANNEL_CASH,
    )
    db.session.add(transaction)
    db.session.flush()
    voucher.transaction_id = transaction.id
    db.session.commit()
    return voucher
