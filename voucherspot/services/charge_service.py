import logging
from dataclasses import dataclass

from voucherspot.errors import ChargeOverlapError
from voucherspot.extensions import db
from voucherspot.models import TransactionCharge
from voucherspot.models.transaction_charge import NETWORKS
from voucherspot.utils.validation import Validator

logger = logging.getLogger(__name__)

MAX_CHARGE = 999999.99

# Charges are only deducted from amounts above this threshold
CHARGE_DEDUCTION_THRESHOLD = 500


@dataclass(frozen=True)
class ChargeDetails:
    charge: float
    total: float


def find_charge_configuration(amount, network):
    return (
        TransactionCharge.query
        .filter(
            TransactionCharge.network == network,
            TransactionCharge.min_amount <= amount,
            TransactionCharge.max_amount >= amount,
        )
        .order_by(TransactionCharge.min_amount)
        .first()
    )


def get_transaction_charge(amount, network):
    config = find_charge_configuration(amount, network)
    return float(config.charge) if config else 0.0


def calculate_total_with_charge(amount, network):
    """Charge for ``amount`` and the amount left to collect after it."""
    charge = get_transaction_charge(amount, network)
    total = amount - charge if amount > CHARGE_DEDUCTION_THRESHOLD else amount
    return ChargeDetails(charge=charge, total=float(total))


def validate_charge_payload(payload):
    validator = (
        Validator(payload)
        .integer("min_amount", minimum=0, required=True)
        .integer("max_amount", required=True)
        .number("charge", minimum=0, maximum=MAX_CHARGE, required=True)
        .one_of(
            "network", NETWORKS, required=True,
            message="Network must be either MTN or AIRTEL",
        )
    )
    data = validator.data
    if "min_amount" in data and "max_amount" in data:
        validator.check(
            data["max_amount"] > data["min_amount"],
            "max_amount",
            "Maximum amount must be greater than minimum amount",
        )
    return validator.validate()


def has_overlap(*, network, min_amount, max_amount, exclude_id=None):
    query = TransactionCharge.query.filter(
        TransactionCharge.network == network,
        TransactionCharge.min_amount <= max_amount,
        TransactionCharge.max_amount >= min_amount,
    )
    if exclude_id is not None:
        query = query.filter(TransactionCharge.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _ensure_no_overlap(data, exclude_id=None):
    if has_overlap(
        network=data["network"],
        min_amount=data["min_amount"],
        max_amount=data["max_amount"],
        exclude_id=exclude_id,
    ):
        raise ChargeOverlapError(
            "Amount range overlaps with an existing charge configuration for this network"
        )


def create_charge(*, payload):
    data = validate_charge_payload(payload)
    _ensure_no_overlap(data)

    charge = TransactionCharge(**data)
    db.session.add(charge)
    db.session.commit()
    logger.info(
        "Transaction charge created",
        extra={"network": charge.network, "min_amount": charge.min_amount, "max_amount": charge.max_amount},
    )
    return charge


def update_charge(*, charge, payload):
    data = validate_charge_payload(payload)
    _ensure_no_overlap(data, exclude_id=charge.id)

    for key, value in data.items():
        setattr(charge, key, value)
    db.session.commit()
    return charge


def calculate_charge(*, amount, network):
    """Preview the fee added on top of ``amount`` for the admin calculator."""
    config = find_charge_configuration(amount, network)
    if config is None:
        return {
            "message": "No charge configuration found for this amount and network",
            "charge": 0,
        }
    return {
        "charge": config.charge,
        "total_amount": amount + config.charge,
        "configuration": config.to_dict(),
    }
