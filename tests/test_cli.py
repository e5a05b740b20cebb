from datetime import datetime

from voucherspot.extensions import db
from voucherspot.models import User, Voucher


def test_create_admin(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "create-admin", "--email", "Ops@VoucherSpot.test", "--name", "Ops", "--password", "s3cretpass",
    ])

    assert result.exit_code == 0
    user = User.query.filter_by(email="ops@voucherspot.test").one()
    assert user.check_password("s3cretpass")


def test_create_admin_rejects_duplicate(app, admin_user):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "create-admin", "--email", admin_user.email, "--name", "Again", "--password", "x",
    ])

    assert result.exit_code != 0
    assert "already exists" in result.output


def test_recalculate_voucher_expiry_dry_run(app, make_voucher):
    activated = datetime(2024, 5, 1, 8, 0, 0)
    voucher = make_voucher(code="DRYRUN01", activated_at=activated, expires_at=activated)

    result = app.test_cli_runner().invoke(args=["recalculate-voucher-expiry", "--dry-run"])

    assert result.exit_code == 0
    assert "[DRY RUN] DRYRUN01 -> 2024-05-02 08:00:00" in result.output
    assert "1 vouchers would be updated." in result.output
    assert db.session.get(Voucher, voucher.id).expires_at == activated


def test_cleanup_old_logs_without_log_dir(app):
    result = app.test_cli_runner().invoke(args=["cleanup-old-logs"])
    assert result.exit_code == 0
    assert "Deleted 0 old log files." in result.output
