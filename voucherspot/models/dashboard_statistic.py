from datetime import datetime

from voucherspot.extensions import db

PERIOD_CURRENT_MONTH = "current_month"
PERIOD_ALL_TIME = "all_time"
PERIODS = (PERIOD_CURRENT_MONTH, PERIOD_ALL_TIME)


class DashboardStatistic(db.Model):
    __tablename__ = "dashboard_statistics"

    id = db.Column(db.Integer, primary_key=True)
    # Null means all routers
    router_id = db.Column(db.Integer, db.ForeignKey("router_configurations.id"), nullable=True)
    period = db.Column(db.String(30), nullable=False)
    statistics = db.Column(db.JSON, nullable=False, default=dict)
    computed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("router_id", "period", name="uq_dashboard_statistics_router_period"),
    )

    @classmethod
    def find(cls, router_id, period):
        query = cls.query.filter_by(period=period)
        if router_id is None:
            query = query.filter(cls.router_id.is_(None))
        else:
            query = query.filter_by(router_id=router_id)
        return query.first()

    def to_dict(self):
        return {
            "router_id": self.router_id,
            "period": self.period,
            "statistics": self.statistics,
            "computed_at": self.computed_at.isoformat() if self.computed_at else None,
        }
