from sqlalchemy import Column, Integer, String, UniqueConstraint

from event_analytics.db.models.event import BaseORM


class Cohort(BaseORM):
    __tablename__ = "cohorts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    cohort = Column(String)
    state = Column(String)

    __table_args__ = (
        UniqueConstraint("campaign", "subject", name="uq_cohorts_campaign_subject"),
    )
