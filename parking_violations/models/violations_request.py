import uuid

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String

from parking_violations.models.base import Base


class ViolationsRequest(Base):
    """ Represents an audit record of one aggregation run """

    __tablename__ = 'violations_requests'

    # columns
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36))
    vehicle_count = Column(Integer, default=0, nullable=False)
    requests_count = Column(Integer, default=0, nullable=False)
    finders_count = Column(Integer, default=0, nullable=False)
    violations_found = Column(Integer, default=0, nullable=False)
    requestor = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # indices
    __table_args__ = (
        Index('index_violations_requests_company_id', 'company_id'),
        Index('index_violations_requests_created_at', 'created_at'),
    )
