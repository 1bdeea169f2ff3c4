import uuid

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric, String, Text

from parking_violations.models.base import Base
from parking_violations.models.violation_record import ViolationRecord


class Violation(Base):
    """ Represents a stored violation owned by a company """

    __tablename__ = 'violations'

    # columns
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), nullable=False)
    citation_number = Column(String(64))
    notice_number = Column(String(64))
    provider = Column(Integer, default=0, nullable=False)
    agency = Column(String(255))
    address = Column(String(512))
    tag = Column(String(32))
    state = Column(String(8))
    issue_date = Column(DateTime)
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    amount = Column(Numeric(12, 2), default=0, nullable=False)
    currency = Column(String(8))
    payment_status = Column(Integer, default=0, nullable=False)
    fine_type = Column(Integer, default=0, nullable=False)
    note = Column(Text)
    link = Column(String(1024))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # indices
    __table_args__ = (
        Index('index_company_id', 'company_id'),
        Index('index_citation_number', 'citation_number'),
        Index('index_notice_number', 'notice_number'),
        Index('index_issue_date', 'issue_date'),
        Index('index_company_id_citation_number', 'company_id', 'citation_number'),
        Index('index_company_id_notice_number', 'company_id', 'notice_number'),
        Index('index_company_id_issue_date', 'company_id', 'issue_date'),
    )

    MUTABLE_FIELDS = ('citation_number', 'notice_number', 'provider',
                      'agency', 'address', 'tag', 'state', 'issue_date',
                      'start_date', 'end_date', 'amount', 'currency',
                      'payment_status', 'fine_type', 'note', 'link',
                      'is_active')

    def apply_record(self, record: ViolationRecord) -> None:
        for field_name in self.MUTABLE_FIELDS:
            value = getattr(record, field_name)
            if field_name in ('payment_status', 'fine_type'):
                value = int(value)
            setattr(self, field_name, value)

        self.updated_at = datetime.utcnow()

    def to_record(self) -> ViolationRecord:
        return ViolationRecord(
            **{field_name: getattr(self, field_name)
               for field_name in self.MUTABLE_FIELDS})

    def to_dict(self):
        rendered = self.to_record().to_dict()
        rendered['id'] = self.id
        rendered['companyId'] = self.company_id
        rendered['createdAt'] = self.created_at.isoformat() if self.created_at else None
        rendered['updatedAt'] = self.updated_at.isoformat() if self.updated_at else None
        # stored flag wins over the recomputed one
        rendered['isActive'] = self.is_active
        return rendered
