from sqlalchemy import Column, Index, String

from parking_violations.models.base import Base
from parking_violations.models.vehicle import Vehicle


class CompanyVehicle(Base):
    """ Represents a fleet vehicle. Owned by the fleet backend; only read here. """

    __tablename__ = 'vehicles'

    # columns
    id = Column(String(36), primary_key=True)
    company_id = Column(String(36), nullable=False)
    license_plate = Column(String(16))
    state = Column(String(8))

    # indices
    __table_args__ = (
        Index('index_vehicles_company_id', 'company_id'),
    )

    def to_vehicle(self) -> Vehicle:
        return Vehicle(id=self.id,
                       company_id=self.company_id,
                       license_plate=self.license_plate,
                       state=self.state)
