import logging

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import and_, func, or_

from parking_violations.models.company_vehicle import CompanyVehicle
from parking_violations.models.persistence_result import PersistenceResult
from parking_violations.models.vehicle import Vehicle
from parking_violations.models.violation import Violation
from parking_violations.models.violation_record import ViolationRecord
from parking_violations.models.violations_request import ViolationsRequest

LOG = logging.getLogger(__name__)


class ViolationPersistenceService:
    """Stores violations per company, keyed by notice number and otherwise
    by citation number, and keeps the audit trail of aggregation runs."""

    def upsert_violations(self,
                          company_id: str,
                          records: Iterable[ViolationRecord]) -> PersistenceResult:
        result = PersistenceResult()

        for record in records:
            if not record.dedup_key:
                LOG.debug(f'skipping violation without identifiers for company {company_id}')
                result.skipped += 1
                continue

            try:
                existing: Optional[Violation] = self._find_existing(company_id, record)

                if existing:
                    existing.apply_record(record)
                else:
                    violation = Violation(company_id=company_id)
                    violation.apply_record(record)
                    Violation.query.session.add(violation)

                Violation.query.session.commit()

            except Exception as exc:  # pylint: disable=broad-except
                Violation.query.session.rollback()
                result.skipped += 1

                LOG.error(f'could not save violation {record.dedup_key} '
                          f'for company {company_id}: {exc}')
                continue

            if existing:
                result.updated += 1
            else:
                result.created += 1

        LOG.info(f'company {company_id}: {result.created} created, '
                 f'{result.updated} updated, {result.skipped} skipped')

        return result

    def record_run(self,
                   company_id: Optional[str],
                   vehicle_count: int,
                   requests_count: int,
                   finders_count: int,
                   violations_found: int,
                   requestor: Optional[str]) -> Optional[ViolationsRequest]:
        try:
            run = ViolationsRequest(
                company_id=company_id,
                vehicle_count=vehicle_count,
                requests_count=requests_count,
                finders_count=finders_count,
                violations_found=violations_found,
                requestor=requestor)

            ViolationsRequest.query.session.add(run)
            ViolationsRequest.query.session.commit()

            return run

        except Exception as exc:  # pylint: disable=broad-except
            ViolationsRequest.query.session.rollback()
            LOG.warning(f'could not save aggregation run record: {exc}')

            return None

    def vehicles_for_company(self, company_id: str) -> List[Vehicle]:
        company_vehicles: List[CompanyVehicle] = CompanyVehicle.for_company(
            company_id,
            CompanyVehicle.license_plate.isnot(None),
            CompanyVehicle.license_plate != '').all()

        return [company_vehicle.to_vehicle() for company_vehicle in company_vehicles]

    def violations_for_company(self,
                               company_id: str,
                               date_from: date,
                               date_to: date) -> List[Violation]:
        """Active violations dated within [date_from, date_to].

        A violation is dated by its issue date, else its start date, else
        the day it was first stored.
        """
        range_start: datetime = datetime.combine(date_from, time.min)
        range_end: datetime = datetime.combine(date_to + timedelta(days=1), time.min)

        def _in_range(column):
            return and_(column >= range_start, column < range_end)

        return Violation.for_company(
            company_id,
            Violation.is_active.is_(True),
            or_(
                and_(Violation.issue_date.isnot(None),
                     _in_range(Violation.issue_date)),
                and_(Violation.issue_date.is_(None),
                     Violation.start_date.isnot(None),
                     _in_range(Violation.start_date)),
                and_(Violation.issue_date.is_(None),
                     Violation.start_date.is_(None),
                     _in_range(Violation.created_at)))
        ).order_by(
            func.coalesce(Violation.issue_date,
                          Violation.start_date,
                          Violation.created_at).desc()
        ).all()

    def _find_existing(self, company_id: str, record: ViolationRecord) -> Optional[Violation]:
        if record.notice_number:
            return Violation.for_company(
                company_id, Violation.notice_number == record.notice_number).first()

        return Violation.for_company(
            company_id, Violation.citation_number == record.citation_number).first()
