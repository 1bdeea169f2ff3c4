import argparse
import json
import logging

from datetime import date, datetime, timedelta
from typing import Optional

from parking_violations.jobs.base_job import BaseJob
from parking_violations.models.response.company_aggregation_response import \
    CompanyAggregationResponse
from parking_violations.violations_aggregator import ViolationsAggregator

LOG = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30


class CompanyViolationsJob(BaseJob):
    """ Look up and store the violations of every vehicle of a company. """

    def __init__(self, aggregator: Optional[ViolationsAggregator] = None):
        self.aggregator = aggregator

    def perform(self, *args, **kwargs) -> CompanyAggregationResponse:
        is_dry_run: bool = kwargs.get('is_dry_run') or False

        company_id: str = kwargs['company_id']
        states = kwargs.get('states') or []

        aggregator = self.aggregator or ViolationsAggregator()

        end_date: date = aggregator.parse_request_date(
            kwargs.get('end_date') or datetime.utcnow().date(), 'EndDate')
        start_date: date = aggregator.parse_request_date(
            kwargs.get('start_date') or end_date - timedelta(days=DEFAULT_LOOKBACK_DAYS),
            'StartDate')

        response: CompanyAggregationResponse = aggregator.aggregate_company(
            company_id=company_id,
            start_date=start_date,
            end_date=end_date,
            states=states,
            requestor='Job: company_violations',
            persist=not is_dry_run)

        if is_dry_run:
            LOG.info(f'dry run, {response.violations_found} violation(s) not saved')

        LOG.info(response.message)

        return response


def parse_args():
    parser = argparse.ArgumentParser(
        description='Look up and store violations for a company\'s vehicles.')

    parser.add_argument(
        'company_id',
        help='Company whose vehicles to look up')

    parser.add_argument(
        '-s',
        '--state',
        action='append',
        dest='states',
        required=True,
        help='State to search; may be repeated')

    parser.add_argument(
        '--start-date',
        help='First issue date to keep, YYYY-MM-DD (default: 30 days before end date)')

    parser.add_argument(
        '--end-date',
        help='Last issue date to keep, YYYY-MM-DD (default: today)')

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help="Don't save violations")

    return parser.parse_args()

if __name__ == '__main__':
    arguments = parse_args()

    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)s: %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')

    job = CompanyViolationsJob()
    result = job.run(company_id=arguments.company_id,
                     states=arguments.states,
                     start_date=arguments.start_date,
                     end_date=arguments.end_date,
                     is_dry_run=arguments.dry_run)

    if result:
        print(json.dumps(result.to_dict(), indent=2))
