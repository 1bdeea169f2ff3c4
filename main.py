import argparse
import json
import logging

from parking_violations.db import database
from parking_violations.models.violation_query import ViolationQuery
from parking_violations.services.finder_registry import default_registry
from parking_violations.violations_aggregator import ViolationsAggregator
from parking_violations.web.app import create_app

LOGGING_LEVELS = {'critical': logging.CRITICAL,
                  'error': logging.ERROR,
                  'warning': logging.WARNING,
                  'info': logging.INFO,
                  'debug': logging.DEBUG}

LOG = logging.getLogger(__name__)

def serve(args):
    if args.create_tables:
        database.create_tables()

    app = create_app()

    LOG.info(f'serving on {args.host}:{args.port}')

    try:
        app.run(host=args.host, port=args.port, threaded=True)
    finally:
        default_registry().close()

def lookup(args):
    if args.create_tables:
        database.create_tables()

    aggregator = ViolationsAggregator()

    try:
        response = aggregator.aggregate(
            queries=[ViolationQuery.create(args.plate, args.state)],
            states=args.states or None,
            requestor='CLI')
    finally:
        default_registry().close()

    print(json.dumps(response.to_dict(), indent=2))

def parse_args():
    parser = argparse.ArgumentParser(
        description='Look up parking violations across jurisdictions')
    parser.add_argument(
        '-l',
        '--log-level',
        help='Log level')
    parser.add_argument(
        '-f',
        '--log-file',
        help='Log file name')
    parser.add_argument(
        '--create-tables',
        action='store_true',
        help='Create any missing tables before running')

    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
    serve_parser.add_argument('--host', default='127.0.0.1')
    serve_parser.add_argument('--port', type=int, default=5000)
    serve_parser.set_defaults(func=serve)

    lookup_parser = subparsers.add_parser('lookup', help='Look up one plate')
    lookup_parser.add_argument('--plate', required=True)
    lookup_parser.add_argument('--state', required=True)
    lookup_parser.add_argument(
        '--search-state',
        action='append',
        dest='states',
        help='State whose finders to use; may be repeated (default: --state)')
    lookup_parser.set_defaults(func=lookup)

    return parser.parse_args()

if __name__ == '__main__':
    args = parse_args()

    logging_level: int = LOGGING_LEVELS.get(
        args.log_level, logging.NOTSET)
    logging.basicConfig(level=logging_level, filename=args.log_file,
                        format='%(asctime)s %(levelname)s: %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')

    args.func(args)
