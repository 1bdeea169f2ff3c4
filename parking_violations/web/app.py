import logging

from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from parking_violations.db.database import init_database
from parking_violations.models.progress_info import ProgressInfo
from parking_violations.models.violation_query import ViolationQuery
from parking_violations.services.constants.exceptions import ValidationException
from parking_violations.violations_aggregator import ViolationsAggregator

LOG = logging.getLogger(__name__)

MAX_AUTHORIZATION_REQUESTOR_LENGTH = 50


def create_app(aggregator: Optional[ViolationsAggregator] = None) -> Flask:
    app = Flask(__name__)

    aggregator = aggregator or ViolationsAggregator()
    progress_tracking_service = aggregator.progress_tracking_service
    persistence_service = aggregator.persistence_service
    registry = aggregator.registry

    @app.teardown_appcontext
    def remove_session(exception=None):
        init_database().session.remove()

    @app.errorhandler(ValidationException)
    def handle_validation_error(exc):
        return jsonify({'error': str(exc)}), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return jsonify({'error': exc.description}), exc.code

        LOG.exception(f'unhandled error for {request.method} {request.path}')
        return jsonify({'error': str(exc)}), 500

    @app.route('/api/violations', methods=['POST'])
    def get_violations():
        request_id: str = progress_tracking_service.create_progress_tracker()

        try:
            body: Dict[str, Any] = _json_body()

            queries: List[ViolationQuery] = [
                ViolationQuery.create(car.get('licensePlate'), car.get('state'))
                for car in _list_field(body, 'cars') if isinstance(car, dict)]

            response = aggregator.aggregate(
                queries=queries,
                states=body.get('states'),
                requestor=get_requestor(),
                request_id=request_id)

        except ValidationException as exc:
            progress_tracking_service.mark_failed(request_id, str(exc))
            return jsonify({'error': str(exc), 'requestId': request_id}), 400
        except Exception as exc:  # pylint: disable=broad-except
            LOG.exception('error getting violations')
            progress_tracking_service.mark_failed(request_id, str(exc))
            return jsonify({'error': str(exc), 'requestId': request_id}), 500

        return jsonify(response.to_dict())

    @app.route('/api/violations/<company_id>', methods=['POST'])
    def get_and_save_company_violations(company_id: str):
        request_id: Optional[str] = progress_tracking_service.try_start_company(company_id)

        if request_id is None:
            running: Optional[ProgressInfo] = \
                progress_tracking_service.get_progress_by_company_id(company_id)

            return jsonify({
                'error': 'Violations are already being processed for this company',
                'requestId': running.request_id if running else None}), 409

        try:
            body: Dict[str, Any] = _json_body()

            response = aggregator.aggregate_company(
                company_id=company_id,
                start_date=body.get('startDate'),
                end_date=body.get('endDate'),
                states=body.get('states'),
                requestor=get_requestor(),
                request_id=request_id)

        except ValidationException as exc:
            progress_tracking_service.mark_failed(request_id, str(exc))
            return jsonify({'error': str(exc), 'requestId': request_id}), 400
        except Exception as exc:  # pylint: disable=broad-except
            LOG.exception(f'error getting violations for company {company_id}')
            progress_tracking_service.mark_failed(request_id, str(exc))
            return jsonify({'error': str(exc), 'requestId': request_id}), 500

        return jsonify(response.to_dict())

    @app.route('/api/violations', methods=['GET'])
    def get_violations_by_company():
        company_id: Optional[str] = request.args.get('companyId')
        date_from: Optional[str] = request.args.get('dateFrom')
        date_to: Optional[str] = request.args.get('dateTo')

        if not company_id:
            raise ValidationException('companyId is required')

        start = aggregator.parse_request_date(date_from, 'dateFrom')
        end = aggregator.parse_request_date(date_to, 'dateTo')

        if start > end:
            raise ValidationException('dateFrom must be before or equal to dateTo')

        LOG.info(f'retrieving violations for company {company_id} from {date_from} to {date_to}')

        violations = persistence_service.violations_for_company(company_id, start, end)

        return jsonify({
            'companyId': company_id,
            'dateFrom': date_from,
            'dateTo': date_to,
            'violations': [violation.to_dict() for violation in violations],
            'totalCount': len(violations),
        })

    @app.route('/api/violations/progress/<request_id>', methods=['GET'])
    def get_progress(request_id: str):
        progress: Optional[ProgressInfo] = progress_tracking_service.get_progress(request_id)

        if progress is None:
            return jsonify({'error': 'Progress tracker not found for the given request ID'}), 404

        return jsonify(progress.to_dict())

    @app.route('/api/violations/progress/<request_id>', methods=['DELETE'])
    def remove_progress(request_id: str):
        if not progress_tracking_service.remove_progress(request_id):
            return jsonify({'error': 'Progress tracker not found for the given request ID'}), 404

        return '', 204

    @app.route('/api/finders', methods=['GET'])
    def get_finders():
        return jsonify(registry.describe())

    @app.route('/api/finders/<state>', methods=['GET'])
    def get_finders_by_state(state: str):
        if not state.strip():
            raise ValidationException('State parameter is required')

        return jsonify(registry.describe(registry.finders_for_state(state)))

    return app


def get_requestor() -> str:
    """Who made the current request: the authorization header, the
    authenticated user, or the caller's address, in that order."""
    authorization: Optional[str] = request.headers.get('Authorization')

    if authorization:
        if authorization.lower().startswith('bearer '):
            return 'Bearer Token'
        return authorization[:MAX_AUTHORIZATION_REQUESTOR_LENGTH]

    if request.remote_user:
        return request.remote_user

    if request.remote_addr:
        return f'IP: {request.remote_addr}'

    return 'Unknown'


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)

    if not isinstance(body, dict):
        raise ValidationException('Request body is required')

    return body


def _list_field(body: Dict[str, Any], name: str) -> List[Any]:
    value = body.get(name)
    return value if isinstance(value, list) else []
