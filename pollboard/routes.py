# pollboard/routes.py

# HTTP surface for the poll and the event registry.
# Every handler calls into the core services and either renders a template or,
# with ?raw=json, returns the same plain result as JSON.

import hmac
import logging

from flask import Blueprint, current_app, g, jsonify, redirect, render_template, request, url_for
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies

from pollboard import limiter
from pollboard.authentication.rbac import UserRole, role_required
from pollboard.errors import AuthError, PollboardError, StorageFailure, ValidationError
from pollboard.security.input_validator import EVENT_FIELDS

logger = logging.getLogger(__name__)

bp = Blueprint('main', __name__)

# Reachable without a session; identity is not resolved for these
EXEMPT_ENDPOINTS = frozenset({'main.index', 'main.login', 'main.logout', 'static'})


def _services():
    return current_app.extensions['pollboard']


def _wants_raw():
    return bool(request.args.get('raw'))


def _wants_json():
    return _wants_raw() or request.is_json


def _payload():
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def _respond(template, params, status=200):
    if _wants_raw():
        return jsonify(params), status
    return render_template(template, **params), status


def _session_cookie():
    return request.cookies.get(current_app.config['JWT_ACCESS_COOKIE_NAME'])


def _audit(event_type, data):
    identity = g.get('identity')
    _services().audit.log_security_event(event_type, data, user_id=identity.user_id if identity else None)


@bp.before_app_request
def resolve_identity():
    g.identity = None
    if request.endpoint is None or request.endpoint in EXEMPT_ENDPOINTS:
        return None
    g.identity = _services().guard.resolve_session(_session_cookie())
    if g.identity is None:
        if _wants_json():
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        return redirect(url_for('main.index'))
    return None


@bp.route('/', methods=['GET'])
def index():
    params = {}
    try:
        params['choices'] = _services().poll.list_choices()
        if not params['choices']:
            params['setup'] = current_app.config['SETUP_MESSAGE']
    except StorageFailure:
        params['error'] = current_app.config['ERROR_MESSAGE']
    return _respond('index.html', params)


@bp.route('/login', methods=['POST'])
@limiter.limit(lambda: current_app.config['LOGIN_RATE_LIMIT'])
def login():
    data = _payload()
    username = data.get('username')
    services = _services()
    try:
        session = services.guard.authenticate(username, data.get('password'))
    except AuthError as e:
        services.audit.log_security_event('failed_login', {'username': username, 'ip': request.remote_addr})
        return _respond('index.html', {'error': e.message}, status=401)

    identity = session.identity
    services.audit.log_security_event(
        'successful_login', {'role': identity.role, 'ip': request.remote_addr}, user_id=identity.user_id
    )
    target = url_for('main.admin') if identity.role == UserRole.ADMIN.value else url_for('main.user_home')
    if _wants_raw():
        resp = jsonify({'success': True, 'user': identity.to_dict(), 'redirect': target})
    else:
        resp = redirect(target)
    set_access_cookies(resp, session.token, max_age=int(services.guard.lifetime.total_seconds()))
    return resp


@bp.route('/logout', methods=['GET'])
def logout():
    token = _session_cookie()
    if token and _services().guard.destroy_session(token):
        _services().audit.log_security_event('logout', {'ip': request.remote_addr})
    resp = jsonify({'success': True}) if _wants_raw() else redirect(url_for('main.index'))
    unset_jwt_cookies(resp)
    return resp


@bp.route('/vote', methods=['POST'])
@limiter.limit(lambda: current_app.config['VOTE_RATE_LIMIT'])
@role_required(UserRole.USER, UserRole.ADMIN)
def vote():
    choice = _payload().get('choice')
    choices = _services().poll.cast_vote(choice)
    return _respond('index.html', {'results': True, 'choices': choices})


@bp.route('/admin', methods=['GET'])
@role_required(UserRole.ADMIN)
def admin():
    services = _services()
    params = {'user': g.identity.to_dict()}
    try:
        params['events'] = services.events.list_events()
        params['participants'] = services.ledger.list_all_participations_with_details()
        params['option_history'] = services.poll.recent_log(current_app.config['RECENT_LOG_LIMIT'])
    except StorageFailure:
        params['error'] = current_app.config['ERROR_MESSAGE']
    return _respond('admin.html', params)


@bp.route('/admin/events', methods=['POST'])
@role_required(UserRole.ADMIN)
def add_event():
    data = _payload()
    event_id = _services().events.add_event(
        data.get('name'), data.get('date'), data.get('location'), data.get('type'),
        data.get('custom_field_schema'),
    )
    return jsonify({'success': True, 'event_id': event_id}), 201


@bp.route('/admin/events/<int:event_id>', methods=['PUT'])
@role_required(UserRole.ADMIN)
def update_event(event_id):
    fields = {k: v for k, v in _payload().items() if k in EVENT_FIELDS}
    changes = _services().events.update_event(event_id, **fields)
    if changes > 0:
        return jsonify({'success': True, 'message': 'Event updated successfully.'})
    return jsonify({'success': False, 'message': 'Event not found or no changes made.'}), 404


@bp.route('/admin/events/<int:event_id>', methods=['DELETE'])
@role_required(UserRole.ADMIN)
def delete_event(event_id):
    changes = _services().events.delete_event(event_id)
    if changes > 0:
        _audit('event_deleted', {'event_id': event_id})
        return jsonify({'success': True, 'message': 'Event deleted successfully.'})
    return jsonify({'success': False, 'message': 'Event not found.'}), 404


@bp.route('/admin/audit', methods=['GET'])
@role_required(UserRole.ADMIN)
def audit_trail():
    audit = _services().audit
    params = {'entries': audit.read_entries(limit=100), 'intact': audit.verify_log_integrity()}
    return _respond('audit.html', params)


@bp.route('/reset', methods=['POST'])
@role_required(UserRole.ADMIN)
def reset():
    poll = _services().poll
    expected = current_app.config.get('RESET_KEY')
    supplied = _payload().get('key') or ''
    if expected and not hmac.compare_digest(str(supplied).encode(), str(expected).encode()):
        _audit('reset_denied', {'ip': request.remote_addr})
        params = {
            'failed': 'You entered invalid credentials!',
            'option_history': poll.recent_log(current_app.config['RECENT_LOG_LIMIT']),
        }
        return _respond('admin.html', params, status=401)

    params = {'option_history': poll.reset_all()}
    _audit('poll_reset', {'ip': request.remote_addr})
    return _respond('admin.html', params)


@bp.route('/user', methods=['GET'])
@role_required(UserRole.USER, UserRole.ADMIN)
def user_home():
    params = {'user': g.identity.to_dict()}
    try:
        params['events'] = _services().events.list_events()
    except StorageFailure:
        params['error'] = current_app.config['ERROR_MESSAGE']
    return _respond('user.html', params)


@bp.route('/user/participate', methods=['POST'])
@role_required(UserRole.USER, UserRole.ADMIN)
def participate():
    data = _payload()
    try:
        event_id = int(data.get('event_id'))
    except (TypeError, ValueError):
        raise ValidationError("event_id must be an integer")
    result = _services().ledger.upsert_participation(
        event_id, g.identity.user_id, data.get('status'), data.get('custom_field_values')
    )
    if not result:
        return jsonify({'success': False, 'message': 'Event not found.'}), 404
    return jsonify({'success': True, 'participant_id': result})


@bp.route('/user/my-participations', methods=['GET'])
@role_required(UserRole.USER, UserRole.ADMIN)
def my_participations():
    params = {'user': g.identity.to_dict()}
    try:
        params['participations'] = _services().ledger.list_participations_for_user(g.identity.user_id)
    except StorageFailure:
        params['error'] = current_app.config['ERROR_MESSAGE']
    return _respond('user.html', params)


def register_error_handlers(app):
    @app.errorhandler(PollboardError)
    def handle_core_error(error):
        if isinstance(error, StorageFailure):
            message = app.config['ERROR_MESSAGE']
        else:
            message = error.message
        if error.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {error!r}")
        if _wants_json():
            return jsonify({'success': False, 'error': message}), error.status_code
        return render_template('error.html', message=message), error.status_code
