import logging
from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import create_access_token
from sqlalchemy import select, or_, func
from invoice_tracker import get_db
from invoice_tracker.constants.roles import ALL_ROLES, NO_ROLE, ROLE_TEMPLATES, ACTION_POLICY
from invoice_tracker.decorators.auth import require_action, require_login
from invoice_tracker.decorators.audit import audit_log
from invoice_tracker.models.audit import AuditLog
from invoice_tracker.models.authz import User, UserRole
from invoice_tracker.models.invoice import Invoice
from invoice_tracker.services.policy import resolve_role, role_rank
from invoice_tracker.utils.listing import apply_pagination, cached_list_response, latest_timestamp
from invoice_tracker.utils.validation import require_fields, optional_text, validate_password_pair

logger = logging.getLogger(__name__)

iam_bp = Blueprint('iam', __name__)

PROFILE_FIELDS = ('designation', 'department')


def _user_json(user: User):
    return {
        'id': user.id,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'full_name': user.full_name,
        'designation': user.designation,
        'department': user.department,
        'role': user.user_role.role if user.user_role else NO_ROLE,
        'is_active': user.is_active,
        'force_password_change': user.force_password_change,
        'created_at': user.created_at.isoformat() if user.created_at else None,
    }


def _get_user_or_404(user_id: int) -> User:
    user = get_db().execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        abort(404)
    return user


def _validate_role(role):
    if role not in ALL_ROLES:
        abort(400, description=f"role must be one of {', '.join(ALL_ROLES)}")
    return role


def _assert_email_free(session, email: str):
    if session.execute(select(User.id).where(User.email == email)).scalar_one_or_none() is not None:
        abort(409, description='email already registered')


def _new_user(data: dict) -> User:
    user = User(
        email=str(data['email']).strip().lower(),
        first_name=str(data['first_name']).strip(),
        last_name=str(data['last_name']).strip(),
        designation=optional_text(data.get('designation'), 'designation'),
        department=optional_text(data.get('department'), 'department'),
    )
    user.set_password(str(data['password']))
    return user


# --- Authentication ---

@iam_bp.post('/auth/login')
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()
    if not user or not user.verify_password(password):
        abort(401, description='invalid credentials')
    if not user.is_active:
        abort(401, description='account disabled')
    role = resolve_role(session, user.id)
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    token = create_access_token(identity=str(user.id), additional_claims={'role': role})
    return {'access_token': token, 'role': role, 'force_password_change': user.force_password_change}


@iam_bp.get('/auth/me')
@require_login
def me(auth):
    user = _get_user_or_404(auth.user_id)
    body = _user_json(user)
    body['role_rank'] = auth.rank
    body['actions'] = sorted(code for code in ACTION_POLICY if auth.can(code))
    return body


@iam_bp.post('/auth/signup')
@audit_log('USER.SIGNUP', entity='User', entity_id_key='id', meta_keys=['email'])
def signup():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'email', 'first_name', 'last_name')
    validate_password_pair(data.get('password'), data.get('confirm_password'))
    session = get_db()
    _assert_email_free(session, str(data['email']).strip().lower())
    user = _new_user(data)
    session.add(user)
    session.commit()
    logger.info('self-registered user %s', user.email)
    return _user_json(user), 201


@iam_bp.post('/auth/change-password')
@require_login
@audit_log('USER.PASSWORD.CHANGE', entity='User', entity_id_key='id')
def change_password(auth):
    data = request.get_json(silent=True) or {}
    validate_password_pair(data.get('new_password'), data.get('confirm_password'))
    session = get_db()
    user = _get_user_or_404(auth.user_id)
    if not user.verify_password(data.get('current_password') or ''):
        abort(400, description='current password is incorrect')
    user.set_password(data['new_password'])
    user.force_password_change = False
    session.commit()
    return {'id': user.id, 'force_password_change': False}


# --- Roles ---

@iam_bp.get('/roles')
@require_action('admin.view')
def list_roles(auth):
    return {
        'data': [{'name': r, 'rank': role_rank(r)} for r in ALL_ROLES],
        'templates': [{'label': label, 'role': role} for label, role in ROLE_TEMPLATES.items()],
    }


# --- User administration ---

@iam_bp.route('/users', methods=['GET', 'HEAD'])
@require_action('admin.view')
def list_users(auth):
    session = get_db()
    q = session.query(User).outerjoin(UserRole, UserRole.user_id == User.id)
    term = (request.args.get('q') or '').strip()
    if term:
        like = f'%{term}%'
        clauses = [
            (User.first_name + ' ' + User.last_name).ilike(like),
            User.email.ilike(like),
            User.designation.ilike(like),
            User.department.ilike(like),
            UserRole.role.ilike(like),
        ]
        if term.lower() in NO_ROLE:
            clauses.append(UserRole.id.is_(None))
        q = q.filter(or_(*clauses))
    q = q.order_by(User.created_at.desc(), User.id.desc())
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    data = [_user_json(u) for u in rows]
    # role rows live in user_roles and do not move users.updated_at
    roles = ','.join(u['role'] for u in data)
    return cached_list_response(data, total, limit, offset, latest_timestamp(rows), variant=roles)


@iam_bp.post('/users')
@require_action('user.create')
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'role'])
def create_user(auth):
    data = request.get_json(silent=True) or {}
    require_fields(data, 'first_name', 'last_name', 'email', 'password')
    role = data.get('role')
    if role is not None:
        _validate_role(role)
    session = get_db()
    _assert_email_free(session, str(data['email']).strip().lower())
    user = _new_user(data)
    if role:
        user.user_role = UserRole(role=role)
    session.add(user)
    session.commit()
    logger.info('user %s created by %s with role %s', user.email, auth.user_id, role or NO_ROLE)
    return _user_json(user), 201


def _role_snapshot(user_id):
    user = get_db().get(User, user_id)
    return _user_json(user) if user else {}


@iam_bp.put('/users/<int:user_id>/role')
@require_action('user.role.set')
@audit_log('USER.ROLE.SET', entity='User', entity_id_key='id', diff_keys=['role'], pre_fetch=lambda a, kw: _role_snapshot(kw.get('user_id')))
def set_user_role(user_id: int, auth):
    data = request.get_json(silent=True) or {}
    role = _validate_role(data.get('role'))
    session = get_db()
    user = _get_user_or_404(user_id)
    if user.user_role:
        user.user_role.role = role
    else:
        user.user_role = UserRole(role=role)
    user.updated_at = func.now()
    session.commit()
    logger.info('user %s role set to %s by %s', user.id, role, auth.user_id)
    return _user_json(user)


@iam_bp.patch('/users/<int:user_id>')
@require_action('user.profile.update')
@audit_log('USER.UPDATE', entity='User', entity_id_key='id', diff_keys=list(PROFILE_FIELDS), pre_fetch=lambda a, kw: _role_snapshot(kw.get('user_id')))
def update_user(user_id: int, auth):
    data = request.get_json(silent=True) or {}
    unknown = sorted(k for k in data if k not in PROFILE_FIELDS)
    if unknown:
        abort(400, description=f"unknown field(s): {', '.join(unknown)}")
    if not data:
        abort(400, description='no fields to update')
    changes = {k: optional_text(v, k) for k, v in data.items()}
    session = get_db()
    user = _get_user_or_404(user_id)
    for key, value in changes.items():
        setattr(user, key, value)
    session.commit()
    return _user_json(user)


@iam_bp.post('/users/<int:user_id>/reset-password')
@require_action('user.password.reset')
@audit_log('USER.PASSWORD.RESET', entity='User', entity_id_key='id')
def reset_password(user_id: int, auth):
    session = get_db()
    user = _get_user_or_404(user_id)
    user.set_password(current_app.config['RESET_PASSWORD_DEFAULT'])
    user.force_password_change = True
    session.commit()
    logger.info('password reset for user %s by %s', user.id, auth.user_id)
    return {'id': user.id, 'force_password_change': True, 'message': 'Password reset to the default temporary password'}


@iam_bp.delete('/users/<int:user_id>')
@require_action('user.delete')
@audit_log('USER.DELETE', entity='User', entity_id_arg='user_id')
def delete_user(user_id: int, auth):
    if user_id == auth.user_id:
        abort(400, description='cannot delete your own account')
    session = get_db()
    user = _get_user_or_404(user_id)
    # Invoices outlive their uploader
    session.query(Invoice).filter(Invoice.user_id == user_id).update({Invoice.user_id: None}, synchronize_session=False)
    session.delete(user)
    session.commit()
    logger.info('user %s deleted by %s', user_id, auth.user_id)
    return '', 204


# --- Audit log ---

@iam_bp.route('/audit/logs', methods=['GET', 'HEAD'])
@require_action('admin.view')
def list_audit_logs(auth):
    session = get_db()
    q = session.query(AuditLog)
    actor = request.args.get('actor_user_id')
    action = request.args.get('action')
    entity = request.args.get('entity')
    entity_id = request.args.get('entity_id')
    if actor:
        try:
            q = q.filter(AuditLog.actor_user_id == int(actor))
        except ValueError:
            abort(400, description='actor_user_id must be int')
    if action:
        q = q.filter(AuditLog.action == action)
    if entity:
        q = q.filter(AuditLog.entity == entity)
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)
    paged_q, total, limit, offset = apply_pagination(q.order_by(AuditLog.id.desc()))
    rows = paged_q.all()
    data = [
        {
            'id': r.id,
            'actor_user_id': r.actor_user_id,
            'actor_role': r.actor_role,
            'action': r.action,
            'entity': r.entity,
            'entity_id': r.entity_id,
            'meta': r.meta,
            'created_at': r.created_at.isoformat() if r.created_at else None,
        } for r in rows
    ]
    return cached_list_response(data, total, limit, offset, latest_timestamp(rows, 'created_at'))
