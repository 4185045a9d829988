"""
Blueprint para autenticacao.

Rotas:
    - GET/POST /login: Login com e-mail/senha (formulario, CSRF)
    - POST /api/auth/login: Login JSON
    - POST /logout: Logout do usuario
    - GET /api/me: Perfil do usuario atual
"""

import logging
from datetime import timedelta
from urllib.parse import urlparse

from flask import (
    Blueprint,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_required, login_user, logout_user

from fusion import csrf, limiter
from fusion.controllers.routes._base import current_user_dict, json_payload, validate
from fusion.controllers.routes._error_handlers import api_error_response
from fusion.forms import LoginForm
from fusion.models.tables import Profile
from fusion.services.boards import board_registry
from fusion.utils.audit import ActionType, ResourceType, log_user_action

auth_bp = Blueprint('auth', __name__)

user_actions_logger = logging.getLogger('user_actions')


def _authenticate(email: str, password: str):
    """Profile for the credentials, or ``None`` when they do not match."""
    user = Profile.query.filter_by(email=(email or "").strip().lower()).first()
    if user and user.check_password(password):
        return user
    user_actions_logger.warning(
        "[%s] FAILED_LOGIN session - Credenciais invalidas - IP: %s",
        email,
        request.remote_addr,
        extra={'action': ActionType.FAILED_LOGIN, 'resource': ResourceType.SESSION},
    )
    return None


def _start_session(user, remember: bool) -> None:
    # Switching accounts drops the previous user's board.
    if current_user.is_authenticated and current_user.get_id() != user.get_id():
        board_registry.release(current_user.get_id())
    login_user(user, remember=remember, duration=timedelta(days=30))
    log_user_action(
        ActionType.LOGIN,
        ResourceType.SESSION,
        f'Usuario {user.email} fez login com sucesso',
        resource_id=user.id,
        new_values={'remember_me': remember},
        user=user,
    )


def _safe_next(target: str | None) -> str:
    if target and not urlparse(target).netloc and target.startswith("/"):
        return target
    return url_for("auth.me")


@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    """
    Renderiza a pagina de login e processa autenticacao.

    GET: Exibe formulario de login
    POST: Valida credenciais e cria sessao
    """
    form = LoginForm()
    if form.validate_on_submit():
        user = _authenticate(form.email.data, form.password.data)
        if user:
            _start_session(user, bool(form.remember_me.data))
            return redirect(_safe_next(request.args.get("next")))
        flash("Credenciais inválidas", "danger")
    return render_template("auth/login.html", form=form)


@auth_bp.route("/api/auth/login", methods=["POST"])
@csrf.exempt
@limiter.limit("5 per minute")
def api_login():
    payload = json_payload()
    form, error = validate(LoginForm, payload)
    if error:
        return error
    user = _authenticate(form.email.data, form.password.data)
    if user is None:
        return api_error_response("invalid_credentials", 401, "E-mail ou senha inválidos.")
    _start_session(user, bool(form.remember_me.data))
    return jsonify(current_user_dict())


@auth_bp.route("/logout", methods=["POST"])
@csrf.exempt
@login_required
def logout():
    """Encerra a sessao e libera o quadro do usuario."""
    user_id = current_user.get_id()
    log_user_action(
        ActionType.LOGOUT,
        ResourceType.SESSION,
        f'Usuario {current_user.email} fez logout',
        resource_id=user_id,
    )
    board_registry.release(user_id)
    logout_user()
    if request.is_json or request.accept_mimetypes.best == "application/json":
        return ("", 204)
    return redirect(url_for("auth.login"))


@auth_bp.route("/api/me")
@login_required
def me():
    return jsonify(current_user_dict())
