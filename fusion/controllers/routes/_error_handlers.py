"""
Handlers de erro centralizados para a aplicacao.

Respostas JSON para chamadas em /api/ e paginas simples para a interface
web.

Error Handlers:
    - 400/401/403/404: Erros de requisicao
    - 429: Rate limit excedido
    - 500: Erro interno do servidor
    - RemoteOperationError: Operacao rejeitada pelo banco
    - SQLAlchemyError: Erros de banco de dados nao tratados
    - RequestEntityTooLarge: Arquivo muito grande
"""

from flask import Flask, Response, current_app, jsonify, redirect, render_template, request, url_for
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import RequestEntityTooLarge

from fusion import db, login_manager
from fusion.services.errors import NotFoundError, RemoteOperationError, translate_error
from fusion.utils.logging_config import log_exception


def is_api_request() -> bool:
    """True when the current path belongs to the JSON API."""
    return request.path.startswith('/api/')


def api_error_response(
    error: str,
    status_code: int,
    message: str | None = None,
    **extra,
) -> tuple[Response, int]:
    """Standard JSON error body: ``error``, ``status`` and optional ``message``."""
    response_data = {
        "error": error,
        "status": status_code,
    }
    if message:
        response_data["message"] = message
    response_data.update(extra)
    return jsonify(response_data), status_code


def remote_error_response(exc: RemoteOperationError) -> tuple[Response, int]:
    """JSON answer for a store rejection, with the translated message."""
    if isinstance(exc, NotFoundError):
        return api_error_response("not_found", 404, exc.message, code=exc.code)
    status = 409 if exc.code in ("23505", "23503") else 502
    return api_error_response("remote_operation_failed", status, translate_error(exc), code=exc.code)


def register_error_handlers(app: Flask) -> None:
    """Registra todos os error handlers na aplicacao Flask."""

    @app.errorhandler(400)
    def handle_bad_request(e):
        if is_api_request():
            return api_error_response("bad_request", 400, getattr(e, "description", None))
        return render_template('errors/error.html', status=400, message="Requisição inválida."), 400

    @app.errorhandler(401)
    def handle_unauthorized(e):
        if is_api_request():
            return api_error_response("unauthorized", 401, "Faça login para continuar.")
        return render_template('errors/error.html', status=401, message="Faça login para continuar."), 401

    @app.errorhandler(403)
    def handle_forbidden(e):
        if is_api_request():
            return api_error_response("forbidden", 403, "Apenas gestores podem realizar esta ação.")
        return render_template('errors/error.html', status=403, message="Acesso negado."), 403

    @app.errorhandler(404)
    def handle_not_found(e):
        if is_api_request():
            return api_error_response("not_found", 404)
        return render_template('errors/error.html', status=404, message="Página não encontrada."), 404

    @app.errorhandler(429)
    def handle_rate_limit(e):
        log_exception(e, request)
        if is_api_request():
            return api_error_response(
                "rate_limited",
                429,
                "Muitas tentativas. Aguarde antes de tentar novamente.",
            )
        return render_template('errors/error.html', status=429, message="Muitas tentativas."), 429

    @app.errorhandler(500)
    def handle_internal_error(e):
        log_exception(e, request)
        db.session.rollback()
        if is_api_request():
            return api_error_response(
                "internal_error",
                500,
                "Ocorreu um erro inesperado. Tente novamente.",
            )
        return render_template('errors/error.html', status=500, message="Erro interno."), 500

    @app.errorhandler(RemoteOperationError)
    def handle_remote_error(e):
        current_app.logger.warning("Operacao rejeitada (code=%s): %s", e.code, e.message)
        db.session.rollback()
        if not is_api_request():
            status = 404 if isinstance(e, NotFoundError) else 500
            return render_template('errors/error.html', status=status, message=translate_error(e)), status
        return remote_error_response(e)

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        log_exception(e, request)
        db.session.rollback()
        if is_api_request():
            return api_error_response(
                "database_error",
                500,
                "Erro ao acessar o banco de dados. Tente novamente.",
            )
        return render_template('errors/error.html', status=500, message="Erro ao processar sua solicitação."), 500

    @app.errorhandler(RequestEntityTooLarge)
    def handle_large_file(e):
        max_len = current_app.config.get("MAX_CONTENT_LENGTH")
        if max_len:
            message = f"Arquivo excede o tamanho permitido ({max_len / (1024 * 1024):.0f} MB)."
        else:
            message = "Arquivo excede o tamanho permitido."
        return api_error_response("file_too_large", 413, message)

    @login_manager.unauthorized_handler
    def handle_login_required():
        if is_api_request():
            return api_error_response("unauthorized", 401, "Faça login para continuar.")
        return redirect(url_for(login_manager.login_view, next=request.path))
