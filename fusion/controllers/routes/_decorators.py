"""
Decorators de autenticacao e autorizacao para rotas.

Decorators Disponiveis:
    - manager_required: Restringe acesso a usuarios com papel de gestor
"""

from functools import wraps

from flask import abort
from flask_login import current_user, login_required


def manager_required(f):
    """Permite a rota apenas para gestores; demais usuarios recebem 403."""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_manager:
            abort(403)
        return f(*args, **kwargs)

    return decorated_function
