"""
Blueprint para upload de arquivos.

Rotas:
    - POST /api/uploads: Upload de anexo (audio, imagem ou arquivo)
    - GET /uploads/<filename>: Serve um anexo salvo
"""

from flask import Blueprint, current_app, jsonify, request, send_from_directory
from flask_login import login_required

from fusion.controllers.routes._error_handlers import api_error_response
from fusion.services import task_service
from fusion.utils.audit import ActionType, ResourceType, log_user_action


uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.route("/api/uploads", methods=["POST"])
@login_required
def upload_file():
    """
    Salva o arquivo enviado com nome aleatorio.

    Request:
        files['file']: Arquivo

    Returns:
        201: {"url": "URL publica do arquivo"}
        400: Nenhum arquivo enviado
    """
    file = request.files.get("file")
    if file is None or not file.filename:
        return api_error_response("validation_error", 400, "Nenhum arquivo enviado.")

    url = task_service.upload_file(file)
    log_user_action(
        ActionType.UPLOAD,
        ResourceType.FILE,
        f'Fez upload de {file.filename}',
        new_values={'original_filename': file.filename, 'file_url': url},
    )
    return jsonify({"url": url}), 201


@uploads_bp.route("/uploads/<path:filename>")
def serve_upload(filename):
    """Anexos sao publicos: a pagina de compartilhamento exibe as fotos sem login."""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
