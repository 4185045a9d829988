"""
Blueprint para gestao de tarefas (API JSON).

Rotas:
    - GET/POST /api/tasks: Lista e cria tarefas
    - GET/PATCH/DELETE /api/tasks/<id>: Detalhe, edicao parcial e exclusao
    - POST /api/tasks/<id>/status: Altera o status
    - POST /api/tasks/<id>/priority: Altera a prioridade
    - POST /api/tasks/<id>/messages: Comentario, audio ou imagem na tarefa
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from fusion.controllers.routes._base import current_user_dict, json_payload, validate
from fusion.controllers.routes._error_handlers import api_error_response
from fusion.forms import MessageForm, TaskForm, TaskUpdateForm
from fusion.services import task_service
from fusion.services.filters import filter_tasks_for_user
from fusion.utils.audit import ActionType, ResourceType, log_user_action

tasks_bp = Blueprint('tasks', __name__, url_prefix='/api/tasks')


def _choice(payload, key, allowed):
    """Value of ``key`` when it is one of ``allowed``; ``None`` otherwise."""
    value = payload.get(key)
    return value if value in allowed else None


@tasks_bp.route("", methods=["GET"])
@login_required
def list_tasks():
    tasks = task_service.list_tasks(current_user.id)
    return jsonify(filter_tasks_for_user(tasks, current_user_dict()))


@tasks_bp.route("", methods=["POST"])
@login_required
def create_task():
    payload = json_payload()
    form, error = validate(TaskForm, payload)
    if error:
        return error

    task = task_service.create_task(
        {
            "name": form.name.data,
            "description": form.description.data,
            "status": form.status.data,
            "priority": form.priority.data,
            "dueDate": form.dueDate.data,
            "teamId": form.teamId.data,
            "owners": form.owners.data,
        },
        current_user.id,
    )
    log_user_action(
        ActionType.CREATE,
        ResourceType.TASK,
        f'Tarefa "{task["name"]}" criada',
        resource_id=task["id"],
        new_values={"owners": form.owners.data},
    )
    return jsonify(task), 201


@tasks_bp.route("/<task_id>", methods=["GET"])
@login_required
def get_task(task_id):
    return jsonify(task_service.get_task(task_id))


@tasks_bp.route("/<task_id>", methods=["PATCH"])
@login_required
def update_task(task_id):
    payload = json_payload()
    form, error = validate(TaskUpdateForm, payload)
    if error:
        return error
    updates = {key: payload[key] for key in ("name", "description", "priority", "status", "teamId") if key in payload}
    if form.dueDate.data:
        updates["dueDate"] = form.dueDate.data
    if "status" in updates and updates["status"] not in task_service.TASK_STATUSES:
        return api_error_response("validation_error", 400, "Status inválido.")
    task_service.update_task(task_id, updates)
    log_user_action(ActionType.UPDATE, ResourceType.TASK, "Tarefa editada", resource_id=task_id,
                    new_values={key: str(value) for key, value in updates.items()})
    return jsonify(task_service.get_task(task_id))


@tasks_bp.route("/<task_id>", methods=["DELETE"])
@login_required
def delete_task(task_id):
    task_service.delete_task(task_id)
    log_user_action(ActionType.DELETE, ResourceType.TASK, "Tarefa excluída", resource_id=task_id)
    return ("", 204)


@tasks_bp.route("/<task_id>/status", methods=["POST"])
@login_required
def update_status(task_id):
    status = _choice(json_payload(), "status", task_service.TASK_STATUSES)
    if status is None:
        return api_error_response("validation_error", 400, "Status inválido.")
    task_service.update_status(task_id, status)
    return jsonify({"id": task_id, "status": status})


@tasks_bp.route("/<task_id>/priority", methods=["POST"])
@login_required
def update_priority(task_id):
    priority = _choice(json_payload(), "priority", task_service.TASK_PRIORITIES)
    if priority is None:
        return api_error_response("validation_error", 400, "Prioridade inválida.")
    task_service.update_priority(task_id, priority)
    return jsonify({"id": task_id, "priority": priority})


@tasks_bp.route("/<task_id>/messages", methods=["POST"])
@login_required
def add_message(task_id):
    payload = json_payload()
    form, error = validate(MessageForm, payload)
    if error:
        return error
    message = task_service.add_message(
        task_id,
        current_user.id,
        form.content.data,
        form.type.data,
        form.mediaUrl.data or None,
    )
    log_user_action(ActionType.COMMENT, ResourceType.TASK, f"Mensagem ({form.type.data}) enviada",
                    resource_id=task_id)
    return jsonify(message), 201
