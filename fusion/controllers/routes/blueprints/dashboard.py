"""
Blueprint do painel de tarefas.

Cada usuario tem um quadro em memoria (``board_registry``) mantido em dia
pelo feed de alteracoes. As edicoes daqui sao otimistas: o quadro muda
antes da confirmacao do banco e e recarregado se o banco recusar.

Rotas:
    - GET /api/dashboard?view=table|kanban|calendar: Quadro agrupado
    - GET /api/dashboard/my-tasks: Minhas tarefas por prazo
    - POST /api/dashboard/tasks: Cria tarefa e insere no quadro
    - POST /api/dashboard/tasks/<id>/status: Status otimista
    - POST /api/dashboard/tasks/<id>/priority: Prioridade otimista
    - DELETE /api/dashboard/tasks/<id>: Exclusao otimista
    - POST /api/dashboard/reload: Recarga completa
"""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from fusion.controllers.routes._base import current_user_dict, json_payload, validate
from fusion.controllers.routes._error_handlers import api_error_response
from fusion.forms import TaskForm
from fusion.services import task_service, team_service
from fusion.services.boards import board_registry
from fusion.services.filters import (
    filter_tasks_for_user,
    group_calendar,
    group_kanban,
    my_tasks as bucket_my_tasks,
    split_table,
)
from fusion.utils.audit import ActionType, ResourceType, log_user_action

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')

VIEWS = ("table", "kanban", "calendar")


def _board():
    controller = board_registry.get(current_user.id)
    controller.ensure_loaded()
    return controller


def _visible_tasks(controller):
    return filter_tasks_for_user(controller.entities, current_user_dict())


def _optimistic_field(task_id, field, value, remote_call):
    controller = _board()
    task = controller.find(task_id)
    if task is None:
        return api_error_response("not_found", 404, "Tarefa não encontrada no quadro.")
    task[field] = value
    controller.apply_local_update(task, remote_call)
    return jsonify(task)


@dashboard_bp.route("", methods=["GET"])
@login_required
def dashboard():
    view = request.args.get("view", "table")
    if view not in VIEWS:
        return api_error_response("validation_error", 400, "Visualização inválida.")
    controller = _board()
    tasks = _visible_tasks(controller)
    if view == "kanban":
        groups = group_kanban(tasks)
    elif view == "calendar":
        groups = group_calendar(tasks)
    else:
        groups = split_table(tasks)
    return jsonify({"view": view, "loading": controller.loading, "groups": groups})


@dashboard_bp.route("/my-tasks", methods=["GET"])
@login_required
def my_tasks():
    controller = _board()
    return jsonify(bucket_my_tasks(_visible_tasks(controller), current_user_dict()))


@dashboard_bp.route("/tasks", methods=["POST"])
@login_required
def create_task():
    """Creation waits for the store; the returned task (with its id) joins the board."""
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
    # the store returns the task before its owners are linked
    task["owners"] = [team_service.get_user(owner_id) for owner_id in dict.fromkeys(form.owners.data)]
    _board().apply_local_create(task)
    log_user_action(ActionType.CREATE, ResourceType.TASK, f'Tarefa "{task["name"]}" criada',
                    resource_id=task["id"])
    return jsonify(task), 201


@dashboard_bp.route("/tasks/<task_id>/status", methods=["POST"])
@login_required
def update_status(task_id):
    status = json_payload().get("status")
    if status not in task_service.TASK_STATUSES:
        return api_error_response("validation_error", 400, "Status inválido.")
    return _optimistic_field(
        task_id, "status", status, lambda: task_service.update_status(task_id, status)
    )


@dashboard_bp.route("/tasks/<task_id>/priority", methods=["POST"])
@login_required
def update_priority(task_id):
    priority = json_payload().get("priority")
    if priority not in task_service.TASK_PRIORITIES:
        return api_error_response("validation_error", 400, "Prioridade inválida.")
    return _optimistic_field(
        task_id, "priority", priority, lambda: task_service.update_priority(task_id, priority)
    )


@dashboard_bp.route("/tasks/<task_id>", methods=["DELETE"])
@login_required
def delete_task(task_id):
    _board().apply_local_delete(task_id, lambda: task_service.delete_task(task_id))
    log_user_action(ActionType.DELETE, ResourceType.TASK, "Tarefa excluída do painel", resource_id=task_id)
    return ("", 204)


@dashboard_bp.route("/reload", methods=["POST"])
@login_required
def reload():
    controller = board_registry.get(current_user.id)
    replaced = controller.reload()
    return jsonify({"reloaded": replaced, "count": len(controller.entities)})
