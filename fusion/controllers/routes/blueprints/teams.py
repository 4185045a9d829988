"""
Blueprint de equipes, membros e perfil.

Rotas:
    - GET/POST /api/teams: Lista (filtrada por papel) e cria equipes
    - PATCH/DELETE /api/teams/<id>: Edita e exclui equipe
    - GET/POST /api/members: Lista e cadastra membros
    - POST /api/teams/<id>/members: Vincula membro a equipe
    - DELETE /api/members/<id>/team: Remove membro da equipe
    - PATCH /api/profile: Nome e avatar do usuario atual

Escritas em equipes e membros exigem papel de gestor.
"""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from fusion.controllers.routes._base import current_user_dict, json_payload, validate
from fusion.controllers.routes._decorators import manager_required
from fusion.controllers.routes._error_handlers import api_error_response
from fusion.forms import MemberForm, ProfileForm, TeamForm
from fusion.services import team_service
from fusion.services.filters import filter_teams_for_user
from fusion.utils.audit import ActionType, ResourceType, log_user_action

teams_bp = Blueprint('teams', __name__, url_prefix='/api')


# =============================================================================
# EQUIPES
# =============================================================================

@teams_bp.route("/teams", methods=["GET"])
@login_required
def list_teams():
    return jsonify(filter_teams_for_user(team_service.get_teams(), current_user_dict()))


@teams_bp.route("/teams", methods=["POST"])
@manager_required
def create_team():
    form, error = validate(TeamForm, json_payload())
    if error:
        return error
    team = team_service.create_team(form.name.data, form.description.data or None)
    log_user_action(ActionType.CREATE, ResourceType.TEAM, f'Equipe "{team["name"]}" criada',
                    resource_id=team["id"])
    return jsonify(team), 201


@teams_bp.route("/teams/<team_id>", methods=["PATCH"])
@manager_required
def update_team(team_id):
    payload = json_payload()
    updates = {key: payload[key] for key in ("name", "description") if key in payload}
    if "name" in updates and not (updates["name"] or "").strip():
        return api_error_response("validation_error", 400, "Informe o nome da equipe.")
    team_service.update_team(team_id, updates)
    log_user_action(ActionType.UPDATE, ResourceType.TEAM, "Equipe editada", resource_id=team_id,
                    new_values=updates)
    return ("", 204)


@teams_bp.route("/teams/<team_id>", methods=["DELETE"])
@manager_required
def delete_team(team_id):
    team_service.delete_team(team_id)
    log_user_action(ActionType.DELETE, ResourceType.TEAM, "Equipe excluída", resource_id=team_id)
    return ("", 204)


@teams_bp.route("/teams/<team_id>/members", methods=["POST"])
@manager_required
def add_member(team_id):
    user_id = json_payload().get("userId")
    if not user_id:
        return api_error_response("validation_error", 400, "Selecione o membro.")
    team_service.add_member_to_team(user_id, team_id)
    log_user_action(ActionType.UPDATE, ResourceType.USER, f"Membro vinculado à equipe {team_id}",
                    resource_id=user_id)
    return ("", 204)


# =============================================================================
# MEMBROS
# =============================================================================

@teams_bp.route("/members", methods=["GET"])
@login_required
def list_members():
    return jsonify(team_service.get_all_users())


@teams_bp.route("/members", methods=["POST"])
@manager_required
def create_member():
    form, error = validate(MemberForm, json_payload())
    if error:
        return error
    member = team_service.create_member({
        "name": form.name.data,
        "email": form.email.data,
        "password": form.password.data,
        "role": form.role.data,
        "teamId": form.teamId.data,
    })
    log_user_action(ActionType.CREATE, ResourceType.USER, f"Membro {member['email']} cadastrado",
                    resource_id=member["id"])
    return jsonify(member), 201


@teams_bp.route("/members/<user_id>/team", methods=["DELETE"])
@manager_required
def remove_member(user_id):
    team_service.remove_member_from_team(user_id)
    log_user_action(ActionType.UPDATE, ResourceType.USER, "Membro removido da equipe", resource_id=user_id)
    return ("", 204)


# =============================================================================
# PERFIL
# =============================================================================

@teams_bp.route("/profile", methods=["PATCH"])
@login_required
def update_profile():
    form, error = validate(ProfileForm, json_payload())
    if error:
        return error
    team_service.update_profile(current_user.id, name=form.name.data, avatar_url=form.avatarUrl.data)
    return jsonify(team_service.get_user(current_user.id))
