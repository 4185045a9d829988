"""Teams, members and profile edits."""

import logging
from typing import Any, Mapping, Optional

from fusion import db
from fusion.models.tables import ROLE_MEMBER, Profile, Team
from fusion.services.adapters import GENERAL_TEAM, adapt_team, adapt_user
from fusion.services.errors import NotFoundError, remote_operation
from fusion.services.rows import column_row

logger = logging.getLogger(__name__)


def _get(model, object_id: str, resource: str):
    obj = db.session.get(model, object_id)
    if obj is None:
        raise NotFoundError(resource, object_id)
    return obj


def get_teams() -> list[dict]:
    """Teams ordered by name; managers appear as members of every team."""
    teams = Team.query.order_by(Team.name).all()
    profiles = [column_row(p) for p in Profile.query.order_by(Profile.name).all()]
    return [adapt_team(column_row(team), profiles) for team in teams]


def get_all_users() -> list[dict]:
    return [adapt_user(column_row(p)) for p in Profile.query.order_by(Profile.name).all()]


def get_user(user_id: str) -> dict:
    return adapt_user(column_row(_get(Profile, user_id, "profile")))


def create_team(name: str, description: Optional[str] = None) -> dict:
    with remote_operation("create_team"):
        team = Team(name=name, description=description)
        db.session.add(team)
    return adapt_team(column_row(team))


def update_team(team_id: str, updates: Mapping[str, Any]) -> None:
    with remote_operation("update_team"):
        team = _get(Team, team_id, "team")
        if "name" in updates and updates["name"] is not None:
            team.name = updates["name"]
        if "description" in updates:
            team.description = updates["description"]


def delete_team(team_id: str) -> None:
    """Delete a team; profiles and tasks pointing at it lose the reference."""
    with remote_operation("delete_team"):
        db.session.delete(_get(Team, team_id, "team"))


def create_member(member: Mapping[str, Any]) -> dict:
    """Create a profile that can sign in with the given password.

    A duplicated e-mail surfaces as :class:`RemoteOperationError` with code
    ``23505``.
    """
    team_id = member.get("teamId")
    with remote_operation("create_member"):
        profile = Profile(
            name=member.get("name"),
            email=(member.get("email") or "").strip().lower(),
            role=member.get("role") or ROLE_MEMBER,
            team_id=None if not team_id or team_id == GENERAL_TEAM else team_id,
            avatar_url=member.get("avatarUrl"),
        )
        if member.get("password"):
            profile.set_password(member["password"])
        db.session.add(profile)
    logger.info("Membro %s criado", profile.email)
    return adapt_user(column_row(profile))


def add_member_to_team(user_id: str, team_id: str) -> None:
    with remote_operation("add_member_to_team"):
        _get(Profile, user_id, "profile").team_id = team_id


def remove_member_from_team(user_id: str) -> None:
    with remote_operation("remove_member_from_team"):
        _get(Profile, user_id, "profile").team_id = None


def update_profile(user_id: str, name: Optional[str] = None, avatar_url: Optional[str] = None) -> None:
    """Name and avatar are the only editable profile fields; e-mail never changes."""
    with remote_operation("update_profile"):
        profile = _get(Profile, user_id, "profile")
        if name:
            profile.name = name
        if avatar_url:
            profile.avatar_url = avatar_url
