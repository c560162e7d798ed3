"""Idempotent provisioning of the settings account, default permissions and roles."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from shiftpay.core.security import hash_password
from shiftpay.models import Permission, Role, User

if TYPE_CHECKING:
    from shiftpay.core.config import Settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "Admin"
MANAGER_ROLE = "Manager"
EMPLOYEE_ROLE = "Employee"

SEEDED_SUBJECTS = ("users", "roles", "permissions")
CRUD_ACTIONS = ("create", "read", "update", "delete")

# Role name -> (description, allowed actions; None means every action).
ROLE_DEFINITIONS: dict[str, tuple[str, tuple[str, ...] | None]] = {
    ADMIN_ROLE: ("System administrator with full access", None),
    MANAGER_ROLE: ("Manager with read/update access", ("read", "update")),
    EMPLOYEE_ROLE: ("Standard user with read-only access", ("read",)),
}


def _ensure_settings_user(db: Session, settings: "Settings") -> User:
    user = db.query(User).filter(User.username == settings.SETTINGS_USERNAME).first()
    if user is None:
        user = User(
            username=settings.SETTINGS_USERNAME,
            password_hash=hash_password(settings.SETTINGS_PASSWORD.get_secret_value()),
        )
        db.add(user)
        db.flush()
        # The settings user is its own author.
        user.created_by = user.id
        user.updated_by = user.id
        logger.info("Created settings user: username=%s", user.username)
    return user


def _ensure_permissions(db: Session, actor_id: int) -> list[Permission]:
    existing = {(p.action, p.subject): p for p in db.query(Permission).all()}
    for subject in SEEDED_SUBJECTS:
        for action in CRUD_ACTIONS:
            if (action, subject) in existing:
                continue
            permission = Permission(
                action=action,
                subject=subject,
                description=f"{action.capitalize()} {subject}",
                created_by=actor_id,
                updated_by=actor_id,
            )
            db.add(permission)
            existing[(action, subject)] = permission
    db.flush()
    return list(existing.values())


def _ensure_roles(db: Session, permissions: list[Permission], actor_id: int) -> dict[str, Role]:
    roles: dict[str, Role] = {}
    for name, (description, actions) in ROLE_DEFINITIONS.items():
        granted = [p for p in permissions if actions is None or p.action in actions]
        role = db.query(Role).filter(Role.name == name).first()
        if role is None:
            role = Role(name=name, created_by=actor_id)
            db.add(role)
        role.description = description
        role.updated_by = actor_id
        role.permissions = granted
        roles[name] = role
    db.flush()
    return roles


def seed_defaults(db: Session, settings: "Settings") -> User:
    """
    Provision the settings user, CRUD permissions on users/roles/permissions and
    the Admin/Manager/Employee roles, then make Admin the settings user's only
    role. Safe to run repeatedly: permission sets are reset to the defaults.
    """
    user = _ensure_settings_user(db, settings)
    permissions = _ensure_permissions(db, user.id)
    roles = _ensure_roles(db, permissions, user.id)
    user.roles = [roles[ADMIN_ROLE]]
    user.updated_by = user.id
    db.commit()
    logger.info(
        "Seed completed: permissions=%s roles=%s settings_user_id=%s",
        len(permissions),
        len(roles),
        user.id,
    )
    return user
