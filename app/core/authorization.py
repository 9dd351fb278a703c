# app/core/authorization.py
"""
Authorization engine for posts and administrative roles.

Every check answers with a ``Decision`` value instead of raising, so callers
branch explicitly and the HTTP layer decides how to render a denial
(see ``app.core.rbac.ensure_allowed``). Only persistence failures escape as
exceptions.

Scope of a post:
    Global   faculty_id is None and level_id is None
    Faculty  faculty_id is set, level_id is None
    Level    level_id is set. A stored record carrying both ids is treated
             as Level-scoped; new posts with both ids are rejected by
             ``validate_scope``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from loguru import logger

from app.models.user import ADMIN_ROLES, UserRole


class Scope(str, Enum):
    Global = "global"
    Faculty = "faculty"
    Level = "level"

    @classmethod
    def parse(cls, raw) -> Optional["Scope"]:
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


class DenialKind(str, Enum):
    Unauthorized = "unauthorized"
    Forbidden = "forbidden"
    NotFound = "not_found"
    InvalidInput = "invalid_input"


_STATUS_BY_KIND = {
    DenialKind.Unauthorized: 401,
    DenialKind.Forbidden: 403,
    DenialKind.NotFound: 404,
    DenialKind.InvalidInput: 400,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    kind: Optional[DenialKind] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, kind: DenialKind = DenialKind.Forbidden) -> "Decision":
        return cls(allowed=False, reason=reason, kind=kind)

    @property
    def status_code(self) -> int:
        if self.allowed:
            return 200
        return _STATUS_BY_KIND[self.kind]

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class ScopeRef:
    """Target scope of a post or channel."""

    faculty_id: Any = None
    level_id: Any = None

    @property
    def scope(self) -> Scope:
        return classify_scope(self.faculty_id, self.level_id)


@dataclass(frozen=True)
class RoleChange:
    decision: Decision
    user: Any = None
    previous_role: Optional[UserRole] = None


class AuthorizationStore(Protocol):
    """Read/write access the engine needs from the persistence layer."""

    async def get_level(self, level_id) -> Any: ...

    async def get_department(self, department_id) -> Any: ...

    async def get_user_by_email(self, email: str) -> Any: ...

    async def save_user(self, user) -> Any: ...


RoleNotifier = Callable[[Any, UserRole, UserRole], None]

PROMOTABLE_ROLES = frozenset({UserRole.Admin, UserRole.DeptAdmin})


def classify_scope(faculty_id=None, level_id=None) -> Scope:
    # level wins when both are present
    if level_id is not None:
        return Scope.Level
    if faculty_id is not None:
        return Scope.Faculty
    return Scope.Global


def validate_scope(faculty_id=None, level_id=None) -> Decision:
    if faculty_id is not None and level_id is not None:
        return Decision.deny(
            "a post may target a faculty or a level, not both",
            DenialKind.InvalidInput,
        )
    return Decision.allow()


class AuthorizationEngine:
    def __init__(self, store: AuthorizationStore, primary_power_email: Optional[str] = None):
        self.store = store
        self.primary_power_email = (primary_power_email or "").strip().lower()

    # ------------------------------------------------------------
    # POSTS
    # ------------------------------------------------------------
    async def can_create(self, actor, target: ScopeRef) -> Decision:
        if actor is None:
            return Decision.deny("authentication required", DenialKind.Unauthorized)

        role = UserRole.parse(actor.role)

        if role == UserRole.User:
            return Decision.deny("users cannot create posts")

        if role in ADMIN_ROLES:
            return Decision.allow()

        if role == UserRole.DeptAdmin:
            if target.scope != Scope.Level:
                return Decision.deny(
                    "department admins may only post in a department-level scope"
                )

            if actor.managed_department_id is None:
                return Decision.deny("no department assigned")

            level = await self.store.get_level(target.level_id)
            if level is None:
                return Decision.deny("level not found", DenialKind.NotFound)

            if level.department_id != actor.managed_department_id:
                logger.warning(
                    f"d_admin {actor.id} tried to post in level {target.level_id} "
                    f"outside department {actor.managed_department_id}"
                )
                return Decision.deny("level not in managed department")

            return Decision.allow()

        return Decision.deny("invalid role")

    async def can_view(self, actor, target: ScopeRef, scope=None) -> Decision:
        """
        ``scope`` is the scope the caller asked for (e.g. the route being
        served). When omitted it is classified from ``target``.
        """
        if actor is None:
            return Decision.deny("authentication required", DenialKind.Unauthorized)

        role = UserRole.parse(actor.role)
        if role in ADMIN_ROLES:
            return Decision.allow()

        resolved = target.scope if scope is None else Scope.parse(scope)

        if resolved == Scope.Global:
            return Decision.allow()

        if resolved == Scope.Faculty:
            if actor.faculty_id is not None and actor.faculty_id == target.faculty_id:
                return Decision.allow()
            return Decision.deny("not a member of this faculty")

        if resolved == Scope.Level:
            if role == UserRole.User:
                if actor.level_id is not None and actor.level_id == target.level_id:
                    return Decision.allow()
                return Decision.deny("not a member of this level")

            if role == UserRole.DeptAdmin:
                level = await self.store.get_level(target.level_id)
                if level is None:
                    return Decision.deny("level not found", DenialKind.NotFound)
                if (
                    actor.managed_department_id is not None
                    and level.department_id == actor.managed_department_id
                ):
                    return Decision.allow()
                return Decision.deny("level outside managed department")

            return Decision.deny("invalid role")

        return Decision.deny("invalid scope", DenialKind.InvalidInput)

    def can_modify(self, actor, resource_owner_id) -> Decision:
        if actor is None:
            return Decision.deny("authentication required", DenialKind.Unauthorized)

        role = UserRole.parse(actor.role)

        if role in ADMIN_ROLES:
            return Decision.allow()
        if role == UserRole.DeptAdmin:
            if actor.id == resource_owner_id:
                return Decision.allow()
            return Decision.deny("can only modify own post")
        if role == UserRole.User:
            return Decision.deny("users cannot modify posts")
        return Decision.deny("invalid role")

    # ------------------------------------------------------------
    # ROLE MANAGEMENT
    # ------------------------------------------------------------
    def _require_power(self, requester) -> Optional[Decision]:
        if requester is None:
            return Decision.deny("authentication required", DenialKind.Unauthorized)
        if UserRole.parse(requester.role) != UserRole.Power:
            return Decision.deny("only a power admin can change administrative roles")
        return None

    def _notify(self, notify: Optional[RoleNotifier], user, previous: UserRole, new: UserRole):
        if notify is None:
            return
        try:
            notify(user, previous, new)
        except Exception:
            # best effort: the role change stays committed
            logger.exception(f"Role change notification failed for {user.email}")

    async def promote(
        self,
        requester,
        target_email: str,
        new_role,
        managed_department_id=None,
        notify: Optional[RoleNotifier] = None,
    ) -> RoleChange:
        denied = self._require_power(requester)
        if denied is not None:
            return RoleChange(denied)

        role = UserRole.parse(new_role)
        if role not in PROMOTABLE_ROLES:
            return RoleChange(Decision.deny(
                "role must be one of: admin, d_admin", DenialKind.InvalidInput
            ))

        if role == UserRole.DeptAdmin:
            if managed_department_id is None:
                return RoleChange(Decision.deny(
                    "department admins require a managed department", DenialKind.InvalidInput
                ))
            department = await self.store.get_department(managed_department_id)
            if department is None:
                return RoleChange(Decision.deny("department not found", DenialKind.NotFound))

        user = await self.store.get_user_by_email(target_email.strip().lower())
        if user is None:
            return RoleChange(Decision.deny("user not found", DenialKind.NotFound))

        previous = UserRole.parse(user.role)
        if previous != UserRole.User:
            return RoleChange(Decision.deny(
                "account already holds an administrative position", DenialKind.InvalidInput
            ))

        user.role = role
        user.managed_department_id = managed_department_id if role == UserRole.DeptAdmin else None
        user = await self.store.save_user(user)
        logger.info(f"{requester.email} promoted {user.email}: {previous.value} -> {role.value}")

        self._notify(notify, user, previous, role)
        return RoleChange(Decision.allow(), user=user, previous_role=previous)

    async def demote(
        self,
        requester,
        target_email: str,
        notify: Optional[RoleNotifier] = None,
    ) -> RoleChange:
        denied = self._require_power(requester)
        if denied is not None:
            return RoleChange(denied)

        email = target_email.strip().lower()
        user = await self.store.get_user_by_email(email)
        if user is None:
            return RoleChange(Decision.deny("user not found", DenialKind.NotFound))

        previous = UserRole.parse(user.role)
        if previous == UserRole.User:
            return RoleChange(Decision.deny("user is not an admin", DenialKind.InvalidInput))

        if self.primary_power_email and email == self.primary_power_email:
            return RoleChange(Decision.deny("cannot demote the primary power admin"))

        user.role = UserRole.User
        user.managed_department_id = None
        user = await self.store.save_user(user)
        logger.info(f"{requester.email} demoted {user.email}: {previous.value if previous else 'unknown'} -> user")

        self._notify(notify, user, previous, UserRole.User)
        return RoleChange(Decision.allow(), user=user, previous_role=previous)
