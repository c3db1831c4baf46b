"""
Row-level security policies, mirrored in the application

The PostgreSQL migrations create the same policy set with CREATE POLICY;
this module applies it to ORM queries (visible) and to writes
(authorize_write) so behaviour is identical on databases without RLS.

Semantics follow PostgreSQL permissive policies:
    - policies applicable to (table, command, role) are OR'ed
    - no applicable policy means no access
    - service_role bypasses every policy
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
import uuid

from sqlalchemy import and_, false, or_, text, true
from sqlalchemy.orm import Query, Session

from wathaci.infrastructure.db.models import (
    AuditLog, DonorProfile, Donation, FreelancerProfile, GovernmentProfile, InvestorProfile,
    KnowledgeEntry, PartnershipInterest, PartnershipOpportunity, PartnershipProfile, Payment,
    PaymentAccount, PlatformFeeTier, ProfessionalProfile, Profile, Registration, SmeProfile,
    Subscription, SubscriptionPlan, Transaction, User, UserEvent, UserRole,
)
from wathaci.infrastructure.db.session import is_postgres

ANON = "anon"
AUTHENTICATED = "authenticated"
SERVICE_ROLE = "service_role"

ADMIN_ROLES = ("admin", "super_admin")

SELECT = "select"
INSERT = "insert"
UPDATE = "update"
DELETE = "delete"
ALL = (SELECT, INSERT, UPDATE, DELETE)


class PolicyViolation(PermissionError):
    """A write was refused by row-level security"""
    pass


@dataclass(frozen=True)
class Actor:
    """Who is executing a request: database role, identity and admin flag"""
    role: str
    user_id: Optional[uuid.UUID] = None
    is_admin: bool = False

    @classmethod
    def anonymous(cls) -> "Actor":
        return cls(role=ANON)

    @classmethod
    def service(cls) -> "Actor":
        return cls(role=SERVICE_ROLE)

    @classmethod
    def for_user(cls, user_id: uuid.UUID, is_admin: bool = False) -> "Actor":
        return cls(role=AUTHENTICATED, user_id=user_id, is_admin=is_admin)

    @property
    def bypasses_rls(self) -> bool:
        return self.role == SERVICE_ROLE


@dataclass
class Policy:
    name: str
    model: type
    commands: tuple
    roles: tuple
    # USING: SQL predicate restricting visible/affected rows
    using: Optional[Callable[[Actor], Any]] = None
    # WITH CHECK: predicate a written row must satisfy
    check: Optional[Callable[[Actor, Any], bool]] = field(default=None)


def _own(name, model, attr, commands, roles=(AUTHENTICATED,)) -> Policy:
    column = getattr(model, attr)
    return Policy(
        name=name,
        model=model,
        commands=commands,
        roles=roles,
        using=lambda actor: column == actor.user_id,
        check=lambda actor, row: actor.user_id is not None and getattr(row, attr) == actor.user_id,
    )


def _admin(name, model) -> Policy:
    return Policy(
        name=name,
        model=model,
        commands=ALL,
        roles=(AUTHENTICATED,),
        using=lambda actor: true() if actor.is_admin else false(),
        check=lambda actor, row: actor.is_admin,
    )


def _readable_by_all(name, model, roles=(ANON, AUTHENTICATED)) -> Policy:
    return Policy(name=name, model=model, commands=(SELECT,), roles=roles, using=lambda actor: true())


def _active(name, model) -> Policy:
    return Policy(
        name=name, model=model, commands=(SELECT,), roles=(ANON, AUTHENTICATED),
        using=lambda actor: model.is_active.is_(True),
    )


def _insert_anyone(name, model, roles=(ANON, AUTHENTICATED)) -> Policy:
    return Policy(name=name, model=model, commands=(INSERT,), roles=roles, check=lambda actor, row: True)


EXTENSION_MODELS = (
    SmeProfile, ProfessionalProfile, FreelancerProfile, InvestorProfile, DonorProfile, GovernmentProfile,
)


def _extension_policies():
    policies = []
    for model in EXTENSION_MODELS:
        table = model.__tablename__
        policies.append(_readable_by_all(f"{table}_select_authenticated", model, roles=(AUTHENTICATED,)))
        policies.append(_own(f"{table}_insert_own", model, "profile_id", (INSERT,)))
        policies.append(_own(f"{table}_update_own", model, "profile_id", (UPDATE,)))
    return policies


POLICIES: list[Policy] = [
    # profiles
    _own("profiles_select_own", Profile, "id", (SELECT,)),
    _own("profiles_insert_own", Profile, "id", (INSERT,)),
    _own("profiles_update_own", Profile, "id", (UPDATE,)),
    Policy(
        name="profiles_directory_select",
        model=Profile,
        commands=(SELECT,),
        roles=(ANON, AUTHENTICATED),
        using=lambda actor: Profile.account_type.is_not(None),
    ),
    _admin("profiles_admin_all", Profile),

    *_extension_policies(),

    # wallet and payments
    _own("payment_accounts_select_own", PaymentAccount, "user_id", (SELECT,)),
    _own("payment_accounts_insert_own", PaymentAccount, "user_id", (INSERT,)),
    _own("payment_accounts_update_own", PaymentAccount, "user_id", (UPDATE,)),
    Policy(
        name="transactions_select_own_or_recipient",
        model=Transaction,
        commands=(SELECT,),
        roles=(AUTHENTICATED,),
        using=lambda actor: or_(Transaction.user_id == actor.user_id, Transaction.recipient_id == actor.user_id),
    ),
    _own("subscriptions_select_own", Subscription, "user_id", (SELECT,)),
    _own("payments_select_own", Payment, "user_id", (SELECT,)),
    _active("subscription_plans_select_active", SubscriptionPlan),
    _admin("subscription_plans_admin_all", SubscriptionPlan),
    _active("platform_fee_tiers_select_active", PlatformFeeTier),

    # donations
    _insert_anyone("donations_insert_any", Donation),
    Policy(
        name="donations_select_own_or_admin",
        model=Donation,
        commands=(SELECT,),
        roles=(AUTHENTICATED,),
        using=lambda actor: true() if actor.is_admin else Donation.donor_user_id == actor.user_id,
    ),

    # audit and telemetry
    _own("audit_logs_select_own", AuditLog, "user_id", (SELECT,)),
    Policy(
        name="audit_logs_select_admin",
        model=AuditLog,
        commands=(SELECT,),
        roles=(AUTHENTICATED,),
        using=lambda actor: true() if actor.is_admin else false(),
    ),
    _insert_anyone("audit_logs_insert", AuditLog, roles=(AUTHENTICATED,)),
    _own("user_events_select_own", UserEvent, "user_id", (SELECT,)),

    # partnerships
    _active("partnership_opportunities_select_active", PartnershipOpportunity),
    _admin("partnership_opportunities_admin_all", PartnershipOpportunity),
    _own("partnership_interests_own", PartnershipInterest, "initiator_profile_id", ALL),
    _active("partnership_profiles_select_active", PartnershipProfile),
    _own("partnership_profiles_own", PartnershipProfile, "profile_id", ALL),

    # knowledge base
    _active("wathaci_knowledge_select_active", KnowledgeEntry),
    _admin("wathaci_knowledge_admin_all", KnowledgeEntry),

    # registrations
    _insert_anyone("registrations_insert_public", Registration),
    Policy(
        name="registrations_select_admin",
        model=Registration,
        commands=(SELECT,),
        roles=(AUTHENTICATED,),
        using=lambda actor: true() if actor.is_admin else false(),
    ),

    # roles
    _own("user_roles_select_own", UserRole, "user_id", (SELECT,)),
    _admin("user_roles_admin_all", UserRole),
]


def policies_for(model: type, command: str, role: str) -> list[Policy]:
    return [
        policy for policy in POLICIES
        if policy.model is model and command in policy.commands and role in policy.roles
    ]


def select_clause(model: type, actor: Actor):
    """
    SQL predicate equivalent to the table's SELECT policies for the actor,
    or None when the actor bypasses RLS.
    """
    if actor.bypasses_rls:
        return None
    clauses = [p.using(actor) for p in policies_for(model, SELECT, actor.role) if p.using is not None]
    if not clauses:
        return false()
    return or_(*clauses)


def visible(db: Session, model: type, actor: Actor) -> Query:
    """
    Query over the rows of `model` the actor may see

    Usage:
        rows = visible(db, Profile, actor).filter(Profile.country == "Zambia").all()
    """
    query = db.query(model)
    clause = select_clause(model, actor)
    if clause is None:
        return query
    return query.filter(clause)


def authorize_write(actor: Actor, command: str, row) -> None:
    """
    Check a row about to be inserted/updated/deleted against the policies

    Raises:
        PolicyViolation: if no applicable policy admits the row
    """
    if actor.bypasses_rls:
        return
    model = type(row)
    for policy in policies_for(model, command, actor.role):
        if policy.check is not None and policy.check(actor, row):
            return
    raise PolicyViolation(
        f'new row violates row-level security policy for table "{model.__tablename__}"'
    )


def is_admin_user(db: Session, user_id) -> bool:
    """admin / super_admin in user_roles, or the identity-level admin flag"""
    if user_id is None:
        return False
    role = (
        db.query(UserRole.id)
        .filter(and_(UserRole.user_id == user_id, UserRole.role.in_(ADMIN_ROLES)))
        .first()
    )
    if role is not None:
        return True
    user = db.query(User).filter(User.id == user_id).first()
    return bool(user and user.is_admin)


def load_actor(db: Session, user_id) -> Actor:
    if user_id is None:
        return Actor.anonymous()
    return Actor.for_user(user_id, is_admin=is_admin_user(db, user_id))


def apply_request_claims(db: Session, actor: Actor) -> None:
    """
    Expose the actor to database-side policies (auth.uid() reads request.jwt.claim.sub).
    No-op outside PostgreSQL.
    """
    if not is_postgres(db):
        return
    db.execute(
        text(
            "SELECT set_config('request.jwt.claim.sub', :sub, true), "
            "set_config('request.jwt.claim.role', :role, true)"
        ),
        {"sub": str(actor.user_id) if actor.user_id else "", "role": actor.role},
    )
