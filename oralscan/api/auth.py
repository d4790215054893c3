import logging

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from oralscan.api.deps import get_caller, get_identity
from oralscan.core.database import get_db
from oralscan.core.rate_limit import limiter, login_limit, register_limit
from oralscan.schemas import PrincipalResponse, Token, UserCreate, UserLogin
from oralscan.services.capabilities import Caller
from oralscan.services.identity import LocalIdentityProvider
from oralscan.services.roles import resolve_role

log = logging.getLogger("oralscan.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=PrincipalResponse, status_code=201)
@limiter.limit(register_limit)
def register(
    request: Request,
    body: UserCreate,
    identity: LocalIdentityProvider = Depends(get_identity),
):
    principal = identity.register(body.email, body.password, body.full_name)
    return PrincipalResponse(id=principal.id, email=principal.email, full_name=principal.full_name)


@router.post("/login", response_model=Token)
@limiter.limit(login_limit)
def login(
    request: Request,
    body: UserLogin,
    identity: LocalIdentityProvider = Depends(get_identity),
    db: Session = Depends(get_db),
):
    principal = identity.authenticate(body.email, body.password)
    # First observed login provisions the role; later logins read it back
    role = resolve_role(db, principal, identity)
    log.info("login: principal=%s role=%s", principal.id, role.value)
    return Token(access_token=identity.issue_token(principal), role=role)


@router.get("/me", response_model=PrincipalResponse)
def me(caller: Caller = Depends(get_caller)):
    p = caller.principal
    return PrincipalResponse(id=p.id, email=p.email, full_name=p.full_name, role=caller.role)
