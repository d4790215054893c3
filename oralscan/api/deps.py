from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from oralscan.core.database import get_db
from oralscan.core.errors import AuthError
from oralscan.schemas import Principal
from oralscan.services.capabilities import Caller
from oralscan.services.identity import LocalIdentityProvider
from oralscan.services.roles import resolve_role

security = HTTPBearer(auto_error=False)


def get_identity(db: Session = Depends(get_db)) -> LocalIdentityProvider:
    return LocalIdentityProvider(db)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    identity: LocalIdentityProvider = Depends(get_identity),
) -> Principal:
    if not credentials:
        raise AuthError("Sign in required.")
    return identity.principal_from_token(credentials.credentials)


def get_caller(
    principal: Principal = Depends(get_current_principal),
    identity: LocalIdentityProvider = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Caller:
    return Caller(principal=principal, role=resolve_role(db, principal, identity))
