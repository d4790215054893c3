"""
Local identity provider: email/password accounts and JWT bearer tokens.

Only Principal.id and Principal.email leave this module; everything else in the
service treats the identity provider as an external collaborator.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from oralscan.core.errors import AuthError, EmailAlreadyRegistered, IdentityUnavailable
from oralscan.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from oralscan.models import Account
from oralscan.schemas import Principal

logger = logging.getLogger(__name__)


def _to_principal(account: Account) -> Principal:
    return Principal(id=account.id, email=account.email, full_name=account.full_name or "")


class LocalIdentityProvider:
    def __init__(self, db: Session):
        self.db = db

    def register(self, email: str, password: str, full_name: str = "") -> Principal:
        email = email.strip().lower()
        if self.db.exec(select(Account).where(Account.email == email)).first():
            raise EmailAlreadyRegistered(f"An account for {email} already exists.")
        account = Account(email=email, hashed_password=hash_password(password), full_name=full_name.strip())
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise EmailAlreadyRegistered(f"An account for {email} already exists.")
        self.db.refresh(account)
        logger.info("account registered: id=%s", account.id)
        return _to_principal(account)

    def authenticate(self, email: str, password: str) -> Principal:
        email = email.strip().lower()
        account = self.db.exec(select(Account).where(Account.email == email)).first()
        if not account or not verify_password(password, account.hashed_password):
            raise AuthError("Invalid email or password.")
        return _to_principal(account)

    def issue_token(self, principal: Principal) -> str:
        return create_access_token({"sub": principal.id, "email": principal.email})

    def principal_from_token(self, token: str) -> Principal:
        payload = decode_access_token(token)
        if not payload or "sub" not in payload:
            raise IdentityUnavailable("Session token is invalid or expired. Please sign in again.")
        account = self.db.get(Account, str(payload["sub"]))
        if not account:
            raise IdentityUnavailable("The signed-in account no longer exists. Please sign in again.")
        return _to_principal(account)

    def confirm(self, principal: Principal) -> bool:
        account = self.db.get(Account, principal.id)
        return account is not None and account.email == principal.email
