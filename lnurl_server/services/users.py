import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lnurl_server.errors import ErrorKind, LnurlError
from lnurl_server.models import User
from lnurl_server.services.nostr import is_valid_pubkey

logger = logging.getLogger(__name__)

# Lightning address local part (LUD-16)
_NAME_RE = re.compile(r'^[a-z0-9._-]+$')
MAX_NAME_LENGTH = 255

def validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise LnurlError(ErrorKind.EMPTY_NAME)
    if len(name) > MAX_NAME_LENGTH or not _NAME_RE.match(name):
        raise LnurlError(ErrorKind.INVALID_NAME)
    return name

def _lookup(db: Session, column, value: str) -> Optional[User]:
    try:
        return db.query(User).filter(column == value).first()
    except SQLAlchemyError as e:
        logger.error(f"User lookup failed: {e}")
        raise LnurlError(ErrorKind.SERVER_ERROR) from e

def get_by_name(db: Session, name: str) -> Optional[User]:
    return _lookup(db, User.name, name)

def get_by_pubkey(db: Session, pubkey: str) -> Optional[User]:
    return _lookup(db, User.pubkey, pubkey.lower())

def register(db: Session, name: str, pubkey: str) -> User:
    """Register a new payable name for pubkey"""
    name = validate_name(name)

    pubkey = (pubkey or "").strip().lower()
    if not is_valid_pubkey(pubkey):
        raise LnurlError(ErrorKind.INVALID_PUBKEY)

    if get_by_name(db, name):
        raise LnurlError(ErrorKind.NAME_TAKEN)
    if get_by_pubkey(db, pubkey):
        raise LnurlError(ErrorKind.PUBKEY_TAKEN)

    try:
        user = User(name=name, pubkey=pubkey, disabled_zaps=False)
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        # Lost a race against a concurrent registration
        db.rollback()
        logger.info(f"Registration for {name} hit a uniqueness constraint")
        if get_by_name(db, name):
            raise LnurlError(ErrorKind.NAME_TAKEN)
        raise LnurlError(ErrorKind.PUBKEY_TAKEN)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error inserting new user {name}: {e}")
        raise LnurlError(ErrorKind.SERVER_ERROR) from e

    logger.info(f"Registered {name}")
    return user

def set_zaps_enabled(db: Session, user: User, enabled: bool) -> User:
    """Flip the zap eligibility flag, the only mutation a user ever sees"""
    name = user.name
    try:
        user.disabled_zaps = not enabled
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating zap flag for {name}: {e}")
        raise LnurlError(ErrorKind.SERVER_ERROR) from e

    logger.info(f"Zaps {'enabled' if enabled else 'disabled'} for {name}")
    return user
