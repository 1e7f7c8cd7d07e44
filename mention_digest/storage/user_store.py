"""
SQL storage for users who installed the mention digest.
"""
import logging
from datetime import datetime, timezone
from typing import List, NamedTuple

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from mention_digest.exceptions import TokenDecryptionError
from mention_digest.utils.crypto import TokenCipher

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class InstalledUser(Base):
    """Model for storing a registered user and their encrypted token."""
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    access_token = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<InstalledUser(user_id={self.user_id})>"


class UserCredentials(NamedTuple):
    user_id: str
    access_token: str


class UserStore:
    """
    Manages registered users and their Slack tokens.
    """

    def __init__(self, database_url: str, cipher: TokenCipher):
        """
        Initialize the user store.

        Args:
            database_url: SQLAlchemy database URL
            cipher: Cipher used for tokens at rest
        """
        self.engine = create_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)
        self.cipher = cipher

    def user_exists(self, user_id: str) -> bool:
        with self.Session() as session:
            return session.get(InstalledUser, user_id) is not None

    def save_user(self, user_id: str, access_token: str) -> bool:
        """
        Store a user's token, encrypted.

        Returns:
            True if the user was added, False if already registered
        """
        with self.Session() as session:
            if session.get(InstalledUser, user_id) is not None:
                logger.info(f"User {user_id} is already registered")
                return False
            session.add(InstalledUser(
                user_id=user_id,
                access_token=self.cipher.encrypt(access_token),
            ))
            try:
                session.commit()
            except Exception as e:
                session.rollback()
                logger.error(f"Error saving user {user_id}: {str(e)}")
                raise
        logger.info(f"Registered user {user_id}")
        return True

    def get_token(self, user_id: str) -> str:
        """
        Get the decrypted token of a registered user.

        Raises:
            KeyError: If the user is not registered
            TokenDecryptionError: If the stored token cannot be decrypted
        """
        with self.Session() as session:
            user = session.get(InstalledUser, user_id)
            if user is None:
                raise KeyError(user_id)
            return self.cipher.decrypt(user.access_token)

    def get_installed_users(self) -> List[UserCredentials]:
        """
        List registered users with decrypted tokens.

        Users whose token cannot be decrypted are logged and skipped.
        """
        with self.Session() as session:
            rows = session.query(InstalledUser).order_by(InstalledUser.created_at).all()
            stored = [(row.user_id, row.access_token) for row in rows]

        users = []
        for user_id, encrypted_token in stored:
            try:
                users.append(UserCredentials(user_id, self.cipher.decrypt(encrypted_token)))
            except TokenDecryptionError as e:
                logger.error(f"Error decrypting token for user {user_id}: {str(e)}")
                continue
        return users
