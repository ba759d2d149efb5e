"""
Policy store: the only component that touches the database.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from policyctl.config import DatabaseConfig
from policyctl.errors import NotFoundError, OpenError, UpdateError
from policyctl.models.acl_policy import ACLPolicy
from policyctl.models.database import create_db_engine, create_session_factory, init_db
from policyctl.models.organization import Organization

logger = logging.getLogger(__name__)


class PolicyStore:
    """Fetch and replace the policy stored on organization rows."""

    def __init__(self, engine: Engine, path: str | Path = ""):
        self.engine = engine
        self.path = str(path)
        self._session_factory = create_session_factory(engine)

    @classmethod
    def open(cls, path: str | Path, config: DatabaseConfig | None = None) -> "PolicyStore":
        """
        Open the database file at path and make sure the schema exists.

        Raises:
            OpenError: If the file cannot be opened or the schema cannot be created.
        """
        try:
            engine = create_db_engine(path, config)
        except (OSError, ValueError, SQLAlchemyError) as e:
            raise OpenError(str(path), str(e)) from e

        store = cls(engine, path)
        try:
            store.init_schema()
        except SQLAlchemyError as e:
            engine.dispose()
            raise OpenError(str(path), str(e)) from e

        logger.debug(f"Opened policy store at {path}")
        return store

    def init_schema(self) -> None:
        """Create the organizations table if it is missing."""
        init_db(self.engine)
        logger.debug("Database schema ensured")

    def fetch_policy(self) -> ACLPolicy:
        """
        Get the policy of the first organization found.

        No ordering is applied; deployments hold a single organization.
        A row whose policy column is NULL yields an empty policy.

        Raises:
            NotFoundError: If there is no organization row.
            DecodeError: If the stored policy is malformed.
            OpenError: If the table cannot be read.
        """
        try:
            with self._session_factory() as session:
                result = session.execute(select(Organization.acl_policy).limit(1))
                row = result.first()
        except SQLAlchemyError as e:
            raise OpenError(self.path, f"failed to read policy: {e}") from e

        if row is None:
            raise NotFoundError("No organization found, no policy stored")

        policy = row[0]
        if policy is None:
            logger.info("Organization has no policy set, returning an empty policy")
            return ACLPolicy()
        return policy

    def replace_policy(self, policy: ACLPolicy) -> int:
        """
        Write policy into every organization row.

        The update carries no row filter: all organizations receive the same
        policy, in one transaction.

        Returns:
            Number of updated rows.

        Raises:
            UpdateError: If the storage layer fails; nothing is applied.
        """
        try:
            with self._session_factory() as session:
                with session.begin():
                    result = session.execute(
                        update(Organization)
                        .values(
                            acl_policy=policy,
                            updated_at=datetime.now(timezone.utc),
                        )
                        .execution_options(synchronize_session=False)
                    )
                    updated = result.rowcount
        except SQLAlchemyError as e:
            raise UpdateError(f"Failed to update policy: {e}") from e

        logger.info(f"Updated policy on {updated} organization(s)")
        return updated

    def add_organization(
        self,
        name: str,
        provider: str,
        policy: ACLPolicy | None = None,
    ) -> Organization:
        """
        Insert a new organization row.

        Raises:
            UpdateError: If the (name, provider) pair already exists or the insert fails.
        """
        org = Organization(name=name, provider=provider, acl_policy=policy)
        try:
            with self._session_factory() as session:
                with session.begin():
                    session.add(org)
        except IntegrityError as e:
            raise UpdateError(f"Organization {name}/{provider} already exists") from e
        except SQLAlchemyError as e:
            raise UpdateError(f"Failed to add organization: {e}") from e

        logger.info(f"Added organization {name}/{provider}")
        return org

    def close(self) -> None:
        """Release the database connection."""
        self.engine.dispose()

    def __enter__(self) -> "PolicyStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
