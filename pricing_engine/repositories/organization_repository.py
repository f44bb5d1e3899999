from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from pricing_engine.models.organization import Organization
from pricing_engine.models.shared import DEFAULT_ORGANIZATION_ID

logger = logging.getLogger(__name__)


class OrganizationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, org_id: UUID) -> Organization | None:
        return self.db.query(Organization).filter(Organization.id == org_id).first()

    def ensure(self, org_id: UUID, name: str | None = None) -> Organization:
        """Return the organization, provisioning it on first use."""
        org = self.get_by_id(org_id)
        if org is not None:
            return org
        if name is None:
            name = "Default Organization" if org_id == DEFAULT_ORGANIZATION_ID else str(org_id)
        org = Organization(id=org_id, name=name)
        self.db.add(org)
        self.db.commit()
        self.db.refresh(org)
        logger.info("Provisioned organization %s", org_id)
        return org
