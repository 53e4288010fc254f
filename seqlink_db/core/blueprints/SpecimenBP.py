from typing import Optional

import sqlalchemy as sa

from ... import models
from ..DBBlueprint import DBBlueprint


class SpecimenBP(DBBlueprint):
    """ Read-only access to specimens owned by the LIMS. """

    @DBBlueprint.transaction
    def get(self, specimen_id: int) -> models.Specimen | None:
        return self.db.session.get(models.Specimen, specimen_id)

    @DBBlueprint.transaction
    def get_id_by_wuid(self, wuid: int) -> Optional[int]:
        """ Returns the specimen id whose specimen_number equals the WUID, or None if there is none.
        Database errors are raised, not reported as None. """
        return self.db.session.execute(
            sa.select(models.Specimen.id).where(models.Specimen.specimen_number == wuid)
        ).scalar_one_or_none()
