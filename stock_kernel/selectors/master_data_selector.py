"""
Module: stock_kernel.selectors.master_data_selector
Responsibility: Read-only access to locations, outturns and packagings, and
    assembly of the PostingContext the posting rules need.
Architecture position: Kernel > Selectors.

Failure modes:
    - LocationNotFoundError / OutturnNotFoundError / PackagingNotFoundError
      from the ``get_*`` methods.  ``find_*`` methods return None instead.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.movements import LocationInfo, OutturnInfo, PackagingInfo
from stock_kernel.exceptions import (
    LocationNotFoundError,
    OutturnNotFoundError,
    PackagingNotFoundError,
)
from stock_kernel.models.master_data import Location, Outturn, Packaging
from stock_kernel.selectors.base import BaseSelector


class MasterDataSelector(BaseSelector):
    """Lookups over the reference identities movements point at."""

    def find_location(self, location_id: UUID) -> LocationInfo | None:
        row = self.session.get(Location, location_id)
        return row.to_dto() if row else None

    def get_location(self, location_id: UUID) -> LocationInfo:
        info = self.find_location(location_id)
        if info is None:
            raise LocationNotFoundError(str(location_id))
        return info

    def find_outturn(self, outturn_id: UUID) -> OutturnInfo | None:
        row = self.session.get(Outturn, outturn_id)
        return row.to_dto() if row else None

    def get_outturn(self, outturn_id: UUID) -> OutturnInfo:
        info = self.find_outturn(outturn_id)
        if info is None:
            raise OutturnNotFoundError(str(outturn_id))
        return info

    def get_packaging(self, packaging_id: UUID) -> PackagingInfo:
        row = self.session.get(Packaging, packaging_id)
        if row is None:
            raise PackagingNotFoundError(str(packaging_id))
        return row.to_dto()

    def warehouse_map(self) -> dict[UUID, UUID | None]:
        rows = self.session.execute(select(Location.id, Location.warehouse_id)).all()
        return {loc_id: wh_id for loc_id, wh_id in rows}

    def outturn_codes(self) -> dict[UUID, str]:
        rows = self.session.execute(select(Outturn.id, Outturn.code)).all()
        return {o_id: code for o_id, code in rows}
