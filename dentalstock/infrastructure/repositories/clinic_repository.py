"""Read-only queries over clinic cases, reservations and suppliers."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy.orm import Session

from dentalstock.domain.entities import CLOSED_CASE_STATUSES, Supplier, SurgicalCase
from dentalstock.infrastructure.models import (
    CaseReservationModel,
    SupplierModel,
    SurgicalCaseModel,
)

PENDING_RESERVATION_STATUS = "pending"


class ClinicRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def count_active_cases_on(self, day: date) -> int:
        return (
            self.session.query(SurgicalCaseModel)
            .filter(SurgicalCaseModel.surgery_date == day)
            .filter(SurgicalCaseModel.status.not_in(CLOSED_CASE_STATUSES))
            .count()
        )

    def count_pending_reservations_on(self, day: date) -> int:
        return (
            self.session.query(CaseReservationModel)
            .join(SurgicalCaseModel, CaseReservationModel.case_id == SurgicalCaseModel.id)
            .filter(SurgicalCaseModel.surgery_date == day)
            .filter(CaseReservationModel.status == PENDING_RESERVATION_STATUS)
            .count()
        )

    def list_active_cases_on(self, day: date) -> Sequence[SurgicalCase]:
        query = (
            self.session.query(SurgicalCaseModel)
            .filter(SurgicalCaseModel.surgery_date == day)
            .filter(SurgicalCaseModel.status.not_in(CLOSED_CASE_STATUSES))
            .order_by(SurgicalCaseModel.id)
        )
        return [self._case_to_entity(model) for model in query.all()]

    def get_supplier(self, supplier_id: int) -> Supplier | None:
        model = self.session.get(SupplierModel, supplier_id)
        if model is None:
            return None
        return Supplier(id=model.id, name=model.name, line_user_id=model.line_user_id)

    @staticmethod
    def _case_to_entity(model: SurgicalCaseModel) -> SurgicalCase:
        return SurgicalCase(
            id=model.id,
            case_number=model.case_number,
            patient_name=model.patient_name,
            dentist_id=model.dentist_id,
            surgery_date=model.surgery_date,
            status=model.status,
        )


__all__ = ["ClinicRepository", "PENDING_RESERVATION_STATUS"]
