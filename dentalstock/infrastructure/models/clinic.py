"""Clinic tables read by the notification subsystem."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from dentalstock.infrastructure.database import Base


class SupplierModel(Base):
    """Material supplier."""

    __tablename__ = "supplier"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    line_user_id = Column(String(64), nullable=True)


class SurgicalCaseModel(Base):
    """Scheduled surgical case."""

    __tablename__ = "surgical_case"

    id = Column(Integer, primary_key=True, index=True)
    case_number = Column(String(30), nullable=False, unique=True)
    patient_name = Column(String(200), nullable=False)
    dentist_id = Column(Integer, ForeignKey("user.id"), nullable=True, index=True)
    surgery_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="gray")

    reservations = relationship("CaseReservationModel", back_populates="case")


class CaseReservationModel(Base):
    """Material reserved for a case."""

    __tablename__ = "case_reservation"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("surgical_case.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")

    case = relationship("SurgicalCaseModel", back_populates="reservations")


__all__ = ["CaseReservationModel", "SupplierModel", "SurgicalCaseModel"]
