from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKeyConstraint, Index, Integer, Numeric, PrimaryKeyConstraint, String, Text, Uuid, false, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
import datetime
import decimal
import uuid

from ..models.enums import CurrencyCode, SessionType, FeeType
from ..common.time import utc_now

class Base(DeclarativeBase):
    pass


currency_code_enum = Enum(*CurrencyCode.get_all_names(), name='currency_code_enum')
session_type_enum = Enum(*SessionType.get_all_names(), name='session_type_enum')
fee_type_enum = Enum(*FeeType.get_all_names(), name='fee_type_enum')


class Students(Base):
    __tablename__ = 'students'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='students_pkey'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text)
    email: Mapped[str] = mapped_column(String(255))
    currency_code: Mapped[str] = mapped_column(currency_code_enum)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    country: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now, onupdate=utc_now)
    deleted: Mapped[bool] = mapped_column(Boolean, server_default=false(), default=False)

    fees: Mapped[list['Fees']] = relationship('Fees', back_populates='student')
    payments: Mapped[list['Payments']] = relationship('Payments', back_populates='student')


class Classes(Base):
    __tablename__ = 'classes'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='classes_pkey'),
        Index('idx_classes_scheduled_date', 'scheduled_date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text)
    discipline: Mapped[str] = mapped_column(Text)
    session_type: Mapped[str] = mapped_column(session_type_enum)
    scheduled_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    duration_minutes: Mapped[int] = mapped_column(Integer, server_default='60', default=60)
    category: Mapped[Optional[str]] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now, onupdate=utc_now)
    deleted: Mapped[bool] = mapped_column(Boolean, server_default=false(), default=False)

    class_students: Mapped[list['ClassStudents']] = relationship(
        'ClassStudents',
        back_populates='class_',
        cascade='all, delete-orphan'
    )


class ClassStudents(Base):
    __tablename__ = 'class_students'
    __table_args__ = (
        ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE', name='class_students_class_id_fkey'),
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='class_students_student_id_fkey'),
        PrimaryKeyConstraint('class_id', 'student_id', name='class_students_pkey'),
        Index('idx_class_students_student', 'student_id')
    )

    class_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)

    class_: Mapped['Classes'] = relationship('Classes', back_populates='class_students')


class Fees(Base):
    __tablename__ = 'fees'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='fees_student_id_fkey'),
        PrimaryKeyConstraint('id', name='fees_pkey'),
        Index('idx_fees_student', 'student_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_type: Mapped[str] = mapped_column(session_type_enum)
    fee_type: Mapped[str] = mapped_column(fee_type_enum)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    currency_code: Mapped[str] = mapped_column(currency_code_enum)
    effective_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    # NULL student_id: default fee for every student. NULL discipline: any discipline.
    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    discipline: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now, onupdate=utc_now)
    deleted: Mapped[bool] = mapped_column(Boolean, server_default=false(), default=False)

    student: Mapped[Optional['Students']] = relationship('Students', back_populates='fees')


class Payments(Base):
    __tablename__ = 'payments'
    __table_args__ = (
        ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE', name='payments_student_id_fkey'),
        PrimaryKeyConstraint('id', name='payments_pkey'),
        Index('idx_payments_student', 'student_id'),
        Index('idx_payments_transaction_date', 'transaction_date')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(10, 2))
    currency_code: Mapped[str] = mapped_column(currency_code_enum)
    transaction_date: Mapped[datetime.datetime] = mapped_column(DateTime(True))
    payment_method: Mapped[str] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now(), default=utc_now, onupdate=utc_now)
    deleted: Mapped[bool] = mapped_column(Boolean, server_default=false(), default=False)

    student: Mapped['Students'] = relationship('Students', back_populates='payments')
