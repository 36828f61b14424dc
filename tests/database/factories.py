'''
factory_boy factories for the billing records.
Defaults describe a one-to-one piano lesson priced at 60 USD per class.
'''
import factory
import uuid
from decimal import Decimal
from factory.faker import Faker

from tutoraid_backend.models.enums import CurrencyCode, SessionType, FeeType
from tutoraid_backend.models.records import (
    Student, ClassSession, Fee, Payment,
    AnyDiscipline, SpecificDiscipline, GlobalFee, StudentFee
)
from tests.constants import utc


class StudentFactory(factory.Factory):
    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Student {n:03d}")
    email = Faker("email")
    currency_code = CurrencyCode.USD
    deleted = False

    class Meta:
        model = Student

class ClassSessionFactory(factory.Factory):
    id = factory.LazyFunction(uuid.uuid4)
    title = factory.Sequence(lambda n: f"Lesson {n}")
    discipline = "piano"
    session_type = SessionType.ONE_TO_ONE
    scheduled_date = utc(2024, 6, 10, 16)
    duration_minutes = 60
    student_ids = factory.LazyFunction(list)
    deleted = False

    class Meta:
        model = ClassSession

class FeeFactory(factory.Factory):
    id = factory.LazyFunction(uuid.uuid4)
    session_type = SessionType.ONE_TO_ONE
    fee_type = FeeType.HOURLY
    amount = Decimal("60.00")
    currency_code = CurrencyCode.USD
    effective_date = utc(2024, 1, 1)
    deleted = False

    class Meta:
        model = Fee

    class Params:
        for_student = None
        for_discipline = None

    @factory.lazy_attribute
    def scope(self):
        if self.for_student is None:
            return GlobalFee()
        return StudentFee(student_id=self.for_student)

    @factory.lazy_attribute
    def discipline(self):
        if not self.for_discipline:
            return AnyDiscipline()
        return SpecificDiscipline(name=self.for_discipline)

class PaymentFactory(factory.Factory):
    id = factory.LazyFunction(uuid.uuid4)
    student_id = factory.LazyFunction(uuid.uuid4)
    amount = Decimal("60.00")
    currency_code = CurrencyCode.USD
    transaction_date = utc(2024, 6, 15)
    payment_method = "bank transfer"
    notes = None
    deleted = False

    class Meta:
        model = Payment
