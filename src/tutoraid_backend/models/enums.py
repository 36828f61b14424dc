'''
Static enums shared by the records, the ORM tables and the API.
'''
import enum

# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member names."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class CurrencyCode(ListableEnum):
    INR = "INR"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    AUD = "AUD"

class SessionType(ListableEnum):
    ONE_TO_ONE = "1-1"
    GROUP = "group"

class FeeType(ListableEnum):
    HOURLY = "hourly"
    SUBSCRIPTION = "subscription"

class PaymentStatus(ListableEnum):
    NO_CHARGES = "No Charges"
    PAID = "Paid"
    PARTIALLY_PAID = "Partially Paid"
    UNPAID = "Unpaid"

class RecordKind(ListableEnum):
    """The four collections a data store serves."""
    STUDENTS = "students"
    CLASSES = "classes"
    FEES = "fees"
    PAYMENTS = "payments"
