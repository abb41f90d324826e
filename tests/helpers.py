"""Test doubles and sample payloads shared across test modules."""

from datetime import datetime, timedelta, timezone

from src.domain.models import Address, BankDetails, BusinessType, ProfileDraft


class FakeClock:
    """Clock that only moves when told to. Starts at the real current time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class RecordingNotifier:
    """NotificationDispatcher that keeps every message for assertions."""

    def __init__(self) -> None:
        self.otps: list[tuple[str, str, str]] = []
        self.welcomes: list[tuple[str, str, str]] = []

    def send_otp(self, email: str, code: str, purpose: str) -> None:
        self.otps.append((email, code, purpose))

    def send_welcome(self, email: str, name: str, role: str) -> None:
        self.welcomes.append((email, name, role))

    def last_code(self, email: str) -> str:
        return [code for sent_to, code, _ in self.otps if sent_to == email][-1]


def wrong_code(code: str) -> str:
    """A code of the same length that differs from ``code``."""
    return "".join(str((int(digit) + 1) % 10) for digit in code)


def make_profile_draft(registration_number: str = "REG123456") -> ProfileDraft:
    return ProfileDraft(
        phone="+91 98765 43210",
        business_name="ABC Pharmacy",
        business_type=BusinessType.PHARMACY,
        business_registration_number=registration_number,
        address=Address(
            street="123 Main St", area="Fort", city="Mumbai", state="Maharashtra", pincode="400001"
        ),
        bank_details=BankDetails(
            bank_name="State Bank",
            account_holder_name="Jane Doe",
            account_number="001122334455",
            ifsc_code="SBIN0001234",
            branch_name="Fort",
        ),
    )


def profile_payload(registration_number: str = "REG123456") -> dict:
    return {
        "phone": "+91 98765 43210",
        "businessName": "ABC Pharmacy",
        "businessType": "pharmacy",
        "businessRegistrationNumber": registration_number,
        "address": {
            "street": "123 Main St",
            "area": "Fort",
            "city": "Mumbai",
            "state": "Maharashtra",
            "pincode": "400001",
        },
        "bankDetails": {
            "bankName": "State Bank",
            "accountHolderName": "Jane Doe",
            "accountNumber": "001122334455",
            "ifscCode": "SBIN0001234",
            "branchName": "Fort",
        },
    }


JANE = {"firstName": "Jane", "lastName": "Doe", "email": "jane@x.com", "password": "Secret123"}
