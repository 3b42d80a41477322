"""Banking details shown to guests for cash gifts."""

from dataclasses import dataclass

from event_registry.domain.models import UserRecord


@dataclass(frozen=True)
class BankingDetails:
    """Account information with a per-user payment reference."""

    bank: str
    account_number: str
    branch_code: str
    account_type: str
    reference: str


@dataclass
class BankingService:
    """Builds banking details for the signed-in user."""

    bank: str
    account_number: str
    branch_code: str
    account_type: str
    reference_prefix: str

    def details_for(self, user: UserRecord | None) -> BankingDetails:
        return BankingDetails(
            bank=self.bank,
            account_number=self.account_number,
            branch_code=self.branch_code,
            account_type=self.account_type,
            reference=f"{self.reference_prefix}_{payment_reference_name(user)}",
        )


def payment_reference_name(user: UserRecord | None) -> str:
    """First name, else the email local part, else ``user``; lowercased."""
    if user is not None and user.name.strip():
        return user.name.split()[0].lower()
    if user is not None and user.email:
        return user.email.split("@")[0].lower()
    return "user"
