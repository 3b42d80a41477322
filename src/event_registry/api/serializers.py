"""JSON shapes returned by the API."""

from event_registry.domain.items import BatchReport, ItemAvailability, ItemsView
from event_registry.domain.models import Guest, RsvpStats, UserRecord
from event_registry.domain.sessions import SessionStatus
from event_registry.services.banking import BankingDetails
from event_registry.services.claims import ClaimedItem
from event_registry.services.screens import ClaimSelection


def user_json(user: UserRecord) -> dict[str, object]:
    return {
        "email": user.email,
        "name": user.name,
        "number": user.number,
        "role": user.role,
    }


def session_json(status: SessionStatus) -> dict[str, object]:
    return {
        "state": status.state.value,
        "authenticated": status.is_authenticated,
        "loading": status.loading,
        "user": user_json(status.user) if status.user else None,
        "warning_visible": status.warning_visible,
        "countdown_seconds": status.countdown_seconds,
        "redirect_to": status.redirect_to,
    }


def availability_json(entry: ItemAvailability) -> dict[str, object]:
    return {
        "item_name": entry.item.name,
        "total": entry.item.total_quantity,
        "claimed": entry.claimed,
        "available": entry.available,
        "photo_url": entry.item.photo_url,
        "link": entry.item.link,
    }


def view_json(view: ItemsView | None) -> list[dict[str, object]]:
    if view is None:
        return []
    return [availability_json(entry) for entry in view.claimable()]


def selection_json(selection: ClaimSelection) -> dict[str, object]:
    return {
        "items": dict(sorted(selection.quantities.items())),
        "total_quantity": selection.total_quantity,
    }


def report_json(report: BatchReport) -> dict[str, object]:
    return {
        "summary": report.summary(),
        "results": [
            {
                "item_name": outcome.item_name,
                "quantity": outcome.quantity,
                "status": "success" if outcome.succeeded else "failed",
                "error": outcome.error,
            }
            for outcome in report.outcomes
        ],
        "items": view_json(report.view),
    }


def claimed_item_json(entry: ClaimedItem) -> dict[str, object]:
    return {
        "item_name": entry.claim.item_name,
        "quantity": entry.claim.quantity,
        "claimant_name": entry.claim.claimant.name,
        "claimant_number": entry.claim.claimant.number,
        "for_guest": entry.guest is not None,
        "photo_url": entry.item.photo_url if entry.item else None,
        "link": entry.item.link if entry.item else None,
    }


def guest_json(guest: Guest) -> dict[str, object]:
    return {
        "name": guest.name,
        "number": guest.number,
        "going": guest.going,
    }


def stats_json(stats: RsvpStats) -> dict[str, int]:
    return {"total": stats.total, "going": stats.going, "not_going": stats.not_going}


def banking_json(details: BankingDetails) -> dict[str, str]:
    return {
        "bank": details.bank,
        "account_number": details.account_number,
        "branch_code": details.branch_code,
        "account_type": details.account_type,
        "reference": details.reference,
    }
