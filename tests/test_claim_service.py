"""Tests for claim reconciliation against availability."""

import asyncio

import pytest

from event_registry.domain.items import Claimant
from event_registry.domain.models import Guest
from event_registry.errors import (
    BackendRejectedError,
    ClaimValidationError,
    ConnectivityError,
)
from event_registry.services.claims import ClaimService
from tests.conftest import FakeRegistryClient

X = Claimant(name="Xolani", number="x@example.com")
Y = Claimant(name="Yusuf", number="0821112222")


def _assert_within_totals(client: FakeRegistryClient) -> None:
    for item in client.items.values():
        assert client.claimed_total(item.name) <= item.total_quantity


def test_list_claimable_items_sorted_and_excludes_exhausted(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("bibs", 2)
    registry_client.add_item("Wipes", 3)
    registry_client.add_item("Bottles", 1)
    registry_client.add_claim(X, "Bottles", 1)
    registry_client.add_claim(Y, "Wipes", 1)
    service = ClaimService(registry_client)

    claimable = asyncio.run(service.list_claimable_items())

    assert [entry.item.name for entry in claimable] == ["Wipes", "bibs"]
    assert claimable[0].available == 2


def test_claim_rejects_quantity_above_available(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(X, "Wipes", 3)
    service = ClaimService(registry_client)

    with pytest.raises(ClaimValidationError) as excinfo:
        asyncio.run(service.claim("Wipes", Y, 3))

    assert excinfo.value.maximum == 2
    assert "Only 2" in excinfo.value.message
    assert "create_claim" not in registry_client.calls


def test_claim_rejects_non_positive_quantity(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 5)
    service = ClaimService(registry_client)

    with pytest.raises(ClaimValidationError):
        asyncio.run(service.claim("Wipes", Y, 0))

    assert registry_client.calls == []


def test_claim_creates_then_increments_single_row(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 5)
    service = ClaimService(registry_client)

    first = asyncio.run(service.claim("Wipes", Y, 2, user_email="u@example.com"))
    second = asyncio.run(service.claim("Wipes", Y, 1))

    assert len(registry_client.claims) == 1
    assert registry_client.claims[(Y.name, Y.number, "Wipes")].quantity == 3
    assert first.view.availability("Wipes").available == 3
    assert second.view.availability("Wipes").available == 2
    assert second.view.generation > first.view.generation
    assert registry_client.calls[-2:] == ["list_items", "list_claims"]


def test_update_quantity_uses_own_reservation_in_bound(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(X, "Wipes", 3)
    service = ClaimService(registry_client)

    result = asyncio.run(service.update_claim_quantity(X, "Wipes", 4))
    assert result.quantity == 4
    assert result.view.availability("Wipes").available == 1

    with pytest.raises(ClaimValidationError) as excinfo:
        asyncio.run(service.update_claim_quantity(X, "Wipes", 6))
    assert excinfo.value.maximum == 5
    _assert_within_totals(registry_client)


def test_update_quantity_requires_existing_claim(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 5)
    service = ClaimService(registry_client)

    with pytest.raises(ClaimValidationError):
        asyncio.run(service.update_claim_quantity(Y, "Wipes", 1))

    assert "update_claim" not in registry_client.calls


def test_second_claimant_sees_fresh_availability(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(X, "Wipes", 3)
    x_screen = ClaimService(registry_client)
    y_screen = ClaimService(registry_client)
    stale = asyncio.run(y_screen.list_claimable_items())
    assert stale[0].available == 2

    asyncio.run(x_screen.update_claim_quantity(X, "Wipes", 4))

    with pytest.raises(ClaimValidationError) as excinfo:
        asyncio.run(y_screen.claim("Wipes", Y, 2))
    assert excinfo.value.maximum == 1
    _assert_within_totals(registry_client)


def test_concurrent_change_before_write_is_rejected_by_backend(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("Wipes", 2)
    service = ClaimService(registry_client)

    def other_client_claims() -> None:
        registry_client.add_claim(X, "Wipes", 2)

    registry_client.before_claim_write = other_client_claims

    with pytest.raises(BackendRejectedError):
        asyncio.run(service.claim("Wipes", Y, 1))
    _assert_within_totals(registry_client)


def test_batch_claim_reports_each_item_independently(
    registry_client: FakeRegistryClient,
) -> None:
    for name in ("A", "B", "C"):
        registry_client.add_item(name, 3)
    registry_client.rejected_items = {"B"}
    service = ClaimService(registry_client)

    report = asyncio.run(service.claim_items({"C": 1, "B": 2, "A": 3}, Y))

    assert [(o.item_name, o.succeeded) for o in report.outcomes] == [
        ("A", True),
        ("B", False),
        ("C", True),
    ]
    assert "out of stock" in report.failed[0].error
    assert registry_client.claimed_total("A") == 3
    assert registry_client.claimed_total("C") == 1
    assert report.view is not None
    assert [entry.item.name for entry in report.view.claimable()] == ["B", "C"]
    assert "1 failed: B" in report.summary()


def test_batch_claim_validates_each_item_locally(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("A", 1)
    registry_client.add_item("B", 5)
    service = ClaimService(registry_client)

    report = asyncio.run(service.claim_items({"A": 2, "B": 2, "Gone": 1}, Y))

    assert [o.item_name for o in report.failed] == ["A", "Gone"]
    assert [o.item_name for o in report.succeeded] == ["B"]
    assert registry_client.calls.count("create_claim") == 1


def test_batch_claim_when_backend_unreachable(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.add_item("A", 1)
    registry_client.offline = True
    service = ClaimService(registry_client)

    report = asyncio.run(service.claim_items({"A": 1}, Y))

    assert report.view is None
    assert report.failed[0].error == ConnectivityError().message
    assert report.summary() == "Failed to process any items. Please try again."


def test_unclaim_is_idempotent(registry_client: FakeRegistryClient) -> None:
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(X, "Wipes", 2)
    service = ClaimService(registry_client)

    first = asyncio.run(service.unclaim(X, "Wipes"))
    second = asyncio.run(service.unclaim(X, "Wipes"))

    assert first.view.availability("Wipes").available == 5
    assert second.view.availability("Wipes").available == 5
    assert registry_client.claims == {}


def test_unclaim_propagates_other_backend_errors(
    registry_client: FakeRegistryClient,
) -> None:
    registry_client.offline = True
    service = ClaimService(registry_client)

    with pytest.raises(ConnectivityError):
        asyncio.run(service.unclaim(X, "Wipes"))


def test_delete_item_removes_claims(registry_client: FakeRegistryClient) -> None:
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(X, "Wipes", 2)
    service = ClaimService(registry_client)

    result = asyncio.run(service.delete_item("Wipes"))

    assert result.view.availability("Wipes") is None
    assert registry_client.claims == {}


def test_claims_for_user_include_exhausted_items(
    registry_client: FakeRegistryClient, alice
) -> None:
    guest = Guest(name="Gogo", number="0845556666", user_email=alice.email)
    registry_client.add_item("Bottles", 1)
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(guest.claimant, "Bottles", 1)
    registry_client.add_claim(alice.claimant, "Wipes", 2)
    registry_client.add_claim(Y, "Wipes", 1)
    service = ClaimService(registry_client)

    claimed = asyncio.run(service.claims_for_user(alice, [guest]))

    assert [(entry.claim.item_name, entry.claim.claimant) for entry in claimed] == [
        ("Bottles", guest.claimant),
        ("Wipes", alice.claimant),
    ]
    assert claimed[0].guest == guest
    assert claimed[1].guest is None


def test_find_claim_for_claimant(registry_client: FakeRegistryClient) -> None:
    registry_client.add_item("Wipes", 5)
    registry_client.add_claim(X, "Wipes", 2)
    service = ClaimService(registry_client)

    assert asyncio.run(service.find_claim(X, "Wipes")).quantity == 2
    assert asyncio.run(service.find_claim(Y, "Wipes")) is None
