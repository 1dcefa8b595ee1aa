"""Tests for row-level tenant isolation.

The argument rewriting is checked as a pure function; the store tests
confirm that two clubs sharing one database never see each other's rows.
"""

import pytest

from clubhub_api.db.models import Club, LedgerAccount, Member
from clubhub_api.db.tenant_scope import (
    Operation,
    TenantScopedStore,
    is_tenant_scoped,
    scope_query_args,
)

CLUB_A = "club-a"
CLUB_B = "club-b"


# ============================================================================
# scope_query_args (pure)
# ============================================================================


def test_scoped_models() -> None:
    assert is_tenant_scoped(Member)
    assert is_tenant_scoped(LedgerAccount)
    assert not is_tenant_scoped(Club)


def test_read_merges_club_into_where() -> None:
    args = {"where": {"status": "ACTIVE"}}

    scoped = scope_query_args(Member, Operation.FIND_MANY, args, CLUB_A)

    assert scoped["where"] == {"status": "ACTIVE", "club_id": CLUB_A}
    assert args == {"where": {"status": "ACTIVE"}}, "input must not be mutated"


def test_read_without_where_gets_club_filter() -> None:
    scoped = scope_query_args(Member, Operation.COUNT, {}, CLUB_A)
    assert scoped["where"] == {"club_id": CLUB_A}


def test_caller_supplied_club_id_is_overridden() -> None:
    scoped = scope_query_args(
        Member, Operation.FIND_FIRST, {"where": {"club_id": CLUB_B}}, CLUB_A
    )
    assert scoped["where"]["club_id"] == CLUB_A


def test_create_stamps_club_id() -> None:
    scoped = scope_query_args(
        Member,
        Operation.CREATE,
        {"data": {"first_name": "Ada", "club_id": CLUB_B}},
        CLUB_A,
    )
    assert scoped["data"] == {"first_name": "Ada", "club_id": CLUB_A}


def test_create_many_stamps_every_row() -> None:
    scoped = scope_query_args(
        Member,
        Operation.CREATE_MANY,
        {"data": [{"first_name": "Ada"}, {"first_name": "Bo", "club_id": CLUB_B}]},
        CLUB_A,
    )
    assert [row["club_id"] for row in scoped["data"]] == [CLUB_A, CLUB_A]


@pytest.mark.parametrize(
    "operation",
    [Operation.UPDATE, Operation.UPDATE_MANY, Operation.DELETE, Operation.DELETE_MANY],
)
def test_filtered_writes_constrain_where(operation: Operation) -> None:
    scoped = scope_query_args(Member, operation, {"where": {"id": "m1"}}, CLUB_A)
    assert scoped["where"] == {"id": "m1", "club_id": CLUB_A}


def test_update_cannot_move_row_to_another_club() -> None:
    scoped = scope_query_args(
        Member,
        Operation.UPDATE,
        {"where": {"id": "m1"}, "data": {"club_id": CLUB_B}},
        CLUB_A,
    )
    assert scoped["data"]["club_id"] == CLUB_A


def test_upsert_scopes_filter_and_both_payloads() -> None:
    scoped = scope_query_args(
        LedgerAccount,
        Operation.UPSERT,
        {"where": {"code": "1000"}, "create": {"code": "1000"}, "update": {"name": "Cash"}},
        CLUB_A,
    )
    assert scoped["where"]["club_id"] == CLUB_A
    assert scoped["create"]["club_id"] == CLUB_A
    assert scoped["update"]["club_id"] == CLUB_A


def test_unscoped_model_passes_through() -> None:
    args = {"where": {"slug": "acme"}}
    assert scope_query_args(Club, Operation.FIND_FIRST, args, CLUB_A) is args


# ============================================================================
# TenantScopedStore
# ============================================================================


@pytest.fixture
def two_clubs(make_club):
    return make_club(name="Club A", slug="club-a"), make_club(name="Club B", slug="club-b")


def test_store_requires_club_id(db_session) -> None:
    with pytest.raises(ValueError):
        TenantScopedStore(db_session, "")


def test_store_isolates_reads(db_session, two_clubs) -> None:
    club_a, club_b = two_clubs
    store_a = TenantScopedStore(db_session, club_a.id)
    store_b = TenantScopedStore(db_session, club_b.id)

    ada = store_a.create(Member, {"first_name": "Ada", "last_name": "Lovelace"})
    store_b.create(Member, {"first_name": "Bo", "last_name": "Diddley"})
    db_session.commit()

    assert [m.first_name for m in store_a.find_many(Member)] == ["Ada"]
    assert store_a.count(Member) == 1
    assert store_b.find_unique(Member, ada.id) is None
    assert store_b.find_first(Member, where={"id": ada.id, "club_id": club_a.id}) is None


def test_store_overrides_forged_club_filter(db_session, two_clubs) -> None:
    club_a, club_b = two_clubs
    store_a = TenantScopedStore(db_session, club_a.id)
    store_b = TenantScopedStore(db_session, club_b.id)
    store_a.create(Member, {"first_name": "Ada", "last_name": "Lovelace"})
    store_b.create(Member, {"first_name": "Bo", "last_name": "Diddley"})
    db_session.commit()

    row = store_b.find_first(Member, where={"club_id": club_a.id})

    assert row is not None
    assert row.club_id == club_b.id
    assert row.first_name == "Bo"


def test_store_create_ignores_foreign_club_id(db_session, two_clubs) -> None:
    club_a, club_b = two_clubs
    store_a = TenantScopedStore(db_session, club_a.id)

    member = store_a.create(
        Member, {"first_name": "Ada", "last_name": "Lovelace", "club_id": club_b.id}
    )

    assert member.club_id == club_a.id


def test_store_cross_club_writes_match_nothing(db_session, two_clubs) -> None:
    club_a, club_b = two_clubs
    store_a = TenantScopedStore(db_session, club_a.id)
    store_b = TenantScopedStore(db_session, club_b.id)
    ada = store_a.create(Member, {"first_name": "Ada", "last_name": "Lovelace"})
    db_session.commit()

    assert store_b.update(Member, {"id": ada.id}, {"first_name": "Eve"}) is None
    assert store_b.delete(Member, {"id": ada.id}) is None
    assert store_b.update_many(Member, None, {"status": "LEFT"}) == 0
    assert store_b.delete_many(Member) == 0

    db_session.refresh(ada)
    assert ada.first_name == "Ada"
    assert ada.status == "ACTIVE"


def test_store_aggregate_and_group_by(db_session, two_clubs) -> None:
    club_a, club_b = two_clubs
    store_a = TenantScopedStore(db_session, club_a.id)
    store_b = TenantScopedStore(db_session, club_b.id)

    store_a.create_many(
        LedgerAccount,
        [
            {"code": "1000", "name": "Cash", "account_type": "ASSET", "balance_cents": 500},
            {"code": "1200", "name": "Bank", "account_type": "ASSET", "balance_cents": 1500},
            {"code": "4000", "name": "Fees", "account_type": "INCOME", "balance_cents": 700},
        ],
    )
    store_b.create(
        LedgerAccount,
        {"code": "1000", "name": "Cash", "account_type": "ASSET", "balance_cents": 99_999},
    )
    db_session.commit()

    assert store_a.aggregate(LedgerAccount, "balance_cents", "sum", {"account_type": "ASSET"}) == 2000
    assert store_a.group_by(LedgerAccount, "account_type") == {"ASSET": 2, "INCOME": 1}

    with pytest.raises(ValueError):
        store_a.aggregate(LedgerAccount, "balance_cents", "median")


def test_store_upsert_stays_in_club(db_session, two_clubs) -> None:
    club_a, club_b = two_clubs
    store_a = TenantScopedStore(db_session, club_a.id)
    store_b = TenantScopedStore(db_session, club_b.id)
    store_b.create(LedgerAccount, {"code": "1000", "name": "B Cash", "account_type": "ASSET"})
    db_session.commit()

    account = store_a.upsert(
        LedgerAccount,
        where={"code": "1000"},
        create={"code": "1000", "name": "A Cash", "account_type": "ASSET"},
        update={"name": "A Cash"},
    )
    db_session.commit()

    assert account.club_id == club_a.id
    assert store_b.find_first(LedgerAccount, where={"code": "1000"}).name == "B Cash"


def test_store_ordering_and_paging(db_session, two_clubs) -> None:
    club_a, _ = two_clubs
    store = TenantScopedStore(db_session, club_a.id)
    for last_name in ("Curie", "Anning", "Babbage"):
        store.create(Member, {"first_name": "X", "last_name": last_name})
    db_session.commit()

    names = [m.last_name for m in store.find_many(Member, order_by=["-last_name"], limit=2)]

    assert names == ["Curie", "Babbage"]
